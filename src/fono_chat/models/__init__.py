# src/fono_chat/models/__init__.py
"""SQLAlchemy models for the Fono chat backend."""

from .chat_message import DEFAULT_MESSAGE_TYPE, ChatMessage

__all__ = ["ChatMessage", "DEFAULT_MESSAGE_TYPE"]
