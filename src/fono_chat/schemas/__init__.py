# src/fono_chat/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .chat_message import ChatMessageCreate, ChatMessageMetadata, ChatMessageResponse, MessageStatus
from .realtime import ChannelAuthRequest, TypingNotification

__all__ = [
    "ChatMessageCreate", "ChatMessageMetadata", "ChatMessageResponse", "MessageStatus",
    "ChannelAuthRequest", "TypingNotification",
]
