# src/fono_chat/services/__init__.py
"""Business logic services for the Fono chat backend."""

from .cipher import CipherEngine
from .message_service import MessageService
from .message_store import MessageStore
from .notifications import NotificationDispatcher
from .pusher import PusherClient

__all__ = [
    "CipherEngine",
    "MessageService",
    "MessageStore",
    "NotificationDispatcher",
    "PusherClient",
]
