# src/fono_chat/services/message_service.py
"""Request-level chat operations composed from cipher, store and dispatcher."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Final, Protocol

from fastapi.concurrency import run_in_threadpool

from fono_chat.core.errors import ForbiddenError, InvalidArgumentError
from fono_chat.core.security import AuthContext, require_principal
from fono_chat.models import DEFAULT_MESSAGE_TYPE, ChatMessage
from fono_chat.services import channels
from fono_chat.services.cipher import CipherEngine, Decrypted
from fono_chat.services.message_store import MessageStore, payload_of
from fono_chat.services.notifications import NotificationDispatcher, PublishOutcome

logger = logging.getLogger(__name__)

MESSAGE_TYPES: Final[frozenset[str]] = frozenset({"text", "image", "file", "audio"})
UNDECRYPTABLE_PLACEHOLDER: Final[str] = "[Could not decrypt message]"


class ChannelSigner(Protocol):
    def authorize_channel(self, socket_id: str, channel_name: str) -> dict[str, str]:
        ...


@dataclass(frozen=True)
class DecryptedMessage:
    """A stored message with its body decrypted for the reader."""

    id: int
    sender_id: str
    receiver_id: str | None
    content: str
    message_type: str
    created_at: datetime
    read_status: bool
    is_deleted: bool
    deleted_at: datetime | None
    decryption_error: bool = False


class MessageService:
    """Orchestrates send, list and the deletion lifecycle for one principal.

    Store calls run in the threadpool so blocking database I/O never stalls
    the event loop. No message is cached between calls.
    """

    def __init__(
        self,
        cipher: CipherEngine,
        store: MessageStore,
        dispatcher: NotificationDispatcher,
        signer: ChannelSigner,
    ) -> None:
        self._cipher = cipher
        self._store = store
        self._dispatcher = dispatcher
        self._signer = signer

    async def send(
        self,
        ctx: AuthContext | None,
        receiver_id: str | None,
        content: str | None,
        message_type: str = DEFAULT_MESSAGE_TYPE,
    ) -> ChatMessage:
        """Encrypt, persist and announce a message.

        The send succeeds once the row is stored; a failed notification only
        gets logged.
        """
        sender_id = require_principal(ctx)
        if not content:
            raise InvalidArgumentError("Message content is required.")
        if message_type not in MESSAGE_TYPES:
            raise InvalidArgumentError("Unsupported message type.")

        payload = self._cipher.encrypt(content)
        message = await run_in_threadpool(
            self._store.insert, sender_id, receiver_id or None, payload, message_type
        )
        await self._dispatcher.publish_new_message(message, content)
        return message

    async def list_messages(
        self,
        ctx: AuthContext | None,
        peer_id: str | None = None,
        *,
        include_deleted: bool = False,
    ) -> list[DecryptedMessage]:
        """Return the caller's history, decrypting each row independently."""
        user_id = require_principal(ctx)
        rows = await run_in_threadpool(
            self._store.list_for_participant,
            user_id,
            peer_id or None,
            include_deleted=include_deleted,
        )
        return [self._decrypt_row(row) for row in rows]

    def _decrypt_row(self, row: ChatMessage) -> DecryptedMessage:
        result = self._cipher.try_decrypt(payload_of(row))
        if isinstance(result, Decrypted):
            content, failed = result.content, False
        else:
            logger.error("Failed to decrypt message ID %s: %s", row.id, result.reason)
            content, failed = UNDECRYPTABLE_PLACEHOLDER, True
        return DecryptedMessage(
            id=row.id,
            sender_id=row.sender_id,
            receiver_id=row.receiver_id,
            content=content,
            message_type=row.message_type,
            created_at=row.created_at,
            read_status=row.read_status,
            is_deleted=row.is_deleted,
            deleted_at=row.deleted_at,
            decryption_error=failed,
        )

    async def soft_delete(self, ctx: AuthContext | None, message_id: int) -> ChatMessage:
        user_id = require_principal(ctx)
        return await run_in_threadpool(self._store.soft_delete, message_id, user_id)

    async def restore(self, ctx: AuthContext | None, message_id: int) -> ChatMessage:
        user_id = require_principal(ctx)
        return await run_in_threadpool(self._store.restore, message_id, user_id)

    async def hard_delete(self, ctx: AuthContext | None, message_id: int) -> None:
        user_id = require_principal(ctx)
        await run_in_threadpool(self._store.hard_delete, message_id, user_id)

    async def notify_typing(
        self,
        ctx: AuthContext | None,
        target_user_id: str | None,
        action: str | None,
    ) -> PublishOutcome:
        user_id = require_principal(ctx)
        return await self._dispatcher.publish_typing(user_id, target_user_id or "", action or "")

    def authorize_channel(
        self,
        ctx: AuthContext | None,
        socket_id: str,
        channel_name: str,
    ) -> dict[str, str]:
        """Sign a subscription to the caller's own private channel.

        Raises:
            ForbiddenError: The channel belongs to someone else.
        """
        user_id = require_principal(ctx)
        if not channels.authorize_subscription(user_id, channel_name):
            raise ForbiddenError()
        return self._signer.authorize_channel(socket_id, channel_name)
