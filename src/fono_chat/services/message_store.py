# src/fono_chat/services/message_store.py
"""Persistence of encrypted chat messages and their deletion lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fono_chat.core.errors import (
    MessageAlreadyDeletedError,
    MessageForbiddenError,
    MessageNotDeletedError,
    MessageNotFoundError,
    StoreUnavailableError,
)
from fono_chat.db.time import utcnow
from fono_chat.models import DEFAULT_MESSAGE_TYPE, ChatMessage
from fono_chat.services.cipher import EncryptedPayload

logger = logging.getLogger(__name__)


def payload_of(message: ChatMessage) -> EncryptedPayload:
    """Return the stored cipher fields of ``message``."""
    return EncryptedPayload(
        iv=message.iv,
        ciphertext=message.encrypted_content,
        tag=message.auth_tag,
    )


class MessageStore:
    """Message persistence backed by an injected SQLAlchemy session factory.

    Each public method runs in its own session and transaction; the
    connection goes back to the pool when the method returns or raises.
    Lifecycle mutations are single conditional statements, so the ownership
    and state checks cannot race with a concurrent request on the same id.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        try:
            with self._session_factory() as session, session.begin():
                yield session
        except SQLAlchemyError as exc:
            logger.error("Message store operation failed: %s", exc, exc_info=True)
            raise StoreUnavailableError() from exc

    def insert(
        self,
        sender_id: str,
        receiver_id: str | None,
        payload: EncryptedPayload,
        message_type: str = DEFAULT_MESSAGE_TYPE,
    ) -> ChatMessage:
        """Persist a new encrypted message and return it with id and timestamp."""
        message = ChatMessage(
            sender_id=sender_id,
            receiver_id=receiver_id,
            encrypted_content=payload.ciphertext,
            iv=payload.iv,
            auth_tag=payload.tag,
            message_type=message_type,
            created_at=self._clock(),
            read_status=False,
            is_deleted=False,
            deleted_at=None,
        )
        with self._transaction() as session:
            session.add(message)
            session.flush()
            session.refresh(message)
        return message

    def get(self, message_id: int) -> ChatMessage | None:
        with self._transaction() as session:
            return session.get(ChatMessage, message_id)

    def list_for_participant(
        self,
        user_id: str,
        peer_id: str | None = None,
        *,
        include_deleted: bool = False,
    ) -> list[ChatMessage]:
        """Return messages visible to ``user_id`` in canonical history order.

        Args:
            user_id: Principal whose messages are listed
            peer_id: Restrict to the two-party conversation with this user
            include_deleted: Also return soft-deleted rows

        Returns:
            Messages ordered by ``created_at`` then insertion id
        """
        if peer_id:
            participant_filter = or_(
                and_(ChatMessage.sender_id == user_id, ChatMessage.receiver_id == peer_id),
                and_(ChatMessage.sender_id == peer_id, ChatMessage.receiver_id == user_id),
            )
        else:
            participant_filter = or_(
                ChatMessage.sender_id == user_id,
                ChatMessage.receiver_id == user_id,
            )

        query = select(ChatMessage).where(participant_filter)
        if not include_deleted:
            query = query.where(ChatMessage.is_deleted.is_(False))
        query = query.order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())

        with self._transaction() as session:
            return list(session.scalars(query).all())

    def soft_delete(self, message_id: int, user_id: str) -> ChatMessage:
        """Hide a message the caller sent.

        Raises:
            MessageNotFoundError: No message with this id.
            MessageForbiddenError: The caller is not the sender.
            MessageAlreadyDeletedError: The message is already hidden.
        """
        statement = (
            update(ChatMessage)
            .where(
                ChatMessage.id == message_id,
                ChatMessage.sender_id == user_id,
                ChatMessage.is_deleted.is_(False),
            )
            .values(is_deleted=True, deleted_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        with self._transaction() as session:
            result = session.execute(statement)
            if result.rowcount == 0:
                self._raise_for_missed_update(session, message_id, user_id, deleted=True)
            return self._load(session, message_id)

    def restore(self, message_id: int, user_id: str) -> ChatMessage:
        """Un-hide a message the caller soft-deleted.

        Raises:
            MessageNotFoundError: No message with this id.
            MessageForbiddenError: The caller is not the sender.
            MessageNotDeletedError: The message is not currently deleted.
        """
        statement = (
            update(ChatMessage)
            .where(
                ChatMessage.id == message_id,
                ChatMessage.sender_id == user_id,
                ChatMessage.is_deleted.is_(True),
            )
            .values(is_deleted=False, deleted_at=None)
            .execution_options(synchronize_session=False)
        )
        with self._transaction() as session:
            result = session.execute(statement)
            if result.rowcount == 0:
                self._raise_for_missed_update(session, message_id, user_id, deleted=False)
            return self._load(session, message_id)

    def hard_delete(self, message_id: int, user_id: str) -> None:
        """Remove a message permanently. There is no undo."""
        statement = (
            delete(ChatMessage)
            .where(ChatMessage.id == message_id, ChatMessage.sender_id == user_id)
            .execution_options(synchronize_session=False)
        )
        with self._transaction() as session:
            result = session.execute(statement)
            if result.rowcount == 0:
                self._raise_for_missed_update(session, message_id, user_id, deleted=None)

    @staticmethod
    def _load(session: Session, message_id: int) -> ChatMessage:
        message = session.get(ChatMessage, message_id, populate_existing=True)
        if message is None:  # pragma: no cover - removed between statements
            raise MessageNotFoundError()
        return message

    @staticmethod
    def _raise_for_missed_update(
        session: Session,
        message_id: int,
        user_id: str,
        *,
        deleted: bool | None,
    ) -> None:
        """Explain why a conditional statement matched no row.

        ``deleted`` is the state the statement tried to reach, or None when
        the statement does not depend on the deletion state.
        """
        row = session.execute(
            select(ChatMessage.sender_id, ChatMessage.is_deleted).where(
                ChatMessage.id == message_id
            )
        ).first()
        if row is None:
            raise MessageNotFoundError()
        if row.sender_id != user_id:
            raise MessageForbiddenError()
        if deleted is True:
            raise MessageAlreadyDeletedError()
        if deleted is False:
            raise MessageNotDeletedError()
        # The row changed between the statement and this read; report it as gone.
        raise MessageNotFoundError()
