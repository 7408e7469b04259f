"""Model describing encrypted chat messages."""

from datetime import datetime

from sqlalchemy import Boolean, Index, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from fono_chat.db.session import Base
from fono_chat.db.time import UTCDateTime, utcnow

DEFAULT_MESSAGE_TYPE = "text"


class ChatMessage(Base):
    """Chat message whose body is stored AES-256-GCM encrypted.

    Only ``read_status``, ``is_deleted`` and ``deleted_at`` ever change after
    insert, and the two deletion columns always change in the same statement.
    """

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_pair_created", "sender_id", "receiver_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    sender_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # Null receiver means a public message broadcast to everyone.
    receiver_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    encrypted_content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    iv: Mapped[bytes] = mapped_column(LargeBinary(16), nullable=False)
    auth_tag: Mapped[bytes] = mapped_column(LargeBinary(16), nullable=False)

    message_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default=DEFAULT_MESSAGE_TYPE
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow
    )
    read_status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
