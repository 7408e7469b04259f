# src/fono_chat/schemas/chat_message.py
"""Chat message Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ChatMessageCreate(BaseModel):
    """Schema for sending a chat message."""

    receiver_id: str | None = Field(None, alias="receiverId", description="Recipient; omit to broadcast")
    content: str | None = Field(None, description="Plaintext body, encrypted before storage")
    message_type: str = Field("text", alias="messageType")

    model_config = ConfigDict(populate_by_name=True)


class ChatMessageMetadata(BaseModel):
    """Non-sensitive fields returned after a send or lifecycle change."""

    id: int
    sender_id: str
    receiver_id: str | None
    created_at: datetime
    read_status: bool
    message_type: str
    is_deleted: bool
    deleted_at: datetime | None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class ChatMessageResponse(ChatMessageMetadata):
    """Decrypted message as returned by the history listing."""

    content: str
    decryption_error: bool = False


class MessageStatus(BaseModel):
    message: str
    data: ChatMessageMetadata | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
