# src/fono_chat/api/v1/endpoints/messages.py
"""Chat message endpoints: send, history and the deletion lifecycle."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from fono_chat.api.v1.dependencies import AuthContextDep, MessageServiceDep, to_http_exception
from fono_chat.core.errors import FonoError
from fono_chat.schemas.chat_message import (
    ChatMessageCreate,
    ChatMessageMetadata,
    ChatMessageResponse,
    MessageStatus,
)

router = APIRouter(prefix="/chat_messages", tags=["chat_messages"])


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=ChatMessageMetadata)
async def send_message(
    message_data: ChatMessageCreate,
    ctx: AuthContextDep,
    service: MessageServiceDep,
) -> ChatMessageMetadata:
    """Encrypt and store a message, then notify the receiver."""
    try:
        message = await service.send(
            ctx,
            message_data.receiver_id,
            message_data.content,
            message_data.message_type,
        )
    except FonoError as err:
        raise to_http_exception(err) from err
    return ChatMessageMetadata.model_validate(message)


@router.get("/", response_model=list[ChatMessageResponse])
async def list_messages(
    ctx: AuthContextDep,
    service: MessageServiceDep,
    participant_id: str | None = Query(None, alias="participantId"),
    include_deleted: bool = Query(False, alias="includeDeleted"),
) -> list[ChatMessageResponse]:
    """Return decrypted history, optionally limited to one conversation."""
    try:
        messages = await service.list_messages(
            ctx, participant_id, include_deleted=include_deleted
        )
    except FonoError as err:
        raise to_http_exception(err) from err
    return [ChatMessageResponse.model_validate(message) for message in messages]


@router.delete("/{message_id}", response_model=MessageStatus)
async def soft_delete_message(
    message_id: int,
    ctx: AuthContextDep,
    service: MessageServiceDep,
) -> MessageStatus:
    """Hide a message the caller sent; it can be restored later."""
    try:
        message = await service.soft_delete(ctx, message_id)
    except FonoError as err:
        raise to_http_exception(err) from err
    return MessageStatus(
        message="Message deleted.",
        data=ChatMessageMetadata.model_validate(message),
    )


@router.post("/{message_id}/restore", response_model=MessageStatus)
async def restore_message(
    message_id: int,
    ctx: AuthContextDep,
    service: MessageServiceDep,
) -> MessageStatus:
    try:
        message = await service.restore(ctx, message_id)
    except FonoError as err:
        raise to_http_exception(err) from err
    return MessageStatus(
        message="Message restored.",
        data=ChatMessageMetadata.model_validate(message),
    )


@router.delete("/{message_id}/permanent", response_model=MessageStatus)
async def hard_delete_message(
    message_id: int,
    ctx: AuthContextDep,
    service: MessageServiceDep,
) -> MessageStatus:
    """Remove a message for good. This cannot be undone."""
    try:
        await service.hard_delete(ctx, message_id)
    except FonoError as err:
        raise to_http_exception(err) from err
    return MessageStatus(message="Message permanently deleted.")
