# tests/services/test_message_service.py
"""Tests for the request-level message operations."""

import pytest
from sqlalchemy import func, select, update

from fono_chat.core.errors import (
    ForbiddenError,
    InvalidArgumentError,
    MessageForbiddenError,
    UnauthenticatedError,
)
from fono_chat.core.security import AuthContext
from fono_chat.models import ChatMessage
from fono_chat.services.cipher import CipherEngine
from fono_chat.services.message_service import UNDECRYPTABLE_PLACEHOLDER, MessageService
from fono_chat.services.message_store import MessageStore
from fono_chat.services.notifications import NotificationDispatcher
from tests.conftest import ALICE, BOB, RecordingPublisher

ALICE_CTX = AuthContext(user_id=ALICE)
BOB_CTX = AuthContext(user_id=BOB)


def _row_count(session_factory) -> int:
    with session_factory() as session:
        return session.scalar(select(func.count()).select_from(ChatMessage))


@pytest.mark.asyncio
async def test_send_encrypts_persists_and_notifies(
    message_service: MessageService,
    session_factory,
    publisher: RecordingPublisher,
) -> None:
    message = await message_service.send(ALICE_CTX, BOB, "hello bob")

    with session_factory() as session:
        stored = session.get(ChatMessage, message.id)
    assert stored is not None
    assert b"hello bob" not in stored.encrypted_content
    assert len(stored.iv) == 16 and len(stored.auth_tag) == 16

    channel, event, payload = publisher.events[0]
    assert channel == "private-chat-auth0=7Cbob"
    assert event == "new-message"
    assert payload["content"] == "hello bob"
    assert payload["id"] == message.id


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["", None])
async def test_send_with_empty_content_persists_nothing(
    message_service: MessageService,
    session_factory,
    publisher: RecordingPublisher,
    content: str | None,
) -> None:
    with pytest.raises(InvalidArgumentError):
        await message_service.send(ALICE_CTX, BOB, content)

    assert _row_count(session_factory) == 0
    assert publisher.events == []


@pytest.mark.asyncio
async def test_send_stores_whitespace_content_as_sent(
    message_service: MessageService,
    publisher: RecordingPublisher,
) -> None:
    message = await message_service.send(ALICE_CTX, BOB, "   ")

    [listed] = await message_service.list_messages(BOB_CTX, ALICE)
    assert listed.id == message.id
    assert listed.content == "   "
    assert publisher.events[0][2]["content"] == "   "


@pytest.mark.asyncio
async def test_send_requires_principal(message_service: MessageService, session_factory) -> None:
    with pytest.raises(UnauthenticatedError):
        await message_service.send(None, BOB, "anonymous")
    with pytest.raises(UnauthenticatedError):
        await message_service.send(AuthContext(user_id=""), BOB, "anonymous")
    assert _row_count(session_factory) == 0


@pytest.mark.asyncio
async def test_send_rejects_unknown_message_type(message_service: MessageService) -> None:
    with pytest.raises(InvalidArgumentError):
        await message_service.send(ALICE_CTX, BOB, "hi", "hologram")


@pytest.mark.asyncio
async def test_send_succeeds_when_notification_fails(
    cipher: CipherEngine,
    store: MessageStore,
    failing_publisher: RecordingPublisher,
    pusher_client,
    session_factory,
) -> None:
    service = MessageService(cipher, store, NotificationDispatcher(failing_publisher), pusher_client)

    message = await service.send(ALICE_CTX, BOB, "still stored")

    assert message.id is not None
    assert _row_count(session_factory) == 1


@pytest.mark.asyncio
async def test_list_decrypts_in_order(message_service: MessageService) -> None:
    for sender, receiver, text in [(ALICE, BOB, "one"), (BOB, ALICE, "two"), (ALICE, BOB, "three")]:
        await message_service.send(AuthContext(user_id=sender), receiver, text)

    listed = await message_service.list_messages(BOB_CTX, ALICE)

    assert [m.content for m in listed] == ["one", "two", "three"]
    assert not any(m.decryption_error for m in listed)


@pytest.mark.asyncio
async def test_corrupted_row_does_not_break_the_batch(
    message_service: MessageService, session_factory
) -> None:
    """Row two has a tampered tag; rows one and three still decrypt."""
    sent = [await message_service.send(ALICE_CTX, BOB, text) for text in ("first", "second", "third")]
    with session_factory() as session, session.begin():
        stored = session.get(ChatMessage, sent[1].id)
        corrupted = bytes([stored.auth_tag[0] ^ 0xFF]) + stored.auth_tag[1:]
        session.execute(
            update(ChatMessage).where(ChatMessage.id == sent[1].id).values(auth_tag=corrupted)
        )

    listed = await message_service.list_messages(ALICE_CTX, BOB)

    assert len(listed) == 3
    assert (listed[0].content, listed[0].decryption_error) == ("first", False)
    assert (listed[1].content, listed[1].decryption_error) == (UNDECRYPTABLE_PLACEHOLDER, True)
    assert (listed[2].content, listed[2].decryption_error) == ("third", False)


@pytest.mark.asyncio
async def test_list_requires_principal(message_service: MessageService) -> None:
    with pytest.raises(UnauthenticatedError):
        await message_service.list_messages(None)


@pytest.mark.asyncio
async def test_lifecycle_pass_through(message_service: MessageService) -> None:
    message = await message_service.send(ALICE_CTX, BOB, "to delete")

    with pytest.raises(MessageForbiddenError):
        await message_service.soft_delete(BOB_CTX, message.id)

    deleted = await message_service.soft_delete(ALICE_CTX, message.id)
    assert deleted.is_deleted is True
    assert await message_service.list_messages(BOB_CTX, ALICE) == []

    hidden = await message_service.list_messages(BOB_CTX, ALICE, include_deleted=True)
    assert [m.is_deleted for m in hidden] == [True]

    restored = await message_service.restore(ALICE_CTX, message.id)
    assert restored.is_deleted is False

    await message_service.hard_delete(ALICE_CTX, message.id)
    assert await message_service.list_messages(ALICE_CTX, include_deleted=True) == []


@pytest.mark.asyncio
async def test_notify_typing_uses_caller_identity(
    message_service: MessageService, publisher: RecordingPublisher
) -> None:
    outcome = await message_service.notify_typing(ALICE_CTX, BOB, "start")

    assert outcome.delivered is True
    assert publisher.events[0][2]["fromUserId"] == ALICE


@pytest.mark.asyncio
async def test_notify_typing_validates_input(message_service: MessageService) -> None:
    with pytest.raises(InvalidArgumentError):
        await message_service.notify_typing(ALICE_CTX, BOB, None)
    with pytest.raises(InvalidArgumentError):
        await message_service.notify_typing(ALICE_CTX, None, "stop")
    with pytest.raises(UnauthenticatedError):
        await message_service.notify_typing(None, BOB, "stop")


def test_authorize_channel(message_service: MessageService) -> None:
    response = message_service.authorize_channel(ALICE_CTX, "1.2", "private-chat-auth0=7Calice=2Esmith")
    assert response["auth"].startswith("test-key:")

    with pytest.raises(ForbiddenError):
        message_service.authorize_channel(ALICE_CTX, "1.2", "private-chat-auth0=7Cbob")
