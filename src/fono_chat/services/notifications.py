# src/fono_chat/services/notifications.py
"""Best-effort realtime fan-out of message and typing events.

Persistence is the source of truth: a failed publish is logged and reported
through ``PublishOutcome`` but never raised. Delivery is at most once with no
retry queue; offline clients catch up by listing messages.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final, Protocol

from fono_chat.core.errors import FonoError, InvalidArgumentError
from fono_chat.db.time import utcnow
from fono_chat.models import ChatMessage
from fono_chat.services import channels

logger = logging.getLogger(__name__)

NEW_MESSAGE_EVENT: Final[str] = "new-message"
TYPING_ACTIONS: Final[frozenset[str]] = frozenset({"start", "stop"})


class Publisher(Protocol):
    async def publish(self, channel: str, event: str, payload: Mapping[str, Any]) -> None:
        ...


@dataclass(frozen=True)
class PublishOutcome:
    """Result of a best-effort publish; callers may ignore it."""

    delivered: bool
    channel: str | None
    event: str
    error: str | None = None


def typing_event_name(action: str) -> str:
    return f"user-typing-{action}"


def new_message_payload(message: ChatMessage, plaintext: str) -> dict[str, Any]:
    """Event body announcing a freshly stored message."""
    return {
        "id": message.id,
        "senderId": message.sender_id,
        "receiverId": message.receiver_id,
        "content": plaintext,
        "messageType": message.message_type,
        "createdAt": message.created_at.isoformat(),
        "readStatus": message.read_status,
    }


class NotificationDispatcher:
    """Publishes delivery and typing events to the right channel."""

    def __init__(self, publisher: Publisher) -> None:
        self._publisher = publisher

    async def _publish(
        self,
        channel: str,
        event: str,
        payload: Mapping[str, Any],
    ) -> PublishOutcome:
        try:
            await self._publisher.publish(channel, event, payload)
        except FonoError as exc:
            logger.warning("Failed to publish %s to %s: %s", event, channel, exc.detail)
            return PublishOutcome(False, channel, event, exc.detail)
        except Exception as exc:
            logger.error("Unexpected error publishing %s to %s", event, channel, exc_info=True)
            return PublishOutcome(False, channel, event, str(exc))
        return PublishOutcome(True, channel, event)

    async def publish_new_message(self, message: ChatMessage, plaintext: str) -> PublishOutcome:
        """Announce ``message`` to its receiver, or to everyone if it has none."""
        try:
            channel = channels.target_channel(message.receiver_id)
        except InvalidArgumentError as exc:
            logger.warning(
                "No realtime channel for receiver of message %s: %s", message.id, exc.detail
            )
            return PublishOutcome(False, None, NEW_MESSAGE_EVENT, exc.detail)
        return await self._publish(
            channel, NEW_MESSAGE_EVENT, new_message_payload(message, plaintext)
        )

    async def publish_typing(
        self,
        from_user_id: str,
        target_user_id: str,
        action: str,
    ) -> PublishOutcome:
        """Send an ephemeral typing indicator to ``target_user_id``.

        Raises:
            InvalidArgumentError: Unknown action or missing target.
        """
        if action not in TYPING_ACTIONS:
            raise InvalidArgumentError('Invalid action. Must be "start" or "stop"')
        if not target_user_id:
            raise InvalidArgumentError("Target user ID is required")

        channel = channels.private_channel_for(target_user_id)
        event = typing_event_name(action)
        outcome = await self._publish(
            channel,
            event,
            {
                "fromUserId": from_user_id,
                "action": action,
                "timestamp": utcnow().isoformat(),
            },
        )
        if outcome.delivered:
            logger.info("Typing %s event sent to channel: %s", action, channel)
        return outcome
