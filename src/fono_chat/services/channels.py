# src/fono_chat/services/channels.py
"""Realtime channel naming and subscription policy.

Private channel names embed the user id using a reversible escape: characters
in ``[A-Za-z0-9_-@,;]`` are kept, everything else (``=`` included) becomes
``=XX`` per UTF-8 byte. Because the escape character is itself escaped the
mapping decodes uniquely, so two different user ids can never share a channel.

    auth0|abc.def  ->  private-chat-auth0=7Cabc=2Edef
"""

from __future__ import annotations

import hmac
import logging
import re
import string

from fono_chat.core.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

PRIVATE_CHANNEL_PREFIX = "private-chat-"
PUBLIC_CHANNEL = "public-chat"
ESCAPE_CHAR = "="
# Pusher rejects longer channel names.
MAX_CHANNEL_NAME_LENGTH = 164

_SAFE_CHARS = frozenset(string.ascii_letters + string.digits + "_-@,;")
_ESCAPED_BYTE = re.compile(r"=([0-9A-F]{2})")


def encode_user_id(user_id: str) -> str:
    parts: list[str] = []
    for char in user_id:
        if char in _SAFE_CHARS:
            parts.append(char)
        else:
            parts.extend(f"{ESCAPE_CHAR}{byte:02X}" for byte in char.encode("utf-8"))
    return "".join(parts)


def decode_user_id(encoded: str) -> str:
    """Invert ``encode_user_id``.

    Raises:
        InvalidArgumentError: If ``encoded`` could not have been produced by
            the encoder.
    """
    raw = bytearray()
    index = 0
    while index < len(encoded):
        char = encoded[index]
        if char == ESCAPE_CHAR:
            match = _ESCAPED_BYTE.match(encoded, index)
            if match is None:
                raise InvalidArgumentError("Malformed channel name.")
            raw.append(int(match.group(1), 16))
            index = match.end()
            continue
        if char not in _SAFE_CHARS:
            raise InvalidArgumentError("Malformed channel name.")
        raw.extend(char.encode("ascii"))
        index += 1
    try:
        decoded = raw.decode("utf-8")
    except UnicodeDecodeError as err:
        raise InvalidArgumentError("Malformed channel name.") from err
    if encode_user_id(decoded) != encoded:
        # Escaped a byte that did not need escaping; not canonical.
        raise InvalidArgumentError("Malformed channel name.")
    return decoded


def private_channel_for(user_id: str) -> str:
    """Return the private channel that only ``user_id`` may subscribe to."""
    if not user_id:
        raise InvalidArgumentError("User id is required to derive a channel.")
    channel = f"{PRIVATE_CHANNEL_PREFIX}{encode_user_id(user_id)}"
    if len(channel) > MAX_CHANNEL_NAME_LENGTH:
        raise InvalidArgumentError("User id is too long for a realtime channel.")
    return channel


def user_id_for_channel(channel_name: str) -> str:
    if not channel_name.startswith(PRIVATE_CHANNEL_PREFIX):
        raise InvalidArgumentError("Not a private chat channel.")
    return decode_user_id(channel_name[len(PRIVATE_CHANNEL_PREFIX):])


def target_channel(receiver_id: str | None) -> str:
    """Channel a new message is fanned out to."""
    if receiver_id:
        return private_channel_for(receiver_id)
    return PUBLIC_CHANNEL


def authorize_subscription(user_id: str, channel_name: str) -> bool:
    """Return True only when ``channel_name`` is the caller's own private channel.

    Denials are logged with the expected name; callers must not echo it back.
    """
    try:
        expected = private_channel_for(user_id)
    except InvalidArgumentError:
        logger.warning("Channel auth denied: cannot derive channel for user %r", user_id)
        return False
    if hmac.compare_digest(expected.encode("utf-8"), channel_name.encode("utf-8")):
        return True
    logger.warning(
        "Forbidden: user %s tried to access channel %s (expected %s)",
        user_id,
        channel_name,
        expected,
    )
    return False
