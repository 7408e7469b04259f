# tests/services/test_channels.py
"""Tests for private channel naming and subscription policy."""

import pytest

from fono_chat.core.errors import InvalidArgumentError
from fono_chat.services import channels
from fono_chat.services.channels import (
    MAX_CHANNEL_NAME_LENGTH,
    PUBLIC_CHANNEL,
    authorize_subscription,
    decode_user_id,
    private_channel_for,
    target_channel,
    user_id_for_channel,
)


def test_known_encoding() -> None:
    assert private_channel_for("auth0|abc.def") == "private-chat-auth0=7Cabc=2Edef"


def test_plain_ids_pass_through() -> None:
    assert private_channel_for("user_42-x@example,com;") == "private-chat-user_42-x@example,com;"


def test_channel_derivation_is_stable() -> None:
    first = private_channel_for("google-oauth2|1234567890")
    assert all(private_channel_for("google-oauth2|1234567890") == first for _ in range(100))


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ("auth0|abc", "auth0_abc"),
        ("a.b", "a-b"),
        ("a=7Cb", "a|b"),
        ("x=", "x=3D"),
        ("é", "=C3=A9"),
    ],
)
def test_lookalike_ids_get_distinct_channels(left: str, right: str) -> None:
    """Ids that a plain character substitution would merge stay apart."""
    assert private_channel_for(left) != private_channel_for(right)


@pytest.mark.parametrize(
    "user_id",
    ["auth0|abc.def", "plain", "with space", "a=b", "ключ", "emoji\U0001f600", "|.|.="],
)
def test_channel_name_decodes_back_to_user(user_id: str) -> None:
    assert user_id_for_channel(private_channel_for(user_id)) == user_id


@pytest.mark.parametrize("encoded", ["=7c", "=G1", "abc=", "=41", "a|b", "=FF"])
def test_decode_rejects_non_canonical_input(encoded: str) -> None:
    with pytest.raises(InvalidArgumentError):
        decode_user_id(encoded)


def test_user_id_for_public_channel_is_rejected() -> None:
    with pytest.raises(InvalidArgumentError):
        user_id_for_channel(PUBLIC_CHANNEL)


def test_empty_user_id_is_rejected() -> None:
    with pytest.raises(InvalidArgumentError):
        private_channel_for("")


def test_overlong_user_id_is_rejected() -> None:
    with pytest.raises(InvalidArgumentError):
        private_channel_for("|" * MAX_CHANNEL_NAME_LENGTH)


def test_target_channel_falls_back_to_public() -> None:
    assert target_channel(None) == PUBLIC_CHANNEL
    assert target_channel("") == PUBLIC_CHANNEL
    assert target_channel("bob") == "private-chat-bob"


def test_authorize_own_channel() -> None:
    assert authorize_subscription("auth0|abc.def", "private-chat-auth0=7Cabc=2Edef") is True


@pytest.mark.parametrize(
    "channel_name",
    [
        "private-chat-auth0=7Cother",
        "private-chat-auth0_abc-def",
        PUBLIC_CHANNEL,
        "",
        "presence-chat-auth0=7Cabc=2Edef",
    ],
)
def test_authorize_rejects_foreign_channels(channel_name: str) -> None:
    assert authorize_subscription("auth0|abc.def", channel_name) is False


def test_denial_is_logged_with_expected_name(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING", logger=channels.__name__):
        assert authorize_subscription("bob", "private-chat-alice") is False
    assert "private-chat-bob" in caplog.text


def test_authorize_with_unencodable_user_is_denied() -> None:
    assert authorize_subscription("", "private-chat-") is False
