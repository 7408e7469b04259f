"""Authenticated principal extracted from bearer tokens."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from jose import JWTError, jwt

from fono_chat.core.errors import UnauthenticatedError
from fono_chat.core.settings import Settings


@dataclass(frozen=True)
class AuthContext:
    """Verified identity of the caller, built once per request.

    Attributes:
        user_id: Opaque principal identifier (the token ``sub`` claim).
        claims: Remaining verified token claims.
    """

    user_id: str
    claims: Mapping[str, Any] = field(default_factory=dict)


def decode_access_token(token: str, settings: Settings) -> AuthContext:
    """Verify a JWT and return the principal it names.

    Raises:
        UnauthenticatedError: If the token is invalid, expired, or has no subject.
    """
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=options,
        )
    except JWTError as err:
        raise UnauthenticatedError("Could not validate credentials") from err

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise UnauthenticatedError("Could not validate credentials")
    return AuthContext(user_id=subject, claims=claims)


def require_principal(ctx: AuthContext | None) -> str:
    """Return the caller's user id or fail with ``UnauthenticatedError``."""
    if ctx is None or not ctx.user_id:
        raise UnauthenticatedError()
    return ctx.user_id
