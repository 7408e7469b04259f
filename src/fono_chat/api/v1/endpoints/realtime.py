# src/fono_chat/api/v1/endpoints/realtime.py
"""Pusher channel authorization and typing indicator endpoints."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import parse_qs

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import ValidationError

from fono_chat.api.v1.dependencies import AuthContextDep, MessageServiceDep, to_http_exception
from fono_chat.core.errors import FonoError, ForbiddenError
from fono_chat.core.security import require_principal
from fono_chat.schemas.realtime import ChannelAuthRequest, TypingNotification
from fono_chat.services.pusher import PusherConfigError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pusher", tags=["realtime"])


async def _read_auth_request(request: Request) -> ChannelAuthRequest:
    """Parse the subscription body, which pusher-js sends form encoded."""
    body = await request.body()
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            data: dict[str, Any] = json.loads(body or b"{}")
        else:
            parsed = parse_qs(body.decode("utf-8"))
            data = {name: values[0] for name, values in parsed.items()}
        return ChannelAuthRequest.model_validate(data)
    except (ValueError, ValidationError) as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="socket_id and channel_name are required",
        ) from err


@router.post("/auth")
async def authorize_channel(
    request: Request,
    ctx: AuthContextDep,
    service: MessageServiceDep,
) -> dict[str, str]:
    """Sign a subscription to the caller's own private channel."""
    try:
        require_principal(ctx)
    except FonoError as err:
        raise to_http_exception(err) from err
    auth_request = await _read_auth_request(request)
    try:
        return service.authorize_channel(ctx, auth_request.socket_id, auth_request.channel_name)
    except ForbiddenError as err:
        # Never hint at the expected channel name.
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden") from err
    except FonoError as err:
        raise to_http_exception(err) from err
    except PusherConfigError as err:
        logger.error("Pusher authorization error: %s", err)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Pusher authorization failed",
        ) from err


@router.post("/typing")
async def send_typing(
    notification: TypingNotification,
    ctx: AuthContextDep,
    service: MessageServiceDep,
) -> dict[str, Any]:
    """Relay a typing start/stop indicator to the target user."""
    try:
        outcome = await service.notify_typing(
            ctx, notification.target_user_id, notification.action
        )
    except FonoError as err:
        raise to_http_exception(err) from err
    if outcome.delivered:
        message = f"Typing {notification.action} event sent successfully"
    else:
        message = f"Typing {notification.action} event could not be delivered"
    return {
        "message": message,
        "delivered": outcome.delivered,
    }
