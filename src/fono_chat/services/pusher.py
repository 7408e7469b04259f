"""Adapter over the Pusher Channels SDK.

This module provides the PusherClient class that handles all communication
between the chat backend and Pusher (or a Pusher-compatible server). It
includes:

- Event publishing through ``pusher.Pusher.trigger``, run in the threadpool
- Private channel authorization signatures for client subscriptions
- Mapping of SDK and transport failures onto the service error taxonomy
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import requests
from fastapi.concurrency import run_in_threadpool
from pusher import Pusher
from pusher.errors import PusherError

from fono_chat.core.errors import InvalidArgumentError, PublishError
from fono_chat.core.settings import Settings

# Configure logger for this module
logger = logging.getLogger(__name__)

# Pusher rejects event payloads above 10KB.
MAX_EVENT_DATA_BYTES = 10 * 1024


class PusherConfigError(RuntimeError):
    """Raised when credentials needed for an operation are missing or invalid."""


@dataclass(frozen=True)
class PusherConfig:
    """Immutable configuration for Pusher operations."""

    app_id: str
    key: str
    secret: str
    host: str
    use_tls: bool = True
    timeout_seconds: float = 5.0

    @property
    def configured(self) -> bool:
        return bool(self.app_id and self.key and self.secret)


def load_pusher_config(settings: Settings) -> PusherConfig:
    """Build configuration object from settings."""
    return PusherConfig(
        app_id=settings.pusher_app_id,
        key=settings.pusher_key,
        secret=settings.pusher_secret,
        host=settings.pusher_api_host,
        use_tls=settings.pusher_use_tls,
        timeout_seconds=float(settings.pusher_timeout_seconds),
    )


class PusherClient:
    """Publisher and channel signer backed by the official Pusher SDK.

    ``backend`` and ``backend_options`` are handed to ``pusher.Pusher``
    unchanged; the default is the SDK's requests backend.
    """

    def __init__(
        self,
        config: PusherConfig,
        *,
        backend: type | None = None,
        **backend_options: Any,
    ) -> None:
        self.config = config
        self._sdk: Pusher | None = None
        if config.configured:
            try:
                self._sdk = Pusher(
                    app_id=config.app_id,
                    key=config.key,
                    secret=config.secret,
                    host=config.host,
                    ssl=config.use_tls,
                    timeout=config.timeout_seconds,
                    backend=backend,
                    **backend_options,
                )
            except (TypeError, ValueError) as exc:
                raise PusherConfigError(f"Invalid Pusher configuration: {exc}") from exc

    @property
    def enabled(self) -> bool:
        return self.config.configured and self._sdk is not None

    async def publish(self, channel: str, event: str, payload: Mapping[str, Any]) -> None:
        """Trigger ``event`` on ``channel``.

        Raises:
            PublishError: On missing configuration, oversized payloads,
                network failures, timeouts or error responses.
        """
        if not self.enabled:
            raise PublishError("Realtime service is not configured.")

        data = json.dumps(payload, default=str)
        if len(data.encode("utf-8")) > MAX_EVENT_DATA_BYTES:
            raise PublishError("Realtime event payload too large.")

        try:
            await run_in_threadpool(self._sdk.trigger, channel, event, data)
        except PusherError as exc:
            raise PublishError(f"Pusher rejected the event: {exc}") from exc
        except requests.RequestException as exc:
            raise PublishError(f"Pusher request failed: {exc}") from exc
        except ValueError as exc:
            raise PublishError(f"Pusher refused the event: {exc}") from exc
        logger.debug("Published %s to %s", event, channel)

    def authorize_channel(self, socket_id: str, channel_name: str) -> dict[str, str]:
        """Sign a private channel subscription for ``socket_id``.

        Raises:
            InvalidArgumentError: If the socket id or channel name is malformed.
            PusherConfigError: If the app key or secret is missing.
        """
        if not self.config.configured or self._sdk is None:
            raise PusherConfigError("Pusher credentials are not configured")
        try:
            return self._sdk.authenticate(channel=channel_name, socket_id=socket_id)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError("Invalid socket id or channel name.") from exc
