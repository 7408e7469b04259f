# tests/conftest.py
from __future__ import annotations

import json
import os
import time
from collections.abc import Callable, Generator, Iterator, Mapping
from datetime import UTC, datetime, timedelta
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt
from pusher.http import process_response
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

TEST_KEY_HEX = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
TEST_JWT_SECRET = "test-jwt-secret"

os.environ.setdefault("ENCRYPTION_KEY", TEST_KEY_HEX)
os.environ.setdefault("JWT_SECRET", TEST_JWT_SECRET)

from fono_chat.core.errors import PublishError
from fono_chat.core.settings import Settings
from fono_chat.db.session import create_session_factory, create_tables, drop_tables
from fono_chat.main import create_app
from fono_chat.services.cipher import CipherEngine
from fono_chat.services.message_service import MessageService
from fono_chat.services.message_store import MessageStore
from fono_chat.services.notifications import NotificationDispatcher
from fono_chat.services.pusher import PusherClient, load_pusher_config

ALICE = "auth0|alice.smith"
BOB = "auth0|bob"
CAROL = "google-oauth2|carol"


class RecordingPublisher:
    """Publisher double that records events and can be told to fail."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []
        self.error: Exception | None = None

    async def publish(self, channel: str, event: str, payload: Mapping[str, Any]) -> None:
        if self.error is not None:
            raise self.error
        self.events.append((channel, event, dict(payload)))


class FakePusherServer:
    """Stands in for the Pusher REST API behind the SDK's backend hook."""

    def __init__(self) -> None:
        self.requests: list[Any] = []
        self.status_code = 200
        self.error: Exception | None = None

    def handle(self, request: Any) -> Any:
        if self.error is not None:
            raise self.error
        self.requests.append(request)
        return process_response(self.status_code, "{}")

    @property
    def events(self) -> list[dict[str, Any]]:
        bodies = [json.loads(request.body) for request in self.requests]
        return [
            {"name": body["name"], "channels": body["channels"], "data": json.loads(body["data"])}
            for body in bodies
        ]


class FakePusherBackend:
    """``pusher`` HTTP backend that hands every request to a FakePusherServer."""

    def __init__(self, client: Any, server: FakePusherServer) -> None:
        self.client = client
        self.server = server

    def send_request(self, request: Any) -> Any:
        return self.server.handle(request)


class SteppingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self._start = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        self._ticks = count()

    def __call__(self) -> datetime:
        return self._start + timedelta(seconds=next(self._ticks))


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return Settings(
        encryption_key=TEST_KEY_HEX,
        jwt_secret=TEST_JWT_SECRET,
        database_url="sqlite://",
        pusher_app_id="4242",
        pusher_key="test-key",
        pusher_secret="test-secret",
        pusher_host="pusher.test",
        pusher_use_tls=False,
        log_level="DEBUG",
    )


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture()
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture()
def store(session_factory: sessionmaker[Session], clock: SteppingClock) -> MessageStore:
    return MessageStore(session_factory, clock=clock)


@pytest.fixture(scope="session")
def cipher() -> CipherEngine:
    return CipherEngine.from_hex(TEST_KEY_HEX)


@pytest.fixture()
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture()
def failing_publisher() -> RecordingPublisher:
    publisher = RecordingPublisher()
    publisher.error = PublishError("Pusher responded with 503")
    return publisher


@pytest.fixture()
def pusher_server() -> FakePusherServer:
    return FakePusherServer()


@pytest.fixture()
def pusher_client(test_settings: Settings, pusher_server: FakePusherServer) -> PusherClient:
    return PusherClient(
        load_pusher_config(test_settings),
        backend=FakePusherBackend,
        server=pusher_server,
    )


@pytest.fixture()
def message_service(
    cipher: CipherEngine,
    store: MessageStore,
    publisher: RecordingPublisher,
    pusher_client: PusherClient,
) -> MessageService:
    return MessageService(
        cipher=cipher,
        store=store,
        dispatcher=NotificationDispatcher(publisher),
        signer=pusher_client,
    )


@pytest.fixture()
def app(test_settings: Settings, engine: Engine, pusher_client: PusherClient) -> FastAPI:
    return create_app(test_settings, engine=engine, pusher_client=pusher_client)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def create_access_token(user_id: str, **claims: Any) -> str:
    now = int(time.time())
    payload = {"sub": user_id, "iat": now, "exp": now + 3600, **claims}
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


@pytest.fixture()
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Return a factory building Authorization headers for a user id."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture()
def alice_headers(auth_headers: Callable[[str], dict[str, str]]) -> dict[str, str]:
    return auth_headers(ALICE)


@pytest.fixture()
def bob_headers(auth_headers: Callable[[str], dict[str, str]]) -> dict[str, str]:
    return auth_headers(BOB)
