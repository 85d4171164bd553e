"""Shared fixtures: a controllable clock, a fresh CallState and a TestClient."""

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from app import app
from deps import get_admin_secret, get_call_provider, get_call_state, get_public_host
from state import CallState

ADMIN_SECRET = "test-admin-secret"
PUBLIC_HOST = "https://calls.example.com"
START = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = START):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeConnection:
    """Stands in for a starlette WebSocket in relay unit tests."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def send_text(self, data: str):
        if self.fail:
            raise RuntimeError("socket is gone")
        self.sent.append(data)

    def close(self):
        self.client_state = WebSocketState.DISCONNECTED


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state(clock) -> CallState:
    return CallState(clock=clock)


@pytest.fixture
def provider() -> str:
    return "relay"


@pytest.fixture
def client(state, provider) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_call_state] = lambda: state
    app.dependency_overrides[get_admin_secret] = lambda: ADMIN_SECRET
    app.dependency_overrides[get_public_host] = lambda: PUBLIC_HOST
    app.dependency_overrides[get_call_provider] = lambda: provider

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {ADMIN_SECRET}"}
