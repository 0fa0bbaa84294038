"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import pytest

from deployment_tracker.storage.database import DatabaseManager


class FakeResponse:
    """Minimal stand-in for ``aiohttp.ClientResponse``."""

    def __init__(
        self,
        status: int = 200,
        payload: Any = None,
        *,
        reason: str = "OK",
        text: str | None = None,
    ) -> None:
        self.status = status
        self.reason = reason
        self._payload = payload
        self._text = text

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *args: Any) -> None:
        return None

    async def json(self, content_type: str | None = None) -> Any:
        if self._text is not None and self._payload is None:
            return json.loads(self._text)
        return self._payload

    async def text(self) -> str:
        if self._text is not None:
            return self._text
        return json.dumps(self._payload)


class FakeSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses: FakeResponse | BaseException) -> None:
        self.responses: list[FakeResponse | BaseException] = list(responses)
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def contract_address() -> str:
    """Sample contract address for testing."""
    return "0x6A000a123a55b0E15CeCff1FE5f1D5B56FCB7f92"


@pytest.fixture
async def db(tmp_path) -> AsyncIterator[DatabaseManager]:
    """File-backed SQLite database with the schema created."""
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}")
    await manager.init_schema_async()
    yield manager
    await manager.dispose_async()


@pytest.fixture
def response() -> type[FakeResponse]:
    """Factory for fake HTTP responses: ``response(200, {...})``."""
    return FakeResponse


@pytest.fixture
def http_session() -> type[FakeSession]:
    """Factory for fake HTTP sessions: ``http_session(response(200, {}), ...)``."""
    return FakeSession
