"""Shared fixtures for unit tests: a temporary sqlite store and a fake HTTP session."""

import json
from typing import Any, Dict, List, Optional

import pytest
import requests

from venue_admin.api_client import AdminApiClient
from venue_admin.database import Database
from venue_admin.session_store import SessionStore


def make_response(
    status: int = 200,
    body: Any = None,
    content_type: str = "application/json",
    text: Optional[str] = None,
) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.encoding = "utf-8"
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
    elif text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = b""
    if content_type:
        response.headers["Content-Type"] = content_type
    return response


class FakeHttpSession(requests.Session):
    """Returns queued responses (or raises queued exceptions) and records every call."""

    def __init__(self) -> None:
        super().__init__()
        self.queue: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def enqueue(self, *items: Any) -> None:
        self.queue.extend(items)

    def request(self, method, url, **kwargs):  # type: ignore[override]
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.queue:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture(autouse=True)
def _unit_test_env(monkeypatch):
    """Keep developer environment overrides out of unit tests."""
    monkeypatch.delenv("VENUE_API_BASE_URL", raising=False)
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)


@pytest.fixture
def db(tmp_path) -> Database:
    return Database(str(tmp_path / "venue_admin_test.db"))


@pytest.fixture
def session_store(db) -> SessionStore:
    return SessionStore(db, cookie_name="adminToken", remember_me_days=30, default_days=1)


@pytest.fixture
def http_session() -> FakeHttpSession:
    return FakeHttpSession()


@pytest.fixture
def expired_calls() -> List[int]:
    return []


@pytest.fixture
def client(session_store, http_session, expired_calls) -> AdminApiClient:
    return AdminApiClient(
        "https://api.example.com/",
        session_store,
        on_session_expired=lambda: expired_calls.append(1),
        timeout=5,
        http_session=http_session,
    )


@pytest.fixture(name="make_response")
def make_response_fixture():
    return make_response
