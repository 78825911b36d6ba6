"""Shared fixtures: in-process upstream, fake collaborators, app factory."""

from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from core.config import CONFIG_FILE_ENV, Config
from core.request_types import AuditRecord

UPSTREAM = "https://upstream.test"
MOUNT = "/api/proxy"


def make_config(**sections: dict[str, Any]) -> Config:
    """Config pointing at the mock upstream, with per-section overrides."""
    data: dict[str, dict[str, Any]] = {"upstream": {"base_url": UPSTREAM}}
    for section, values in sections.items():
        data.setdefault(section, {}).update(values)
    return Config.model_validate(data)


class MockUpstream:
    """Records every upstream-bound request and answers with a fixed response."""

    def __init__(
        self,
        *,
        status_code: int = 200,
        body: bytes = b'{"result": "ok"}',
        headers: list[tuple[str, str]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []
        self.status_code = status_code
        self.body = body
        self.headers = headers if headers is not None else [("content-type", "application/json")]
        self.error = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(request.content)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.body, headers=self.headers)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def calls(self) -> int:
        return len(self.requests)


class FakeVerifier:
    def __init__(self, users: dict[str, str] | None = None, error: Exception | None = None) -> None:
        self.users = users if users is not None else {"good-token": "user-123"}
        self.error = error
        self.calls: list[str] = []

    async def verify(self, token: str) -> str | None:
        self.calls.append(token)
        if self.error is not None:
            raise self.error
        return self.users.get(token)


class FakeQuotaCounter:
    def __init__(self, exceeded: bool = False, error: Exception | None = None) -> None:
        self._exceeded = exceeded
        self.error = error
        self.calls: list[tuple[str, int]] = []

    async def exceeded(self, user_id: str, limit: int) -> bool:
        self.calls.append((user_id, limit))
        if self.error is not None:
            raise self.error
        return self._exceeded


class RecordingSink:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.records: list[AuditRecord] = []

    async def write(self, record: AuditRecord) -> None:
        if self.fail:
            raise RuntimeError("audit store down")
        self.records.append(record)


class RecordingLogger:
    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.errors: list[tuple[str, int, str]] = []

    def log_request(self, method, route, status, *, user_id=None, duration_ms=0.0) -> None:
        self.requests.append(
            {"method": method, "route": route, "status": status, "user_id": user_id}
        )

    def log_error(self, route: str, status: int, message: str) -> None:
        self.errors.append((route, status, message))


@pytest.fixture(autouse=True)
def isolated_config_file(monkeypatch, tmp_path):
    monkeypatch.setenv(CONFIG_FILE_ENV, str(tmp_path / "config.json"))


@pytest.fixture
def upstream():
    return MockUpstream()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def request_logger():
    return RecordingLogger()


@pytest.fixture
def make_client(upstream, verifier, sink, request_logger):
    """Build a TestClient with lifespan started; collaborators can be overridden."""
    clients: list[TestClient] = []

    def _make(config: Config | None = None, **overrides: Any) -> TestClient:
        kwargs: dict[str, Any] = {
            "verifier": verifier,
            "audit_sink": sink,
            "upstream_transport": upstream.transport,
        }
        kwargs.update(overrides)
        app = create_app(config or make_config(), request_logger, **kwargs)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()
