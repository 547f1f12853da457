"""Pytest configuration - loads .env for live tests and provides fake collaborators for the client."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

from mvp_api.core.client import ApiClient
from mvp_api.core.types import ClientIdentity, Credentials

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

MVP_ENV_VARS = (
    "MVP_CLIENT_ID",
    "MVP_CLIENT_SECRET",
    "MVP_SUBSCRIPTION_KEY",
    "MVP_LEGACY_APP",
    "MVP_BASE_URL",
    "MVP_ACCESS_TOKEN",
    "MVP_REFRESH_TOKEN",
)

# Unit tests run with a clean environment; live tests get these values back
LIVE_ENV = {name: os.environ[name] for name in MVP_ENV_VARS if os.environ.get(name)}


@dataclass
class RecordedCall:
    """One request seen by FakeExecutor."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None
    cancel: Any


@dataclass
class FakeExecutor:
    """Replays queued results; exception instances are raised instead of returned."""

    results: list[Any] = field(default_factory=list)
    calls: list[RecordedCall] = field(default_factory=list)

    def execute(self, method, url, headers, body=None, cancel=None):
        self.calls.append(RecordedCall(method, url, dict(headers), body, cancel))
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        return result


@dataclass
class FakeRefresher:
    """Returns the queued credentials (or None), raises queued exceptions, records its inputs."""

    results: list[Credentials | None] = field(default_factory=list)
    calls: list[tuple[Credentials | None, ClientIdentity]] = field(default_factory=list)

    def exchange_refresh_token(self, credentials, identity):
        self.calls.append((credentials, identity))
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep values from .env or the shell out of unit tests."""
    for name in MVP_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def refresher() -> FakeRefresher:
    return FakeRefresher()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(access_token="old-access", refresh_token="old-refresh")


@pytest.fixture
def client(executor, refresher, credentials) -> ApiClient:
    return ApiClient(
        client_id="client-id",
        client_secret="client-secret",
        subscription_key="sub-key",
        credentials=credentials,
        base_url="https://mvp.example.test/api",
        executor=executor,
        refresher=refresher,
    )


@pytest.fixture
def live_client(monkeypatch) -> ApiClient:
    """Client configured from .env / shell. Skips unless credentials are available."""
    if not LIVE_ENV.get("MVP_SUBSCRIPTION_KEY") or not LIVE_ENV.get("MVP_ACCESS_TOKEN"):
        pytest.skip("MVP_SUBSCRIPTION_KEY and MVP_ACCESS_TOKEN required")
    for name, value in LIVE_ENV.items():
        monkeypatch.setenv(name, value)
    return ApiClient()
