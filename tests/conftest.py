import pathlib
import sys

import pytest
from fastapi.testclient import TestClient

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.config import StoreSettings
from app.main import create_app
from app.store import DocumentStore

TEST_TTL_MS = 60_000
TEST_SIGNING_SECRET = "token_test_secret"


class FakeClock:
    """Monotonic clock that only moves when a test says so."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "CACHE_DURATION_MILLIS",
        "CACHE_SWEEP_MILLIS",
        "ADDITIONAL_FIELDS",
        "JSON_PATCH_STAMPS_AUDIT",
        "TOKEN_SIGNING_SECRET",
        "TOKEN_ISSUER",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> DocumentStore:
    return DocumentStore(ttl_seconds=TEST_TTL_MS / 1000.0, clock=clock)


@pytest.fixture
def settings() -> StoreSettings:
    return StoreSettings(ttl_ms=TEST_TTL_MS, sweep_interval_ms=TEST_TTL_MS, token_signing_secret=TEST_SIGNING_SECRET)


@pytest.fixture
def client(settings: StoreSettings, clock: FakeClock):
    app = create_app(settings, clock=clock)
    with TestClient(app) as test_client:
        yield test_client
