"""
Shared test fixtures.

Provides the OTP collaborators wired to in-memory fakes:
  • an InMemoryKeyValueStore driven by a manual clock
  • a RecordingMailer instead of SMTP
  • a user store on an in-memory SQLite database
  • a low-iteration password hasher

The `client` fixture runs the full app lifespan against a temp SQLite
file, with the same store and mailer, so tests can inspect OTP state
behind the HTTP calls.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auth_service.db import UserStore
from auth_service.main import create_app
from auth_service.services.accounts import AccountService
from auth_service.services.kv_store import InMemoryKeyValueStore
from auth_service.services.otp import OtpSender
from auth_service.services.otp_limiter import OtpRateLimiter
from auth_service.services.passwords import PasswordHasher
from auth_service.services.tokens import TokenService
from tests.mocks.services import FakeClock, RecordingMailer

# Few iterations; keeps hashing fast in tests
_TEST_HASH_METHOD = "pbkdf2:sha256:1000"


# ── Collaborators ──────────────────────────────────────────────────────────


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(method=_TEST_HASH_METHOD)


@pytest.fixture()
def limiter(store: InMemoryKeyValueStore) -> OtpRateLimiter:
    return OtpRateLimiter(store)


@pytest.fixture()
def sender(store: InMemoryKeyValueStore, mailer: RecordingMailer) -> OtpSender:
    return OtpSender(store, mailer)


@pytest.fixture()
async def users():
    user_store = await UserStore.connect(":memory:")
    yield user_store
    await user_store.close()


@pytest.fixture()
def accounts(users, limiter, sender, hasher) -> AccountService:
    return AccountService(
        users=users,
        limiter=limiter,
        sender=sender,
        tokens=TokenService(),
        hasher=hasher,
    )


# ── HTTP ───────────────────────────────────────────────────────────────────


@pytest.fixture()
def _test_env(monkeypatch):
    """Disable per-IP rate limiting; test_rate_limit re-enables it."""
    from auth_service.rate_limit import limiter as _limiter

    monkeypatch.setattr(_limiter, "enabled", False)
    return _limiter


@pytest.fixture()
def client(_test_env, tmp_path, store, mailer, hasher) -> TestClient:
    """
    FastAPI TestClient backed by a temp database and in-memory fakes.

    Uses a context manager so the lifespan runs (DB init/shutdown).
    """
    app = create_app(
        db_path=str(tmp_path / "test.db"),
        kv_store=store,
        mailer=mailer,
        hasher=hasher,
    )
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
