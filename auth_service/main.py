"""
FastAPI application for the auth service.

``create_app`` wires the collaborators (user database, key-value store,
mailer) inside the lifespan so tests can pass in-memory replacements.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from auth_service import config
from auth_service.db import UserStore
from auth_service.errors import register_error_handlers
from auth_service.rate_limit import limiter
from auth_service.routers import auth, health, user, utils
from auth_service.services.accounts import AccountService
from auth_service.services.email import Mailer, SmtpMailer
from auth_service.services.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
)
from auth_service.services.otp import OtpSender
from auth_service.services.otp_limiter import OtpRateLimiter
from auth_service.services.passwords import PasswordHasher
from auth_service.services.tokens import TokenService

logger = logging.getLogger(__name__)


def build_kv_store(backend: str = config.KV_BACKEND) -> KeyValueStore:
    if backend == "redis":
        logger.info("Using Redis key-value store at %s", config.REDIS_URL)
        return RedisKeyValueStore.from_url(config.REDIS_URL)
    if backend == "memory":
        logger.warning("Using in-memory key-value store; OTP state is per-process")
        return InMemoryKeyValueStore()
    raise ValueError(f"Unknown KV_BACKEND: {backend!r}")


def create_app(
    *,
    db_path: str | None = None,
    kv_store: KeyValueStore | None = None,
    mailer: Mailer | None = None,
    hasher: PasswordHasher | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        users = await UserStore.connect(db_path or config.DB_PATH)
        store = kv_store or build_kv_store()
        app.state.accounts = AccountService(
            users=users,
            limiter=OtpRateLimiter(store),
            sender=OtpSender(store, mailer or SmtpMailer()),
            tokens=TokenService(),
            hasher=hasher or PasswordHasher(),
        )
        logger.info("Auth service started (%s)", config.ENVIRONMENT)
        try:
            yield
        finally:
            if kv_store is None:
                await store.close()
            await users.close()
            logger.info("Auth service stopped")

    app = FastAPI(
        title="Auth Service",
        description="Registration with email OTP, login, token refresh and password reset",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    register_error_handlers(app)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.CLIENT_URL],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        expose_headers=["set-cookie"],
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(user.router)
    app.include_router(utils.router)
    return app


app = create_app()
