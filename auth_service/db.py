"""
SQLite user store using aiosqlite.

Holds one row per account; ``email`` and ``username`` are each unique.
The table is created automatically on first connect.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

import aiosqlite

from auth_service.models import User

logger = logging.getLogger(__name__)


class DuplicateUserError(ValueError):
    """Raised when an insert collides with an existing email or username."""


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    email       TEXT NOT NULL UNIQUE,
    username    TEXT NOT NULL UNIQUE,
    password    TEXT,               -- werkzeug password hash
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_user(row: aiosqlite.Row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        username=row["username"],
        password=row["password"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# ══════════════════════════════════════════════════════════════════════════
#                         USER REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


class UserStore:
    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._db = conn

    @classmethod
    async def connect(cls, path: str) -> UserStore:
        """Open the database and create tables if they don't exist."""
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row  # dict-like rows
        if path != ":memory:":
            await conn.execute("PRAGMA journal_mode=WAL")
        await conn.executescript(_SCHEMA)
        await conn.commit()
        logger.info("User database initialized at %s", path)
        return cls(conn)

    async def close(self) -> None:
        await self._db.close()
        logger.info("User database connection closed")

    async def _fetch_one(self, column: str, value: str) -> User | None:
        async with self._db.execute(
            f"SELECT * FROM users WHERE {column} = ?", (value,)
        ) as cur:
            row = await cur.fetchone()
        return _row_to_user(row) if row else None

    async def find_by_email(self, email: str) -> User | None:
        return await self._fetch_one("email", email)

    async def find_by_username(self, username: str) -> User | None:
        return await self._fetch_one("username", username)

    async def find_by_id(self, user_id: str) -> User | None:
        return await self._fetch_one("id", user_id)

    async def create(
        self,
        *,
        name: str,
        email: str,
        username: str,
        password: str | None,
    ) -> User:
        """Insert a new user and return it."""
        user_id = str(uuid4())
        now = _now_iso()
        try:
            await self._db.execute(
                """
                INSERT INTO users (id, name, email, username, password, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, name, email, username, password, now, now),
            )
            await self._db.commit()
        except sqlite3.IntegrityError as e:
            await self._db.rollback()
            raise DuplicateUserError(f"email or username already exists: {e}") from e
        return await self.find_by_id(user_id)  # type: ignore[return-value]

    async def update_password(self, email: str, password: str) -> User | None:
        """Replace the stored password hash for *email*."""
        await self._db.execute(
            "UPDATE users SET password = ?, updated_at = ? WHERE email = ?",
            (password, _now_iso(), email),
        )
        await self._db.commit()
        return await self.find_by_email(email)
