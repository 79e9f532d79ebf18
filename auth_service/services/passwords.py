"""Password hashing with werkzeug's salted key-derivation hashes."""

from __future__ import annotations

import asyncio

from werkzeug.security import check_password_hash, generate_password_hash

from auth_service.config import PASSWORD_HASH_METHOD


def _verify(password: str, hashed: str) -> bool:
    try:
        return check_password_hash(hashed, password)
    except ValueError:
        # Unknown hash method in the stored value
        return False


class PasswordHasher:
    """One-way hash + verify. Work runs in a thread so the event loop stays free."""

    def __init__(self, method: str = PASSWORD_HASH_METHOD) -> None:
        self._method = method

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(generate_password_hash, password, self._method)

    async def verify(self, password: str, hashed: str) -> bool:
        return await asyncio.to_thread(_verify, password, hashed)
