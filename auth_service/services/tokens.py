"""
Access and refresh tokens — signed JWTs carrying ``{id, role}``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import jwt

from auth_service.config import (
    ACCESS_TOKEN_EXPIRY_SECONDS,
    ACCESS_TOKEN_SECRET,
    JWT_ALGORITHM,
    REFRESH_TOKEN_EXPIRY_SECONDS,
    REFRESH_TOKEN_SECRET,
)

logger = logging.getLogger(__name__)


class InvalidToken(RuntimeError):
    """Raised when a token is malformed, forged, or expired."""


class TokenService:
    def __init__(
        self,
        access_secret: str = ACCESS_TOKEN_SECRET,
        refresh_secret: str = REFRESH_TOKEN_SECRET,
        *,
        access_ttl: int = ACCESS_TOKEN_EXPIRY_SECONDS,
        refresh_ttl: int = REFRESH_TOKEN_EXPIRY_SECONDS,
        algorithm: str = JWT_ALGORITHM,
    ) -> None:
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._algorithm = algorithm

    def _sign(self, claims: dict, secret: str, ttl: int) -> str:
        now = datetime.now(UTC)
        payload = {**claims, "iat": now, "exp": now + timedelta(seconds=ttl)}
        return jwt.encode(payload, secret, algorithm=self._algorithm)

    def _verify(self, token: str, secret: str) -> dict:
        try:
            payload = jwt.decode(token, secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise InvalidToken("Token expired") from e
        except jwt.PyJWTError as e:
            raise InvalidToken("Token invalid") from e
        if not payload.get("id") or not payload.get("role"):
            raise InvalidToken("Token payload malformed")
        return payload

    def create_access_token(self, user_id: str, role: str = "user") -> str:
        return self._sign({"id": user_id, "role": role}, self._access_secret, self.access_ttl)

    def create_refresh_token(self, user_id: str, role: str = "user") -> str:
        return self._sign({"id": user_id, "role": role}, self._refresh_secret, self.refresh_ttl)

    def decode_access_token(self, token: str) -> dict:
        return self._verify(token, self._access_secret)

    def decode_refresh_token(self, token: str) -> dict:
        return self._verify(token, self._refresh_secret)
