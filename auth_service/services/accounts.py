"""
Account flows: registration, login, token refresh and password reset.

Every flow that mails a code runs the same gate first::

    check_restrictions → track_requests → send_otp

and every flow that accepts a code refuses while the verify lock is set,
then hands the code to ``OtpRateLimiter.verify_otp``. A blocked limiter
result becomes a ``ValidationError`` carrying the limiter's message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from auth_service.db import DuplicateUserError, UserStore
from auth_service.errors import AuthError, ValidationError
from auth_service.models import User
from auth_service.services.email import ACTIVATION_TEMPLATE, FORGOT_PASSWORD_TEMPLATE
from auth_service.services.otp import OtpSender
from auth_service.services.otp_limiter import OtpError, OtpRateLimiter, mask_email
from auth_service.services.passwords import PasswordHasher
from auth_service.services.tokens import InvalidToken, TokenService

logger = logging.getLogger(__name__)

DEFAULT_RECIPIENT_NAME = "Dear user"


@dataclass(frozen=True)
class LoginTokens:
    user: User
    access_token: str
    refresh_token: str


class AccountService:
    def __init__(
        self,
        users: UserStore,
        limiter: OtpRateLimiter,
        sender: OtpSender,
        tokens: TokenService,
        hasher: PasswordHasher,
    ) -> None:
        self.users = users
        self.limiter = limiter
        self.sender = sender
        self.tokens = tokens
        self.hasher = hasher

    # ── OTP gates ──────────────────────────────────────────────────────

    async def _issue_otp(self, name: str, email: str, template: str) -> None:
        restriction = await self.limiter.check_restrictions(email)
        if restriction.blocked:
            raise ValidationError(restriction.message)

        tracked = await self.limiter.track_requests(email)
        if tracked.blocked:
            raise ValidationError(tracked.message)

        await self.sender.send_otp(name, email, template)

    async def _consume_otp(self, email: str, otp: str) -> None:
        restriction = await self.limiter.check_restrictions(email)
        if restriction.error is OtpError.VERIFY_LOCKED:
            raise ValidationError(restriction.message)

        result = await self.limiter.verify_otp(email, otp)
        if result.blocked:
            raise ValidationError(result.message)

    # ── Registration ───────────────────────────────────────────────────

    async def register(self, name: str, email: str, username: str) -> None:
        """Check the identity is free and mail an activation code."""
        if await self.users.find_by_email(email):
            raise ValidationError("Email is already registered. Please use a different email.")
        if await self.users.find_by_username(username):
            raise ValidationError("Username is already taken. Please choose another one.")

        await self._issue_otp(name, email, ACTIVATION_TEMPLATE)

    async def verify_registration(
        self, name: str, email: str, username: str, password: str, otp: str
    ) -> User:
        """Consume the activation code and create the account."""
        if await self.users.find_by_email(email):
            raise ValidationError("User is already registered with this email. Please login.")
        if await self.users.find_by_username(username):
            raise ValidationError("Username is already taken. Please choose another one.")

        # Hash before consuming so a failure leaves the code usable
        hashed = await self.hasher.hash(password)
        await self._consume_otp(email, otp)

        try:
            user = await self.users.create(
                name=name, email=email, username=username, password=hashed
            )
        except DuplicateUserError as e:
            raise ValidationError("Email or username is already registered.") from e

        logger.info("User %s registered (%s)", user.id, mask_email(email))
        return user

    async def resend_otp(self, email: str, name: str | None = None) -> None:
        await self._issue_otp(name or DEFAULT_RECIPIENT_NAME, email, ACTIVATION_TEMPLATE)

    async def validate_field(
        self, field: Literal["email", "username"], value: str
    ) -> tuple[bool, str]:
        """Report whether *value* is still free for *field*."""
        if field == "email":
            taken = await self.users.find_by_email(value)
            return (not taken, "Email is already registered" if taken else "Email is available")
        if field == "username":
            taken = await self.users.find_by_username(value)
            return (
                not taken,
                "Username is already taken" if taken else "Username is available",
            )
        raise ValidationError("Invalid field type")

    # ── Sessions ───────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> LoginTokens:
        user = await self.users.find_by_email(email)
        if user is None:
            raise AuthError("User doesn't exist")
        if not user.password:
            raise AuthError("Invalid credentials")
        if not await self.hasher.verify(password, user.password):
            raise AuthError("Invalid email or password")

        logger.info("User %s logged in", user.id)
        return LoginTokens(
            user=user,
            access_token=self.tokens.create_access_token(user.id),
            refresh_token=self.tokens.create_refresh_token(user.id),
        )

    async def refresh(self, refresh_token: str | None) -> str:
        """Exchange a refresh token for a new access token."""
        if not refresh_token:
            raise ValidationError("Unauthorized No refresh token provided")
        try:
            claims = self.tokens.decode_refresh_token(refresh_token)
        except InvalidToken as e:
            raise AuthError("Forbidden Invalid refresh token") from e

        user = await self.users.find_by_id(claims["id"])
        if user is None:
            raise AuthError("Forbidden User not Found")
        return self.tokens.create_access_token(claims["id"], claims["role"])

    async def authenticate(self, access_token: str | None) -> User:
        """Resolve the account behind an access token."""
        if not access_token:
            raise AuthError("Unauthorized Token missing")
        try:
            claims = self.tokens.decode_access_token(access_token)
        except InvalidToken as e:
            raise AuthError("Invalid authentication token") from e

        user = await self.users.find_by_id(claims["id"])
        if user is None:
            raise AuthError("Account not found")
        return user

    # ── Password reset ─────────────────────────────────────────────────

    async def forgot_password(self, email: str) -> None:
        user = await self.users.find_by_email(email)
        if user is None:
            raise ValidationError("No user found with this email")

        await self._issue_otp(user.name, email, FORGOT_PASSWORD_TEMPLATE)

    async def verify_forgot_password(self, email: str, otp: str) -> None:
        await self._consume_otp(email, otp)

    async def reset_password(self, email: str, new_password: str) -> None:
        user = await self.users.find_by_email(email)
        if user is None:
            raise ValidationError("User not found")
        if not user.password:
            raise ValidationError("User has no password set")
        if await self.hasher.verify(new_password, user.password):
            raise ValidationError("New password cannot be the same as the old password")

        await self.users.update_password(email, await self.hasher.hash(new_password))
        logger.info("Password reset for user %s", user.id)
