"""
OTP rate limiting and lock state machine.

Every piece of state lives in the key-value store, keyed by email, and
expires on its own:

    otp:<email>                 pending code             300s
    otp_cooldown:<email>        "true"                    60s
    otp_request_count:<email>   requests in window      3600s
    otp_spam_lock:<email>       "locked"                3600s
    otp_failed_attempts:<email> wrong codes submitted    300s
    otp_lock:<email>            "locked"                1800s

Three independent locks gate the two operations:

* cooldown and spam lock block issuing a new code,
* the verify lock blocks checking a code.

Store failures are handled per operation: ``check_restrictions`` fails
open (an unreachable store never blocks a request), while
``track_requests`` and ``verify_otp`` fail closed.
"""

from __future__ import annotations

import enum
import logging
import secrets
from dataclasses import dataclass

from auth_service.services.kv_store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

OTP_TTL = 300
COOLDOWN_TTL = 60
REQUEST_WINDOW_TTL = 3600
SPAM_LOCK_TTL = 3600
FAILED_ATTEMPTS_TTL = 300
VERIFY_LOCK_TTL = 1800

# Third request in the window trips the spam lock, third wrong code the verify lock.
MAX_REQUESTS = 2
MAX_FAILED_ATTEMPTS = 2


def otp_key(email: str) -> str:
    return f"otp:{email}"


def cooldown_key(email: str) -> str:
    return f"otp_cooldown:{email}"


def request_count_key(email: str) -> str:
    return f"otp_request_count:{email}"


def spam_lock_key(email: str) -> str:
    return f"otp_spam_lock:{email}"


def failed_attempts_key(email: str) -> str:
    return f"otp_failed_attempts:{email}"


def verify_lock_key(email: str) -> str:
    return f"otp_lock:{email}"


def mask_email(email: str) -> str:
    """``alice@example.com`` → ``a***@example.com`` for log lines."""
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}" if domain else "***"


class OtpError(str, enum.Enum):
    VERIFY_LOCKED = "verify_locked"
    SPAM_LOCKED = "spam_locked"
    COOLDOWN = "cooldown"
    TRACKING_FAILED = "tracking_failed"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    INCORRECT = "incorrect"
    ATTEMPTS_EXCEEDED = "attempts_exceeded"
    VERIFY_FAILED = "verify_failed"


_MESSAGES = {
    OtpError.VERIFY_LOCKED: (
        "Account locked due to multiple failed OTP attempts. "
        "Please try again after 30 minutes"
    ),
    OtpError.SPAM_LOCKED: "Too many OTP requests. Please wait 1 hour before requesting again",
    OtpError.COOLDOWN: "Please wait 1 minute before requesting another OTP",
    OtpError.TRACKING_FAILED: "Error tracking OTP requests",
    OtpError.INVALID_OR_EXPIRED: "Invalid or expired OTP",
    OtpError.ATTEMPTS_EXCEEDED: "Too many failed attempts. Account locked for 30 minutes",
    OtpError.VERIFY_FAILED: "Error verifying OTP",
}


@dataclass(frozen=True)
class OtpResult:
    """Outcome of a limiter operation: either clear, or blocked with a reason."""

    blocked: bool
    error: OtpError | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return not self.blocked

    @classmethod
    def clear(cls) -> OtpResult:
        return cls(blocked=False)

    @classmethod
    def deny(cls, error: OtpError, message: str | None = None) -> OtpResult:
        return cls(blocked=True, error=error, message=message or _MESSAGES[error])


class OtpRateLimiter:
    """Decides, per email, whether an OTP may be requested or verified."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def check_restrictions(self, email: str) -> OtpResult:
        """
        Report the first active lock, checked in fixed order:
        verify lock, spam lock, cooldown.

        Read-only. An unreachable store reports "not blocked".
        """
        try:
            if await self._store.get(verify_lock_key(email)):
                return OtpResult.deny(OtpError.VERIFY_LOCKED)
            if await self._store.get(spam_lock_key(email)):
                return OtpResult.deny(OtpError.SPAM_LOCKED)
            if await self._store.get(cooldown_key(email)):
                return OtpResult.deny(OtpError.COOLDOWN)
        except StoreError:
            logger.warning(
                "Store error in check_restrictions for %s; allowing request",
                mask_email(email),
                exc_info=True,
            )
        return OtpResult.clear()

    async def track_requests(self, email: str) -> OtpResult:
        """
        Count an OTP request; the request after ``MAX_REQUESTS`` sets the
        spam lock. The counter's TTL is refreshed on every counted request.
        """
        key = request_count_key(email)
        try:
            requests = int(await self._store.get(key) or 0)
            if requests >= MAX_REQUESTS:
                await self._store.set(spam_lock_key(email), "locked", SPAM_LOCK_TTL)
                logger.warning("OTP spam lock set for %s", mask_email(email))
                return OtpResult.deny(OtpError.SPAM_LOCKED)
            await self._store.set(key, str(requests + 1), REQUEST_WINDOW_TTL)
        except (StoreError, ValueError):
            logger.exception("Store error in track_requests for %s", mask_email(email))
            return OtpResult.deny(OtpError.TRACKING_FAILED)
        return OtpResult.clear()

    async def verify_otp(self, email: str, code: str) -> OtpResult:
        """
        Check *code* against the pending OTP for *email*.

        A correct code consumes the OTP and resets the failure count. A
        wrong one counts a failure; the wrong code after
        ``MAX_FAILED_ATTEMPTS`` sets the verify lock instead. The lock
        itself is not consulted here: callers run ``check_restrictions``
        first.
        """
        attempts_key = failed_attempts_key(email)
        try:
            stored = await self._store.get(otp_key(email))
            if not stored:
                return OtpResult.deny(OtpError.INVALID_OR_EXPIRED)

            failed = int(await self._store.get(attempts_key) or 0)

            if not secrets.compare_digest(stored.encode(), code.encode()):
                if failed >= MAX_FAILED_ATTEMPTS:
                    await self._store.set(verify_lock_key(email), "locked", VERIFY_LOCK_TTL)
                    await self._store.delete(attempts_key)
                    logger.warning("OTP verify lock set for %s", mask_email(email))
                    return OtpResult.deny(OtpError.ATTEMPTS_EXCEEDED)
                await self._store.set(attempts_key, str(failed + 1), FAILED_ATTEMPTS_TTL)
                return OtpResult.deny(
                    OtpError.INCORRECT,
                    f"Incorrect OTP, you have {MAX_FAILED_ATTEMPTS - failed} attempt(s) left",
                )

            await self._store.delete(otp_key(email))
            await self._store.delete(attempts_key)
        except (StoreError, ValueError):
            logger.exception("Store error in verify_otp for %s", mask_email(email))
            return OtpResult.deny(OtpError.VERIFY_FAILED)

        logger.info("OTP verified for %s", mask_email(email))
        return OtpResult.clear()
