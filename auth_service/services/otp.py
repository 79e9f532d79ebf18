"""
OTP issuance: generate a code, email it, then remember it.
"""

from __future__ import annotations

import logging
import secrets

from auth_service.errors import ValidationError
from auth_service.services.email import ACTIVATION_TEMPLATE, Mailer
from auth_service.services.kv_store import KeyValueStore, StoreError
from auth_service.services.otp_limiter import (
    COOLDOWN_TTL,
    OTP_TTL,
    cooldown_key,
    mask_email,
    otp_key,
)

logger = logging.getLogger(__name__)

OTP_SUBJECT = "Verify your email"
SEND_FAILED_MESSAGE = "Error sending OTP. Please try again later."


def generate_otp() -> str:
    """Uniformly random 4-digit code in 1000..9999."""
    return str(1000 + secrets.randbelow(9000))


class OtpSender:
    def __init__(self, store: KeyValueStore, mailer: Mailer) -> None:
        self._store = store
        self._mailer = mailer

    async def send_otp(self, name: str, email: str, template: str = ACTIVATION_TEMPLATE) -> None:
        """
        Email a fresh code to *email*, then store it with its cooldown.

        Nothing is stored when delivery fails. If storing fails after the
        email went out, the caller still sees a failure; the sent email is
        not recalled.

        Raises:
            ValidationError: delivery or storage failed.
        """
        otp = generate_otp()

        delivered = await self._mailer.send(email, OTP_SUBJECT, template, {"name": name, "otp": otp})
        if not delivered:
            logger.error("OTP delivery failed for %s", mask_email(email))
            raise ValidationError(SEND_FAILED_MESSAGE)

        try:
            await self._store.set(otp_key(email), otp, OTP_TTL)
            await self._store.set(cooldown_key(email), "true", COOLDOWN_TTL)
        except StoreError as e:
            logger.exception("OTP sent but not stored for %s", mask_email(email))
            raise ValidationError(SEND_FAILED_MESSAGE) from e

        logger.info("OTP sent to %s (template %s)", mask_email(email), template)
