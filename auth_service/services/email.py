"""
Email service — renders Jinja2 templates and sends them via SMTP.

In development (no SMTP configured), emails are logged to the console
so you can see what *would* be sent without configuring a mail server.
"""

from __future__ import annotations

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Protocol

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from auth_service.config import (
    SMTP_FROM_EMAIL,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
    TEMPLATES_DIR,
    smtp_enabled,
)

logger = logging.getLogger(__name__)

ACTIVATION_TEMPLATE = "user-activation-mail"
FORGOT_PASSWORD_TEMPLATE = "forgot-password-user-mail"


class Mailer(Protocol):
    async def send(self, to: str, subject: str, template: str, data: dict[str, Any]) -> bool: ...


class SmtpMailer:
    """
    Render ``<template>.html`` from the templates directory and deliver it.

    ``send`` never raises: any rendering or delivery failure is logged and
    reported as ``False`` so the caller decides what a lost email means.
    """

    def __init__(
        self,
        templates_dir: Path = TEMPLATES_DIR,
        *,
        enabled: bool | None = None,
    ) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html"]),
        )
        self._enabled = smtp_enabled() if enabled is None else enabled

    def render(self, template: str, data: dict[str, Any]) -> str:
        return self._env.get_template(f"{template}.html").render(**data)

    async def send(self, to: str, subject: str, template: str, data: dict[str, Any]) -> bool:
        try:
            html_body = self.render(template, data)
        except TemplateError:
            logger.exception("Failed to render email template %s", template)
            return False

        # ── Console fallback (dev mode) ───────────────────────────────────
        if not self._enabled:
            logger.info(
                "📧 [DEV] Would send email to %s:\n  Subject: %s\n  Template: %s\n  Data: %s",
                to,
                subject,
                template,
                data,
            )
            return True

        # ── Real SMTP send ────────────────────────────────────────────────
        import aiosmtplib

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = SMTP_FROM_EMAIL
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=SMTP_HOST,
                port=SMTP_PORT,
                username=SMTP_USERNAME,
                password=SMTP_PASSWORD,
                start_tls=SMTP_USE_TLS,
            )
        except aiosmtplib.SMTPException:
            logger.exception("Failed to send email to %s", to)
            return False
        except OSError:
            logger.exception("SMTP server unreachable while sending to %s", to)
            return False

        logger.info("Email sent to %s using template %s", to, template)
        return True
