"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info").upper()

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates" / "email"

# SQLite user database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "auth_service.db"))

# ── Key-value store ───────────────────────────────────────────────────────

# "redis" talks to REDIS_URL; "memory" keeps OTP state in-process (dev/tests).
KV_BACKEND: str = os.getenv(
    "KV_BACKEND", "redis" if ENVIRONMENT == "production" else "memory"
).lower()
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# ── Tokens ────────────────────────────────────────────────────────────────

ACCESS_TOKEN_SECRET: str = os.getenv("ACCESS_TOKEN_SECRET", "dev-access-secret-change-me")
REFRESH_TOKEN_SECRET: str = os.getenv("REFRESH_TOKEN_SECRET", "dev-refresh-secret-change-me")
JWT_ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRY_SECONDS: int = int(os.getenv("ACCESS_TOKEN_EXPIRY_SECONDS", str(24 * 3600)))
REFRESH_TOKEN_EXPIRY_SECONDS: int = int(
    os.getenv("REFRESH_TOKEN_EXPIRY_SECONDS", str(30 * 24 * 3600))
)

# ── Passwords ─────────────────────────────────────────────────────────────

# werkzeug method string, e.g. "pbkdf2:sha256" or "scrypt"
PASSWORD_HASH_METHOD: str = os.getenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256")

# ── CORS ──────────────────────────────────────────────────────────────────

CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:3000")

# ── SMTP ──────────────────────────────────────────────────────────────────

SMTP_HOST: str = os.getenv("SMTP_HOST", "")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", SMTP_USERNAME or "noreply@auth-service.local")
SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

# Set to "false" to force console-only mode even when SMTP credentials are present.
_SMTP_ENABLED_OVERRIDE: str = os.getenv("SMTP_ENABLED", "auto")


def smtp_enabled() -> bool:
    """True when SMTP should actually send emails.

    Controlled by SMTP_ENABLED env var:
      • "auto" (default) — send if credentials are configured
      • "true"  — always send (will fail if credentials are missing)
      • "false" — never send, log to console instead
    """
    if _SMTP_ENABLED_OVERRIDE.lower() == "false":
        return False
    if _SMTP_ENABLED_OVERRIDE.lower() == "true":
        return True
    # "auto": send only when credentials are fully configured
    return bool(SMTP_HOST and SMTP_USERNAME and SMTP_PASSWORD)
