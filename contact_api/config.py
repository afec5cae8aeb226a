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

# Bind address for `python main.py`; ignored when uvicorn is launched directly.
API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))
API_RELOAD: bool = os.getenv("API_RELOAD", "false").lower() == "true"

# ── Auth ──────────────────────────────────────────────────────────────────

# Shared secret expected in the X-API-Key header.
API_KEY: str = os.getenv("API_KEY", "dev-api-key-change-me")

# ── CORS ──────────────────────────────────────────────────────────────────

_DEFAULT_ORIGINS = "https://philipmutua.xyz,http://localhost:4200,http://127.0.0.1:8787"

ALLOWED_ORIGINS: tuple[str, ...] = tuple(
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", _DEFAULT_ORIGINS).split(",")
    if origin.strip()
)

# ── Rate limiting ─────────────────────────────────────────────────────────

RATE_LIMIT_WINDOW_MS: int = int(os.getenv("RATE_LIMIT_WINDOW_MS", str(15 * 60 * 1000)))
RATE_LIMIT_MAX_REQUESTS: int = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "5"))

# Which key-value store backs the limiter:
#   • "memory"     – process-local dict (single instance / development)
#   • "cloudflare" – Workers KV namespace via the Cloudflare REST API
#   • "none"       – rate limiting disabled
KV_BACKEND: str = os.getenv("KV_BACKEND", "memory").lower()
KV_TIMEOUT_SECONDS: float = float(os.getenv("KV_TIMEOUT_SECONDS", "2"))

CF_ACCOUNT_ID: str = os.getenv("CF_ACCOUNT_ID", "")
CF_KV_NAMESPACE_ID: str = os.getenv("CF_KV_NAMESPACE_ID", "")
CF_API_TOKEN: str = os.getenv("CF_API_TOKEN", "")
CF_API_BASE_URL: str = os.getenv("CF_API_BASE_URL", "https://api.cloudflare.com/client/v4")

# ── Email (Mailtrap send API) ─────────────────────────────────────────────

MAILTRAP_TOKEN: str = os.getenv("MAILTRAP_TOKEN", "")
MAILTRAP_API_URL: str = os.getenv("MAILTRAP_API_URL", "https://send.api.mailtrap.io/api/send")
EMAIL_TIMEOUT_SECONDS: float = float(os.getenv("EMAIL_TIMEOUT_SECONDS", "10"))

# Every notification goes here, and every auto-reply is sent from here.
OPERATOR_EMAIL: str = os.getenv("OPERATOR_EMAIL", "hello@philipmutua.xyz")
SENDER_NAME: str = os.getenv("SENDER_NAME", "Philip Mutua")
NOTIFICATION_SENDER_NAME: str = os.getenv("NOTIFICATION_SENDER_NAME", "Contact Form")

_EMAIL_ENABLED_OVERRIDE: str = os.getenv("EMAIL_ENABLED", "auto")


def email_enabled() -> bool:
    """
    Whether submissions are mailed through Mailtrap or only logged.

    EMAIL_ENABLED=false keeps a configured token idle (handy on staging);
    EMAIL_ENABLED=true insists on sending, so a missing token surfaces as
    failed dispatches.  Anything else sends only when MAILTRAP_TOKEN is set.
    """
    mode = _EMAIL_ENABLED_OVERRIDE.strip().lower()
    if mode in ("true", "false"):
        return mode == "true"
    return bool(MAILTRAP_TOKEN)


def cloudflare_kv_configured() -> bool:
    return bool(CF_ACCOUNT_ID and CF_KV_NAMESPACE_ID and CF_API_TOKEN)
