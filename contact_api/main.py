"""Main FastAPI application for the Contact Form API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from contact_api import __version__, config
from contact_api.cors import CorsPolicy
from contact_api.rate_limit import FixedWindowRateLimiter
from contact_api.routers import contact, health
from contact_api.services.email import EmailDispatcher
from contact_api.services.kv_store import CloudflareKVStore, KeyValueStore, MemoryKeyValueStore

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_store() -> KeyValueStore | None:
    """Create the key-value store selected by KV_BACKEND (None disables limiting)."""
    backend = config.KV_BACKEND
    if backend == "none":
        logger.warning("KV_BACKEND=none – rate limiting disabled")
        return None
    if backend == "cloudflare":
        if not config.cloudflare_kv_configured():
            # Misconfiguration must not take the form offline.
            logger.error("Cloudflare KV selected but not configured – rate limiting disabled")
            return None
        return CloudflareKVStore(
            config.CF_ACCOUNT_ID,
            config.CF_KV_NAMESPACE_ID,
            config.CF_API_TOKEN,
            base_url=config.CF_API_BASE_URL,
            timeout=config.KV_TIMEOUT_SECONDS,
        )
    if backend != "memory":
        logger.warning("Unknown KV_BACKEND %r – falling back to in-memory store", backend)
    return MemoryKeyValueStore()


def build_dispatcher() -> EmailDispatcher:
    return EmailDispatcher(
        api_url=config.MAILTRAP_API_URL,
        api_token=config.MAILTRAP_TOKEN,
        operator_email=config.OPERATOR_EMAIL,
        sender_name=config.SENDER_NAME,
        notification_sender_name=config.NOTIFICATION_SENDER_NAME,
        enabled=config.email_enabled(),
        timeout=config.EMAIL_TIMEOUT_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = build_store()
    dispatcher = build_dispatcher()

    app.state.rate_limiter = FixedWindowRateLimiter(
        store,
        window_ms=config.RATE_LIMIT_WINDOW_MS,
        max_requests=config.RATE_LIMIT_MAX_REQUESTS,
        timeout=config.KV_TIMEOUT_SECONDS,
    )
    app.state.dispatcher = dispatcher
    app.state.cors = CorsPolicy(config.ALLOWED_ORIGINS)

    logger.info(
        "Contact API started (env=%s, store=%s, email=%s, limit=%d per %ds)",
        config.ENVIRONMENT,
        type(store).__name__ if store is not None else "disabled",
        "live" if config.email_enabled() else "console",
        config.RATE_LIMIT_MAX_REQUESTS,
        config.RATE_LIMIT_WINDOW_MS // 1000,
    )
    yield

    await dispatcher.close()
    if isinstance(store, CloudflareKVStore):
        await store.close()
    logger.info("Contact API stopped")


app = FastAPI(
    title="Contact Form API",
    description="Accepts contact-form submissions and sends a notification plus a localized auto-reply",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(contact.router)
