"""
Key-value store backends for the rate limiter.

The limiter only needs two operations, so any store that can look up a
string by key and write one with an expiry will do:

    value = await store.get("rate_limit:1.2.3.4")        # str | None
    await store.put("rate_limit:1.2.3.4", value, ttl_seconds=900)

Neither backend offers an atomic read-modify-write; callers must cope
with concurrent writers overwriting each other.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal get / put-with-expiry interface."""

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if it is absent or expired."""
        ...

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store *value* under *key*, expiring after *ttl_seconds*."""
        ...


class MemoryKeyValueStore:
    """
    Process-local store with per-key expiry.

    Good enough for a single instance or for local development; every
    worker process gets its own counters.

    Expired keys are dropped when read, and a write sweeps the whole map at
    most once per *sweep_interval* seconds, so keys that are never read
    again (one-off client IPs) do not pile up.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 60.0,
    ) -> None:
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval
        self._data: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)
        self._data[key] = (value, now + ttl_seconds)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._data.items() if now >= expires_at]
        for key in expired:
            del self._data[key]
        self._next_sweep = now + self._sweep_interval
        if expired:
            logger.debug("Swept %d expired keys from memory store", len(expired))

    def __len__(self) -> int:
        return len(self._data)


class CloudflareKVStore:
    """
    Workers KV namespace accessed through the Cloudflare REST API.

    Eventually consistent across edge locations: a write made in one
    region may take up to a minute to become visible in another.
    """

    # Workers KV rejects expiration_ttl values below this.
    MIN_TTL_SECONDS = 60

    def __init__(
        self,
        account_id: str,
        namespace_id: str,
        api_token: str,
        *,
        base_url: str = "https://api.cloudflare.com/client/v4",
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._values_url = (
            f"{base_url.rstrip('/')}/accounts/{account_id}"
            f"/storage/kv/namespaces/{namespace_id}/values"
        )
        self._client = client or httpx.AsyncClient(
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _url(self, key: str) -> str:
        return f"{self._values_url}/{quote(key, safe='')}"

    async def get(self, key: str) -> str | None:
        resp = await self._client.get(self._url(key))
        if resp.status_code == httpx.codes.NOT_FOUND:
            return None
        resp.raise_for_status()
        return resp.text

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        ttl = max(ttl_seconds, self.MIN_TTL_SECONDS)
        resp = await self._client.put(
            self._url(key),
            params={"expiration_ttl": ttl},
            content=value.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )
        resp.raise_for_status()
        logger.debug("KV put %s (ttl=%ds)", key, ttl)
