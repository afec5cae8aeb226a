"""
Per-client request quota on top of a shared key-value store.

Fixed-window counter: each client identity gets one record

    rate_limit:<ip>  →  {"count": 3, "windowStart": 1760000000000}

which lives for one window (TTL) and is overwritten on every allowed
request.  Denied requests never write, so the stored count tops out at
``max_requests`` and the window is never pushed forward by a client that
keeps hammering the endpoint.

The store has no atomic increment.  Two requests from the same client
that read the same record concurrently will both write ``count + 1``, so
the limiter can let through up to (concurrency - 1) extra requests per
window.  It is a best-effort abuse brake, not an exact quota.

If the store is missing or failing the limiter fails OPEN: every request
is allowed and a warning is logged.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Optional

from contact_api.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "rate_limit:"
UNKNOWN_IDENTITY = "unknown"

DEFAULT_WINDOW_MS = 15 * 60 * 1000
DEFAULT_MAX_REQUESTS = 5


def now_ms() -> int:
    return int(time.time() * 1000)


def client_identity(headers: Mapping[str, str]) -> str:
    """
    Identify the caller by IP.

    Priority: CF-Connecting-IP, then the first hop of X-Forwarded-For.
    Requests with neither share the single "unknown" bucket.
    """
    connecting_ip = (headers.get("cf-connecting-ip") or "").strip()
    if connecting_ip:
        return connecting_ip
    forwarded = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return UNKNOWN_IDENTITY


@dataclass(frozen=True)
class RateLimitRecord:
    count: int
    window_start: int  # epoch ms

    def dumps(self) -> str:
        return json.dumps({"count": self.count, "windowStart": self.window_start})

    @classmethod
    def loads(cls, raw: str) -> Optional["RateLimitRecord"]:
        """Parse a stored value; anything malformed counts as no record."""
        try:
            data = json.loads(raw)
            count = int(data["count"])
            window_start = int(data["windowStart"])
        except (ValueError, TypeError, KeyError, OverflowError):
            return None
        if count < 1:
            return None
        return cls(count=count, window_start=window_start)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a quota check plus the telemetry for response headers."""

    identity: str
    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    retry_after_seconds: int = 0
    # What to persist if the request goes ahead; None when nothing may be written.
    record: Optional[RateLimitRecord] = None

    @property
    def reset_at(self) -> datetime:
        return datetime.fromtimestamp(self.reset_at_ms / 1000, tz=timezone.utc)

    @property
    def retry_after_minutes(self) -> int:
        return math.ceil(self.retry_after_seconds / 60)

    def headers(self) -> dict[str, str]:
        """X-RateLimit-* headers (plus Retry-After on denial)."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": _iso8601(self.reset_at),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


def _iso8601(moment: datetime) -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FixedWindowRateLimiter:
    """
    Fixed-window request counter keyed by client identity.

    Pass ``store=None`` to disable limiting entirely (every request is
    allowed, headers still report a full quota).
    """

    def __init__(
        self,
        store: KeyValueStore | None,
        *,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        timeout: float = 2.0,
    ) -> None:
        self._store = store
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return self._store is not None

    @property
    def ttl_seconds(self) -> int:
        return math.ceil(self.window_ms / 1000)

    @staticmethod
    def key_for(identity: str) -> str:
        return f"{KEY_PREFIX}{identity}"

    # ── Public API ─────────────────────────────────────────────────────

    async def evaluate(self, identity: str, now: int | None = None) -> RateLimitDecision:
        """Decide whether *identity* may proceed, without writing anything."""
        now = now_ms() if now is None else now

        if self._store is None:
            return self._fresh_window(identity, now, persist=False)

        try:
            raw = await asyncio.wait_for(self._store.get(self.key_for(identity)), self._timeout)
        except Exception:
            logger.warning("Rate limit lookup failed for %s – allowing request", identity, exc_info=True)
            return self._fresh_window(identity, now, persist=False)

        current = RateLimitRecord.loads(raw) if raw is not None else None
        if raw is not None and current is None:
            logger.warning("Discarding malformed rate limit record for %s: %r", identity, raw)

        if current is None or now - current.window_start >= self.window_ms:
            return self._fresh_window(identity, now)

        count = current.count + 1
        reset_at = current.window_start + self.window_ms

        if count > self.max_requests:
            elapsed = now - current.window_start
            retry_after = math.ceil((self.window_ms - elapsed) / 1000)
            logger.info("Rate limit exceeded for %s (retry in %ds)", identity, retry_after)
            return RateLimitDecision(
                identity=identity,
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset_at_ms=reset_at,
                retry_after_seconds=retry_after,
            )

        return RateLimitDecision(
            identity=identity,
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - count,
            reset_at_ms=reset_at,
            record=RateLimitRecord(count=count, window_start=current.window_start),
        )

    async def record(self, decision: RateLimitDecision) -> None:
        """Persist an allowed decision. Denials are never written."""
        if self._store is None or decision.record is None:
            return
        try:
            await asyncio.wait_for(
                self._store.put(
                    self.key_for(decision.identity),
                    decision.record.dumps(),
                    self.ttl_seconds,
                ),
                self._timeout,
            )
        except Exception:
            logger.warning("Rate limit write failed for %s – continuing", decision.identity, exc_info=True)

    async def check_and_record(self, identity: str, now: int | None = None) -> RateLimitDecision:
        decision = await self.evaluate(identity, now)
        await self.record(decision)
        return decision

    # ── Helpers ────────────────────────────────────────────────────────

    def _fresh_window(self, identity: str, now: int, persist: bool = True) -> RateLimitDecision:
        return RateLimitDecision(
            identity=identity,
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - 1,
            reset_at_ms=now + self.window_ms,
            # persist=False when the read failed: writing count=1 could reset a live window.
            record=RateLimitRecord(count=1, window_start=now) if persist else None,
        )
