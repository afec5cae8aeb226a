"""Tests for the fixed-window rate limiter."""

import asyncio
import json

import pytest

from contact_api.rate_limit import (
    FixedWindowRateLimiter,
    RateLimitRecord,
    client_identity,
)
from tests.mocks.stores import (
    BrokenKeyValueStore,
    SlowKeyValueStore,
    SpyKeyValueStore,
    YieldingKeyValueStore,
)

WINDOW_MS = 900_000
LIMIT = 5
T0 = 1_760_000_000_000  # arbitrary epoch ms


def _stored(store: SpyKeyValueStore, identity: str = "1.2.3.4") -> dict:
    return json.loads(store._data[f"rate_limit:{identity}"][0])


class TestFixedWindow:
    async def test_requests_under_limit_are_allowed(self, limiter):
        for i in range(LIMIT):
            decision = await limiter.check_and_record("1.2.3.4", T0 + i * 1000)
            assert decision.allowed, f"Request {i + 1} should be allowed"
            assert decision.remaining == LIMIT - (i + 1)

    async def test_first_request_opens_window(self, limiter, store):
        decision = await limiter.check_and_record("1.2.3.4", T0)

        assert decision.allowed
        assert decision.remaining == LIMIT - 1
        assert decision.reset_at_ms == T0 + WINDOW_MS
        assert _stored(store) == {"count": 1, "windowStart": T0}

    async def test_request_over_limit_is_denied(self, limiter):
        for i in range(LIMIT):
            await limiter.check_and_record("1.2.3.4", T0 + i)

        decision = await limiter.check_and_record("1.2.3.4", T0 + 60_000)

        assert decision.allowed is False
        assert decision.remaining == 0
        assert 0 < decision.retry_after_seconds <= WINDOW_MS / 1000
        assert decision.retry_after_seconds == 840  # (900000 - 60000) / 1000

    async def test_retry_after_rounds_up(self, limiter):
        for _ in range(LIMIT):
            await limiter.check_and_record("1.2.3.4", T0)

        decision = await limiter.check_and_record("1.2.3.4", T0 + WINDOW_MS - 1)
        assert decision.allowed is False
        assert decision.retry_after_seconds == 1

    async def test_denial_does_not_write(self, limiter, store):
        for _ in range(LIMIT):
            await limiter.check_and_record("1.2.3.4", T0)
        writes_before = len(store.puts)

        for i in range(10):
            decision = await limiter.check_and_record("1.2.3.4", T0 + 1000 * i)
            assert decision.allowed is False

        assert len(store.puts) == writes_before
        assert _stored(store) == {"count": LIMIT, "windowStart": T0}

    async def test_window_expiry_starts_fresh_window(self, limiter, store):
        for _ in range(LIMIT + 1):
            await limiter.check_and_record("1.2.3.4", T0)

        later = T0 + WINDOW_MS
        decision = await limiter.check_and_record("1.2.3.4", later)

        assert decision.allowed
        assert decision.remaining == LIMIT - 1
        assert _stored(store) == {"count": 1, "windowStart": later}

    async def test_window_start_is_not_advanced_within_window(self, limiter, store):
        await limiter.check_and_record("1.2.3.4", T0)
        await limiter.check_and_record("1.2.3.4", T0 + 300_000)
        decision = await limiter.check_and_record("1.2.3.4", T0 + 600_000)

        assert _stored(store) == {"count": 3, "windowStart": T0}
        assert decision.reset_at_ms == T0 + WINDOW_MS

    async def test_writes_use_window_ttl(self, limiter, store):
        await limiter.check_and_record("1.2.3.4", T0)
        key, _, ttl = store.puts[0]
        assert key == "rate_limit:1.2.3.4"
        assert ttl == 900

    async def test_ttl_rounds_up_to_whole_seconds(self, store):
        limiter = FixedWindowRateLimiter(store, window_ms=1500, max_requests=1)
        await limiter.check_and_record("1.2.3.4", T0)
        assert store.puts[0][2] == 2

    async def test_identities_are_counted_separately(self, limiter):
        for _ in range(LIMIT):
            await limiter.check_and_record("1.1.1.1", T0)

        assert (await limiter.check_and_record("1.1.1.1", T0)).allowed is False
        assert (await limiter.check_and_record("2.2.2.2", T0)).allowed is True

    async def test_evaluate_alone_does_not_consume_quota(self, limiter, store):
        for _ in range(20):
            decision = await limiter.evaluate("1.2.3.4", T0)
            assert decision.allowed
        assert store.puts == []

    async def test_malformed_record_is_treated_as_absent(self, limiter, store):
        await store.put("rate_limit:1.2.3.4", "not json", 900)

        decision = await limiter.check_and_record("1.2.3.4", T0)

        assert decision.allowed
        assert _stored(store) == {"count": 1, "windowStart": T0}

    async def test_non_finite_window_start_is_treated_as_absent(self, limiter, store):
        await store.put("rate_limit:1.2.3.4", '{"count": 3, "windowStart": Infinity}', 900)

        decision = await limiter.check_and_record("1.2.3.4", T0)

        assert decision.allowed
        assert decision.remaining == LIMIT - 1


class TestFailOpen:
    async def test_no_store_means_limiting_disabled(self):
        limiter = FixedWindowRateLimiter(None, max_requests=LIMIT)
        assert limiter.enabled is False

        for _ in range(LIMIT * 3):
            decision = await limiter.check_and_record("1.2.3.4", T0)
            assert decision.allowed
            assert decision.remaining == LIMIT - 1

    async def test_unreachable_store_allows_requests(self):
        store = BrokenKeyValueStore()
        limiter = FixedWindowRateLimiter(store, max_requests=LIMIT)

        for _ in range(LIMIT * 3):
            assert (await limiter.check_and_record("1.2.3.4", T0)).allowed

        # A failed read must never be followed by a window-resetting write.
        assert store.put_attempts == 0

    async def test_failing_write_still_allows_request(self):
        store = BrokenKeyValueStore(fail_get=False, fail_put=True)
        limiter = FixedWindowRateLimiter(store, max_requests=LIMIT)

        decision = await limiter.check_and_record("1.2.3.4", T0)

        assert decision.allowed
        assert store.put_attempts == 1

    async def test_slow_store_times_out_and_allows(self):
        limiter = FixedWindowRateLimiter(SlowKeyValueStore(), max_requests=LIMIT, timeout=0.01)
        decision = await limiter.check_and_record("1.2.3.4", T0)
        assert decision.allowed


class TestConcurrency:
    """
    The store has no atomic increment, so the limiter is best effort:
    concurrent requests that read the same record undercount.
    """

    async def test_concurrent_requests_can_undercount(self):
        store = YieldingKeyValueStore()
        limiter = FixedWindowRateLimiter(store, window_ms=WINDOW_MS, max_requests=LIMIT)

        decisions = await asyncio.gather(
            *(limiter.check_and_record("1.2.3.4", T0) for _ in range(3))
        )

        assert all(d.allowed for d in decisions)
        # Three requests went through but every one of them read "no record".
        assert _stored(store)["count"] == 1

    async def test_sequential_requests_are_exact(self):
        store = YieldingKeyValueStore()
        limiter = FixedWindowRateLimiter(store, window_ms=WINDOW_MS, max_requests=LIMIT)

        for _ in range(3):
            await limiter.check_and_record("1.2.3.4", T0)

        assert _stored(store)["count"] == 3

    async def test_stored_count_never_exceeds_limit_under_concurrency(self):
        store = YieldingKeyValueStore()
        limiter = FixedWindowRateLimiter(store, window_ms=WINDOW_MS, max_requests=LIMIT)
        for _ in range(LIMIT):
            await limiter.check_and_record("1.2.3.4", T0)

        await asyncio.gather(*(limiter.check_and_record("1.2.3.4", T0) for _ in range(10)))

        assert _stored(store)["count"] == LIMIT


class TestDecisionHeaders:
    async def test_allowed_headers(self, limiter):
        decision = await limiter.check_and_record("1.2.3.4", T0)
        headers = decision.headers()

        assert headers["X-RateLimit-Limit"] == "5"
        assert headers["X-RateLimit-Remaining"] == "4"
        assert headers["X-RateLimit-Reset"] == "2025-10-09T09:08:20.000Z"
        assert "Retry-After" not in headers

    async def test_denied_headers_include_retry_after(self, limiter):
        for _ in range(LIMIT):
            await limiter.check_and_record("1.2.3.4", T0)
        decision = await limiter.check_and_record("1.2.3.4", T0 + 1000)

        headers = decision.headers()
        assert headers["X-RateLimit-Remaining"] == "0"
        assert headers["Retry-After"] == "899"
        assert decision.retry_after_minutes == 15


class TestRecord:
    def test_loads_rejects_garbage(self):
        assert RateLimitRecord.loads("{}") is None
        assert RateLimitRecord.loads("[1, 2]") is None
        assert RateLimitRecord.loads('{"count": 0, "windowStart": 1}') is None

    @pytest.mark.parametrize(
        "raw",
        ['{"count": 1, "windowStart": Infinity}', '{"count": Infinity, "windowStart": 1}', '{"count": 1, "windowStart": NaN}'],
    )
    def test_loads_rejects_non_finite_numbers(self, raw):
        assert RateLimitRecord.loads(raw) is None

    def test_round_trip_uses_camel_case_keys(self):
        record = RateLimitRecord(count=2, window_start=T0)
        assert json.loads(record.dumps()) == {"count": 2, "windowStart": T0}
        assert RateLimitRecord.loads(record.dumps()) == record


class TestClientIdentity:
    @pytest.mark.parametrize(
        ("headers", "expected"),
        [
            ({"cf-connecting-ip": "9.9.9.9", "x-forwarded-for": "8.8.8.8"}, "9.9.9.9"),
            ({"x-forwarded-for": "8.8.8.8, 10.0.0.1"}, "8.8.8.8"),
            ({"x-forwarded-for": " 7.7.7.7 "}, "7.7.7.7"),
            ({}, "unknown"),
            ({"cf-connecting-ip": "", "x-forwarded-for": ""}, "unknown"),
        ],
    )
    def test_priority(self, headers, expected):
        assert client_identity(headers) == expected
