"""
CORS headers for the contact endpoint.

Computed once per request from the Origin header and attached to every
response, error responses included.  Origins are matched exactly against
a static allow-list; anything else gets the "null" sentinel so arbitrary
origins are never reflected back.

CORS is advisory here: a disallowed origin does not stop the request from
being processed (the API key does that).
"""

from __future__ import annotations

from typing import Iterable, Optional

DENY_ORIGIN = "null"

ALLOWED_METHODS = ("POST", "OPTIONS")
ALLOWED_HEADERS = ("Content-Type", "Authorization", "X-API-Key")


class CorsPolicy:
    def __init__(self, allowed_origins: Iterable[str]) -> None:
        self._allowed = frozenset(allowed_origins)

    def is_allowed(self, origin: Optional[str]) -> bool:
        return origin is not None and origin in self._allowed

    def headers_for(self, origin: Optional[str]) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": origin if self.is_allowed(origin) else DENY_ORIGIN,
            "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
            "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
            "Vary": "Origin",
        }
