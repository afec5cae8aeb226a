"""
FastAPI dependencies for the contact endpoint.

The long-lived components (store, limiter, dispatcher, CORS policy) are
built once in the app lifespan and parked on ``app.state``; these
functions hand them to the routes.  Tests swap them out through
``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request

from contact_api import config
from contact_api.cors import CorsPolicy
from contact_api.rate_limit import FixedWindowRateLimiter
from contact_api.services.email import EmailDispatcher


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.rate_limiter


def get_dispatcher(request: Request) -> EmailDispatcher:
    return request.app.state.dispatcher


def get_cors_policy(request: Request) -> CorsPolicy:
    return request.app.state.cors


def get_api_key() -> str:
    """The secret callers must present in X-API-Key."""
    return config.API_KEY


RateLimiter = Annotated[FixedWindowRateLimiter, Depends(get_rate_limiter)]
Dispatcher = Annotated[EmailDispatcher, Depends(get_dispatcher)]
Cors = Annotated[CorsPolicy, Depends(get_cors_policy)]
ApiKey = Annotated[str, Depends(get_api_key)]
