"""
Contact form endpoint.

One request runs through a fixed pipeline and stops at the first stage
that rejects it:

    CORS → method → API key → rate limit → JSON body → form type
         → record quota use → validate → render → send emails

Every response carries the CORS headers computed at entry; everything
after the API key check also carries the X-RateLimit-* telemetry.
"""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any, Optional

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from contact_api.dependencies import ApiKey, Cors, Dispatcher, RateLimiter
from contact_api.models import ErrorResponse, FormType, SuccessResponse
from contact_api.rate_limit import client_identity
from contact_api.services.templates import (
    contact_email,
    contact_name,
    notification_subject,
    render_notification,
    render_reply_for,
)
from contact_api.validation import validate_submission

logger = logging.getLogger(__name__)

router = APIRouter(tags=["contact"])

# Everything is routed here so that unsupported methods get our 405 body.
_ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

SUCCESS_MESSAGE = "Form submitted successfully and confirmation email sent!"


class ContactFormError(Exception):
    """A pipeline stage rejected the request; carries the response to send."""

    def __init__(
        self,
        status_code: int,
        error: ErrorResponse,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        super().__init__(error.error)
        self.status_code = status_code
        self.error = error
        self.headers = headers or {}


def _json(status_code: int, body: dict, headers: dict[str, str]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=headers)


# ── Pipeline stages ───────────────────────────────────────────────────────


def _check_api_key(request: Request, expected: str) -> None:
    provided = request.headers.get("x-api-key") or ""
    # Same message whatever went wrong, so the caller learns nothing about the key.
    if not provided or not expected or not secrets.compare_digest(
        provided.encode("utf-8"), expected.encode("utf-8")
    ):
        raise ContactFormError(
            status.HTTP_401_UNAUTHORIZED,
            ErrorResponse(error="Unauthorized", message="Invalid API key"),
        )


async def _parse_body(request: Request) -> dict[str, Any]:
    try:
        data = json.loads(await request.body())
    except (ValueError, UnicodeDecodeError):
        data = None
    if not isinstance(data, dict):
        raise ContactFormError(
            status.HTTP_400_BAD_REQUEST,
            ErrorResponse(error="Invalid JSON payload"),
        )
    return data


def _resolve_form_type(data: dict[str, Any]) -> FormType:
    raw = data.get("formType")
    if raw is None or raw == "":
        raise ContactFormError(
            status.HTTP_400_BAD_REQUEST,
            ErrorResponse(error="Missing required field", field="formType"),
        )
    form_type = FormType.parse(raw)
    if form_type is None:
        raise ContactFormError(
            status.HTTP_400_BAD_REQUEST,
            ErrorResponse(error="Invalid form type", valid_types=FormType.values()),
        )
    return form_type


# ── Route ─────────────────────────────────────────────────────────────────


@router.api_route(
    "/",
    methods=_ROUTED_METHODS,
    operation_id="submitContactForm",
    summary="Submit a contact form (quote, message, recruiter query or interview proposal)",
)
async def submit_contact_form(
    request: Request,
    limiter: RateLimiter,
    dispatcher: Dispatcher,
    cors: Cors,
    api_key: ApiKey,
) -> Response:
    cors_headers = cors.headers_for(request.headers.get("origin"))

    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=cors_headers)

    if request.method != "POST":
        return _json(
            status.HTTP_405_METHOD_NOT_ALLOWED,
            ErrorResponse(error="Method not allowed", allowed_methods=["POST"]).to_body(),
            {**cors_headers, "Allow": "POST, OPTIONS"},
        )

    rate_headers: dict[str, str] = {}
    try:
        _check_api_key(request, api_key)

        decision = await limiter.evaluate(client_identity(request.headers))
        rate_headers = decision.headers()
        if not decision.allowed:
            raise ContactFormError(
                status.HTTP_429_TOO_MANY_REQUESTS,
                ErrorResponse(
                    error="Rate limit exceeded",
                    message=(
                        "Too many requests. Please try again in "
                        f"{decision.retry_after_minutes} minute(s)."
                    ),
                    retry_after=decision.retry_after_seconds,
                ),
            )

        data = await _parse_body(request)
        form_type = _resolve_form_type(data)

        # Only recognized submissions count against the quota.
        await limiter.record(decision)

        result = validate_submission(form_type, data)
        if not result.ok:
            raise ContactFormError(
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                ErrorResponse(error="Validation failed", details=result.errors),
            )

        submission = result.submission
        dispatch = await dispatcher.send(
            contact_email(submission),
            notification_subject(submission),
            render_notification(submission),
            render_reply_for(submission),
            to_name=contact_name(submission),
        )
        if not dispatch.ok:
            raise ContactFormError(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                ErrorResponse(
                    error="Notification failed",
                    message="Form was validated but we failed to process it",
                ),
            )

    except ContactFormError as exc:
        logger.info(
            "Contact form rejected (%d %s) from %s",
            exc.status_code,
            exc.error.error,
            client_identity(request.headers),
        )
        return _json(
            exc.status_code,
            exc.error.to_body(),
            {**cors_headers, **rate_headers, **exc.headers},
        )
    except Exception:
        logger.exception("Server error while processing contact form")
        return _json(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorResponse(
                error="Internal server error",
                message="An unexpected error occurred",
            ).to_body(),
            cors_headers,
        )

    logger.info("Contact form accepted: %s", form_type.value)
    return _json(
        status.HTTP_200_OK,
        SuccessResponse(message=SUCCESS_MESSAGE).model_dump(),
        {**cors_headers, **rate_headers},
    )
