"""
Email dispatcher — sends the notification and auto-reply via the Mailtrap send API.

Both messages go out concurrently and succeed or fail together: if either
call fails the whole dispatch is reported as failed and both provider
responses are logged.  There is no retry.

In development (email sending disabled), messages are logged instead so
you can see what *would* be sent without a Mailtrap account.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from contact_api.models import EmailAddress, EmailMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendOutcome:
    """Result of one API call."""

    ok: bool
    status_code: Optional[int] = None
    body: str = ""

    @classmethod
    def from_response(cls, resp: httpx.Response) -> "SendOutcome":
        return cls(ok=resp.is_success, status_code=resp.status_code, body=resp.text)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "SendOutcome":
        return cls(ok=False, body=f"{type(exc).__name__}: {exc}")


@dataclass(frozen=True)
class DispatchResult:
    """Combined outcome of the notification + auto-reply pair."""

    notification: SendOutcome
    reply: SendOutcome

    @property
    def ok(self) -> bool:
        return self.notification.ok and self.reply.ok


class EmailDispatcher:
    """Sends the two emails generated for every valid submission."""

    def __init__(
        self,
        *,
        api_url: str,
        api_token: str,
        operator_email: str,
        sender_name: str,
        notification_sender_name: str,
        enabled: bool = True,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = api_url
        self._operator_email = operator_email
        self._sender_name = sender_name
        self._notification_sender_name = notification_sender_name
        self._enabled = enabled
        self._client = client or httpx.AsyncClient(
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_token}",
            },
            timeout=timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ── Message construction ──────────────────────────────────────────

    def build_messages(
        self,
        to_address: str,
        subject: str,
        notification_html: str,
        reply_html: str,
        to_name: Optional[str] = None,
    ) -> tuple[EmailMessage, EmailMessage]:
        notification = EmailMessage(
            sender=EmailAddress(email=self._operator_email, name=self._notification_sender_name),
            to=[EmailAddress(email=self._operator_email)],
            subject=f"📬 New Contact Form Submission - {subject}",
            html=notification_html,
        )
        reply = EmailMessage(
            sender=EmailAddress(email=self._operator_email, name=self._sender_name),
            to=[EmailAddress(email=to_address, name=to_name or "Client")],
            subject=f"✅ Thank you for reaching out, {to_name or to_address}! - Re: {subject}",
            html=reply_html,
        )
        return notification, reply

    # ── Sending ───────────────────────────────────────────────────────

    async def send(
        self,
        to_address: str,
        subject: str,
        notification_html: str,
        reply_html: str,
        to_name: Optional[str] = None,
    ) -> DispatchResult:
        """
        Send the operator notification and the client reply concurrently.

        Never raises for provider or transport errors; inspect
        ``DispatchResult.ok`` instead.
        """
        notification, reply = self.build_messages(
            to_address, subject, notification_html, reply_html, to_name
        )

        # ── Console fallback (dev mode) ───────────────────────────────
        if not self._enabled:
            for message in (notification, reply):
                logger.info(
                    "📧 [DEV] Would send email to %s:\n  Subject: %s",
                    ", ".join(r.email for r in message.to),
                    message.subject,
                )
            return DispatchResult(notification=SendOutcome(ok=True), reply=SendOutcome(ok=True))

        # ── Real send ─────────────────────────────────────────────────
        notification_outcome, reply_outcome = await asyncio.gather(
            self._post(notification),
            self._post(reply),
        )
        result = DispatchResult(notification=notification_outcome, reply=reply_outcome)

        if result.ok:
            logger.info("Emails sent for %r (reply to %s)", subject, to_address)
        else:
            logger.error("Email dispatch failed for %r", subject)
            logger.error(
                "Notification: %s %s", notification_outcome.status_code, notification_outcome.body
            )
            logger.error("Client Reply: %s %s", reply_outcome.status_code, reply_outcome.body)
        return result

    async def _post(self, message: EmailMessage) -> SendOutcome:
        try:
            resp = await self._client.post(self._api_url, json=message.to_payload())
        except httpx.HTTPError as exc:
            return SendOutcome.from_exception(exc)
        return SendOutcome.from_response(resp)
