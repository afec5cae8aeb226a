"""
Fake Mailtrap send API built on httpx.MockTransport.

Records every request so tests can assert on the exact payloads, and
can be told to fail for particular recipients.
"""

from __future__ import annotations

import json

import httpx

from contact_api.services.email import EmailDispatcher

MAIL_API_URL = "https://mail.test/api/send"
OPERATOR_EMAIL = "hello@philipmutua.xyz"


class FakeMailApi:
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        # recipient email → status code to answer with
        self.fail_for: dict[str, int] = {}
        # recipient email → exception to raise
        self.raise_for: dict[str, Exception] = {}

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]

    def recipients(self) -> list[str]:
        return [p["to"][0]["email"] for p in self.payloads]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        recipient = json.loads(request.content)["to"][0]["email"]
        if recipient in self.raise_for:
            raise self.raise_for[recipient]
        code = self.fail_for.get(recipient)
        if code is not None:
            return httpx.Response(code, json={"success": False, "errors": ["rejected"]})
        return httpx.Response(200, json={"success": True, "message_ids": ["abc"]})

    def dispatcher(self, *, enabled: bool = True) -> EmailDispatcher:
        return EmailDispatcher(
            api_url=MAIL_API_URL,
            api_token="test-token",
            operator_email=OPERATOR_EMAIL,
            sender_name="Philip Mutua",
            notification_sender_name="Contact Form",
            enabled=enabled,
            client=httpx.AsyncClient(
                transport=httpx.MockTransport(self.handler),
                headers={"Authorization": "Bearer test-token"},
            ),
        )
