"""Pydantic models for the Contact Form API."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class FormType(str, Enum):
    """The form variants the site can submit."""

    QUOTE = "quote"
    MESSAGE = "message"
    RECRUITER_QUERY = "recruiter_query"
    INTERVIEW_PROPOSAL = "interview_proposal"

    @classmethod
    def parse(cls, value: object) -> Optional["FormType"]:
        """Return the matching variant, or None for an unknown form type."""
        try:
            return cls(value)
        except (ValueError, TypeError):
            return None

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


# ── Validated submissions ─────────────────────────────────────────────────
#
# Instances are only ever built from values that passed validation and
# sanitization, so every field is safe to interpolate into HTML.


class _Submission(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: Optional[str] = Field(None, description="Reply language code (en, sw, fr, es, de)")


class QuoteSubmission(_Submission):
    """A request for a project quote."""
    form_type: FormType = FormType.QUOTE
    name: str
    email: str
    project: str
    phone: Optional[str] = None
    budget: Optional[str] = None
    timeline: Optional[str] = None


class MessageSubmission(_Submission):
    """A general message."""
    form_type: FormType = FormType.MESSAGE
    name: str
    email: str
    subject: str
    message_body: str
    phone: Optional[str] = None


class RecruiterQuerySubmission(_Submission):
    """A recruiter asking about a role."""
    form_type: FormType = FormType.RECRUITER_QUERY
    recruiter_name: str
    recruiter_email: str
    role_title: str
    company_name: str
    role_location: Optional[str] = None
    role_description: Optional[str] = None
    key_skills: Optional[str] = None
    link_to_jd: Optional[str] = None


class InterviewProposalSubmission(_Submission):
    """A recruiter proposing interview dates."""
    form_type: FormType = FormType.INTERVIEW_PROPOSAL
    recruiter_name: str
    recruiter_email: str
    role_title_interview: str
    company_name: str
    proposed_date_1: Optional[str] = None
    proposed_date_2: Optional[str] = None
    interview_timezone: Optional[str] = None


Submission = Union[
    QuoteSubmission,
    MessageSubmission,
    RecruiterQuerySubmission,
    InterviewProposalSubmission,
]


# ── Email API payloads ────────────────────────────────────────────────────


class EmailAddress(BaseModel):
    email: str
    name: Optional[str] = None


class EmailMessage(BaseModel):
    """One message in the shape the Mailtrap send API expects."""
    sender: EmailAddress = Field(..., serialization_alias="from")
    to: list[EmailAddress]
    subject: str
    html: str

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Response bodies ───────────────────────────────────────────────────────


class SuccessResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
    field: Optional[str] = None
    details: Optional[list[str]] = None
    valid_types: Optional[list[str]] = Field(None, serialization_alias="validTypes")
    allowed_methods: Optional[list[str]] = Field(None, serialization_alias="allowedMethods")
    retry_after: Optional[int] = Field(None, serialization_alias="retryAfter")

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
