"""
Submission validation and sanitization.

Each form type has its own rule set.  Rules never stop at the first
failure: every error is collected so the visitor can fix all fields in
one round trip.  A submission either validates completely and becomes a
typed record (see ``contact_api.models``), or yields a list of error messages.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup

from contact_api.models import (
    FormType,
    InterviewProposalSubmission,
    MessageSubmission,
    QuoteSubmission,
    RecruiterQuerySubmission,
    Submission,
)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^[\d\s+\-()]{6,20}$")

DEFAULT_MAX_LENGTH = 1000

# Tags whose text content must not survive sanitization.
_DROPPED_TAGS = ("script", "style", "iframe", "object", "embed")


# ── Primitive checks ──────────────────────────────────────────────────────


def clean(value: Any) -> str:
    """Stringify and trim a raw field value; None becomes ''."""
    if value is None:
        return ""
    return str(value).strip()


def strip_markup(value: Any) -> str:
    """
    Plain text of a raw field value: markup removed (script/style content
    included) and whitespace trimmed.  Nothing is escaped, so the result is
    fit for subject lines and recipient names as well as for ``sanitize``.
    """
    text = clean(value)
    if "<" not in text:
        return text
    soup = BeautifulSoup(text, "html.parser")
    for tag in soup.find_all(_DROPPED_TAGS):
        tag.decompose()
    return soup.get_text().strip()


def sanitize(value: Any) -> str:
    """Make a value safe to interpolate into an HTML email body."""
    return html.escape(strip_markup(value), quote=True)


def validate_length(
    field_name: str,
    value: Any,
    min_length: int,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> Optional[str]:
    """Return an error message for *value*, or None if it is acceptable."""
    text = clean(value)
    if not text:
        return f"{field_name} is required"
    if len(text) < min_length:
        return f"{field_name} must be at least {min_length} characters"
    if len(text) > max_length:
        return f"{field_name} must be less than {max_length} characters"
    return None


def is_valid_email(value: Any) -> bool:
    return bool(_EMAIL_RE.match(clean(value)))


def is_valid_phone(value: Any) -> bool:
    """Phone is optional: a missing or blank value is valid."""
    text = clean(value)
    return not text or bool(_PHONE_RE.match(text))


def _optional(value: Any) -> Optional[str]:
    return strip_markup(value) or None


# ── Result type ───────────────────────────────────────────────────────────


@dataclass
class ValidationResult:
    """Either a validated submission or the errors that prevented one."""

    submission: Optional[Submission] = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.submission is not None


class _Errors(list):
    """List of error messages with helpers for the common checks."""

    def length(self, field_name: str, text: str, min_length: int) -> None:
        error = validate_length(field_name, text, min_length)
        if error:
            self.append(error)

    def email(self, value: Any, message: str) -> None:
        if not is_valid_email(value):
            self.append(message)

    def phone(self, value: Any) -> None:
        if not is_valid_phone(value):
            self.append("Invalid phone number format")


# ── Per form type rules ───────────────────────────────────────────────────
#
# Length rules run on the markup-free text that ends up in the record, so a
# field holding nothing but tags is reported as missing.


def _validate_quote(data: dict) -> ValidationResult:
    name = strip_markup(data.get("name"))
    project = strip_markup(data.get("project"))

    errors = _Errors()
    errors.length("Name", name, 2)
    errors.email(data.get("email"), "Invalid email address")
    errors.phone(data.get("phone"))
    errors.length("Project description", project, 5)
    if errors:
        return ValidationResult(errors=list(errors))

    return ValidationResult(
        submission=QuoteSubmission(
            name=name,
            email=clean(data["email"]),
            project=project,
            phone=_optional(data.get("phone")),
            budget=_optional(data.get("budget")),
            timeline=_optional(data.get("timeline")),
            language=_optional(data.get("language")),
        )
    )


def _validate_message(data: dict) -> ValidationResult:
    name = strip_markup(data.get("name"))
    subject = strip_markup(data.get("subject"))
    message_body = strip_markup(data.get("messageBody"))

    errors = _Errors()
    errors.length("Name", name, 2)
    errors.email(data.get("email"), "Invalid email address")
    errors.phone(data.get("phone"))
    errors.length("Subject", subject, 3)
    errors.length("Message", message_body, 10)
    if errors:
        return ValidationResult(errors=list(errors))

    return ValidationResult(
        submission=MessageSubmission(
            name=name,
            email=clean(data["email"]),
            subject=subject,
            message_body=message_body,
            phone=_optional(data.get("phone")),
            language=_optional(data.get("language")),
        )
    )


def _validate_recruiter_query(data: dict) -> ValidationResult:
    recruiter_name = strip_markup(data.get("recruiterName"))
    role_title = strip_markup(data.get("roleTitle"))
    company_name = strip_markup(data.get("companyName"))

    errors = _Errors()
    errors.length("Recruiter name", recruiter_name, 2)
    errors.email(data.get("recruiterEmail"), "Invalid recruiter email")
    errors.length("Role title", role_title, 3)
    errors.length("Company name", company_name, 2)
    if errors:
        return ValidationResult(errors=list(errors))

    return ValidationResult(
        submission=RecruiterQuerySubmission(
            recruiter_name=recruiter_name,
            recruiter_email=clean(data["recruiterEmail"]),
            role_title=role_title,
            company_name=company_name,
            role_location=_optional(data.get("roleLocation")),
            role_description=_optional(data.get("roleDescription")),
            key_skills=_optional(data.get("keySkills")),
            link_to_jd=_optional(data.get("linkToJD")),
            language=_optional(data.get("language")),
        )
    )


def _validate_interview_proposal(data: dict) -> ValidationResult:
    recruiter_name = strip_markup(data.get("recruiterName"))
    role_title = strip_markup(data.get("roleTitleInterview"))
    company_name = strip_markup(data.get("companyName"))
    proposed_date_1 = _optional(data.get("proposedDate1"))
    proposed_date_2 = _optional(data.get("proposedDate2"))

    errors = _Errors()
    errors.length("Recruiter name", recruiter_name, 2)
    errors.email(data.get("recruiterEmail"), "Invalid recruiter email")
    errors.length("Role title", role_title, 3)
    errors.length("Company name", company_name, 2)
    if not proposed_date_1 and not proposed_date_2:
        errors.append("At least one proposed date is required")
    if errors:
        return ValidationResult(errors=list(errors))

    return ValidationResult(
        submission=InterviewProposalSubmission(
            recruiter_name=recruiter_name,
            recruiter_email=clean(data["recruiterEmail"]),
            role_title_interview=role_title,
            company_name=company_name,
            proposed_date_1=proposed_date_1,
            proposed_date_2=proposed_date_2,
            interview_timezone=_optional(data.get("interviewTimezoneRecruiter")),
            language=_optional(data.get("language")),
        )
    )


_VALIDATORS: dict[FormType, Callable[[dict], ValidationResult]] = {
    FormType.QUOTE: _validate_quote,
    FormType.MESSAGE: _validate_message,
    FormType.RECRUITER_QUERY: _validate_recruiter_query,
    FormType.INTERVIEW_PROPOSAL: _validate_interview_proposal,
}


def validate_submission(form_type: FormType, data: dict) -> ValidationResult:
    """Run the rule set for *form_type* against the raw request body."""
    return _VALIDATORS[form_type](data)
