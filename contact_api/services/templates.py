"""
HTML bodies for the two emails sent per submission.

* ``render_client_reply`` – the localized auto-reply to the visitor.
* ``render_notification`` – the internal summary sent to the operator.

Plain f-string templates, no template engine.  Submission records hold
markup-free plain text; every submitted value is escaped with
``contact_api.validation.sanitize`` at the point it enters the HTML.
"""

from __future__ import annotations

from typing import Optional

from contact_api.models import (
    FormType,
    InterviewProposalSubmission,
    MessageSubmission,
    QuoteSubmission,
    RecruiterQuerySubmission,
    Submission,
)
from contact_api.validation import sanitize

DEFAULT_LANGUAGE = "en"

# ── Localized copy ────────────────────────────────────────────────────────
#
# Intro sentences are keyed by form type; "default" covers any type the
# table does not know.  "{name}" is filled in at render time.

_INTROS: dict[str, dict[str, str]] = {
    "en": {
        "quote": "Hi {name}, thank you for requesting a project quote. I’m currently reviewing your information and will follow up soon.",
        "message": "Hi {name}, thanks for getting in touch. I’ve received your message and will respond shortly.",
        "recruiter_query": "Hello {name}, thank you for reaching out regarding recruitment. I’ll review your inquiry and respond as soon as I can.",
        "interview_proposal": "Hi {name}, I appreciate the interview proposal. I’ll take a look at your availability and respond with next steps.",
        "default": "Hi {name}, thank you for reaching out. I'll take a look at your message and get back to you soon.",
    },
    "sw": {
        "quote": "Habari {name}, asante kwa kuomba nukuu ya mradi. Ninapitia maelezo yako na nitawasiliana nawe hivi karibuni.",
        "message": "Habari {name}, asante kwa kunifikia. Nimepokea ujumbe wako na nitajibu hivi karibuni.",
        "recruiter_query": "Salamu {name}, asante kwa kuwasiliana kuhusu ajira. Nitapitia maelezo yako na nitajibu haraka iwezekanavyo.",
        "interview_proposal": "Habari {name}, ninathamini pendekezo lako la usaili. Nitachunguza ratiba yako na nitajibu kwa hatua zinazofuata.",
        "default": "Habari {name}, asante kwa kuwasiliana. Nitapitia ujumbe wako na nitawasiliana nawe hivi karibuni.",
    },
    "fr": {
        "quote": "Bonjour {name}, merci d'avoir demandé un devis. Je suis en train d'examiner vos informations et je reviendrai vers vous bientôt.",
        "message": "Bonjour {name}, merci de m'avoir contacté. J'ai bien reçu votre message et je répondrai sous peu.",
        "recruiter_query": "Bonjour {name}, merci pour votre intérêt concernant le recrutement. J'examinerai votre demande et vous répondrai dès que possible.",
        "interview_proposal": "Bonjour {name}, merci pour la proposition d'entretien. Je vais vérifier vos disponibilités et vous recontacterai rapidement.",
        "default": "Bonjour {name}, merci pour votre message. Je vais l'examiner et vous répondre sous peu.",
    },
    "es": {
        "quote": "Hola {name}, gracias por solicitar un presupuesto. Estoy revisando la información y te contactaré pronto.",
        "message": "Hola {name}, gracias por comunicarte. He recibido tu mensaje y responderé en breve.",
        "recruiter_query": "Hola {name}, gracias por tu interés en reclutamiento. Revisaré tu consulta y responderé lo antes posible.",
        "interview_proposal": "Hola {name}, gracias por la propuesta de entrevista. Revisaré tu disponibilidad y responderé pronto.",
        "default": "Hola {name}, gracias por contactarme. Revisaré tu mensaje y te responderé pronto.",
    },
    "de": {
        "quote": "Hallo {name}, danke für Ihre Anfrage für ein Angebot. Ich prüfe Ihre Angaben und melde mich bald bei Ihnen.",
        "message": "Hallo {name}, danke für Ihre Nachricht. Ich habe Ihre Nachricht erhalten und werde bald antworten.",
        "recruiter_query": "Hallo {name}, danke für Ihr Interesse bezüglich der Rekrutierung. Ich werde Ihre Anfrage prüfen und so bald wie möglich antworten.",
        "interview_proposal": "Hallo {name}, danke für den Interviewvorschlag. Ich überprüfe Ihre Verfügbarkeit und werde mich mit den nächsten Schritten melden.",
        "default": "Hallo {name}, danke für Ihre Kontaktaufnahme. Ich werde Ihre Nachricht prüfen und bald antworten.",
    },
}

_LABELS: dict[str, dict[str, str]] = {
    "en": {
        "budget": "Budget",
        "timeline": "Timeline",
        "preferred_contact": "Preferred Contact",
        "to_be_discussed": "To be discussed",
        "follow_up": "I appreciate your interest and will be in touch shortly.",
        "closing": "Best regards",
        "title": "Thank you for reaching out!",
        "anonymous": "there",
    },
    "sw": {
        "budget": "Bajeti",
        "timeline": "Muda",
        "preferred_contact": "Njia ya Mawasiliano",
        "to_be_discussed": "Itajadiliwa",
        "follow_up": "Nathamini shauku yako na nitawasiliana nawe hivi karibuni.",
        "closing": "Salamu",
        "title": "Asante kwa kuwasiliana!",
        "anonymous": "rafiki",
    },
    "fr": {
        "budget": "Budget",
        "timeline": "Délais",
        "preferred_contact": "Contact préféré",
        "to_be_discussed": "À discuter",
        "follow_up": "Je vous remercie de votre intérêt et vous répondrai bientôt.",
        "closing": "Cordialement",
        "title": "Merci de votre message !",
        "anonymous": "à vous",
    },
    "es": {
        "budget": "Presupuesto",
        "timeline": "Cronograma",
        "preferred_contact": "Contacto preferido",
        "to_be_discussed": "A convenir",
        "follow_up": "Agradezco tu interés y me pondré en contacto contigo pronto.",
        "closing": "Saludos cordiales",
        "title": "¡Gracias por escribir!",
        "anonymous": "amigo",
    },
    "de": {
        "budget": "Budget",
        "timeline": "Zeitrahmen",
        "preferred_contact": "Bevorzugter Kontakt",
        "to_be_discussed": "Nach Absprache",
        "follow_up": "Ich schätze Ihr Interesse und werde mich in Kürze bei Ihnen melden.",
        "closing": "Mit freundlichen Grüßen",
        "title": "Danke für Ihre Nachricht!",
        "anonymous": "zusammen",
    },
}

SUPPORTED_LANGUAGES = frozenset(_INTROS)

# Shown in the signature block of every reply.
SIGNATURE_NAME = "Philip Mutua"
SIGNATURE_ROLE = "Senior Software Engineer"
SIGNATURE_EMAIL = "hello@philipmutua.xyz"
SIGNATURE_SITE = "https://philipmutua.xyz"


def resolve_language(language: Optional[str]) -> str:
    """Normalize a language code, falling back to English."""
    code = (language or "").strip().lower()
    return code if code in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


# ── Client reply ──────────────────────────────────────────────────────────


def render_client_reply(
    form_type: FormType | str,
    language: Optional[str],
    *,
    name: Optional[str] = None,
    budget: Optional[str] = None,
    timeline: Optional[str] = None,
    preferred_contact: str = "Email",
) -> str:
    """
    Build the localized auto-reply document.

    Unknown languages render in English (``lang="en"`` included); unknown
    form types use the language's generic intro.
    """
    lang = resolve_language(language)
    labels = _LABELS[lang]
    intros = _INTROS[lang]

    key = form_type.value if isinstance(form_type, FormType) else str(form_type)
    intro = intros.get(key, intros["default"]).format(name=sanitize(name) or labels["anonymous"])

    details = ""
    if budget or timeline:
        details = f"""
      <p style="margin: 5px 0;"><strong>{labels['budget']}:</strong> {sanitize(budget) or labels['to_be_discussed']}</p>
      <p style="margin: 5px 0;"><strong>{labels['timeline']}:</strong> {sanitize(timeline) or labels['to_be_discussed']}</p>"""

    return f"""<!DOCTYPE html>
<html lang="{lang}">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{labels['title']}</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; background: #ffffff; padding: 24px; border: 1px solid #eee;">
    <p style="font-size: 18px; margin-bottom: 20px;">{intro}</p>
{details}
    <p style="margin: 5px 0;"><strong>{labels['preferred_contact']}:</strong> {sanitize(preferred_contact)}</p>

    <p style="margin-top: 30px;">{labels['follow_up']}</p>

    <div style="margin-top: 40px; border-top: 1px solid #eee; padding-top: 20px;">
      <p style="margin: 0;">{labels['closing']},</p>
      <p style="margin: 2px 0;"><strong>{SIGNATURE_NAME}</strong></p>
      <p style="margin: 2px 0;">{SIGNATURE_ROLE}</p>
      <p style="margin: 2px 0;">
        <a href="mailto:{SIGNATURE_EMAIL}" style="color: #007acc; text-decoration: none;">{SIGNATURE_EMAIL}</a> |
        <a href="{SIGNATURE_SITE}" style="color: #007acc; text-decoration: none;">{SIGNATURE_SITE.removeprefix('https://')}</a>
      </p>
    </div>
  </div>
</body>
</html>
"""


def render_reply_for(submission: Submission) -> str:
    """Auto-reply for a validated submission."""
    budget = timeline = None
    if isinstance(submission, QuoteSubmission):
        budget, timeline = submission.budget, submission.timeline
    return render_client_reply(
        submission.form_type,
        submission.language,
        name=contact_name(submission),
        budget=budget,
        timeline=timeline,
    )


# ── Internal notification ─────────────────────────────────────────────────


def contact_name(submission: Submission) -> str:
    if isinstance(submission, (QuoteSubmission, MessageSubmission)):
        return submission.name
    return submission.recruiter_name


def contact_email(submission: Submission) -> str:
    if isinstance(submission, (QuoteSubmission, MessageSubmission)):
        return submission.email
    return submission.recruiter_email


def notification_subject(submission: Submission) -> str:
    """Short subject line describing the submission."""
    if isinstance(submission, QuoteSubmission):
        return f"New Quote Request - {submission.name}"
    if isinstance(submission, MessageSubmission):
        return f"New Message - {submission.subject}"
    if isinstance(submission, RecruiterQuerySubmission):
        return f"New Recruiter Query - {submission.recruiter_name}"
    return f"Interview Proposal - {submission.recruiter_name}"


def _notification_rows(submission: Submission) -> tuple[str, list[tuple[str, Optional[str]]]]:
    if isinstance(submission, QuoteSubmission):
        return "New Quote Request", [
            ("Name", submission.name),
            ("Email", submission.email),
            ("Phone", submission.phone),
            ("Project", submission.project),
            ("Budget", submission.budget),
            ("Timeline", submission.timeline),
        ]
    if isinstance(submission, MessageSubmission):
        return "New Message", [
            ("Name", submission.name),
            ("Email", submission.email),
            ("Phone", submission.phone),
            ("Subject", submission.subject),
            ("Message", submission.message_body),
        ]
    if isinstance(submission, RecruiterQuerySubmission):
        return "Recruiter Query", [
            ("Recruiter", submission.recruiter_name),
            ("Company", submission.company_name),
            ("Email", submission.recruiter_email),
            ("Location", submission.role_location),
            ("Role", submission.role_title),
            ("Description", submission.role_description),
            ("Skills", submission.key_skills),
            ("JD Link", submission.link_to_jd),
        ]
    if isinstance(submission, InterviewProposalSubmission):
        return "Interview Proposal", [
            ("Recruiter", submission.recruiter_name),
            ("Company", submission.company_name),
            ("Email", submission.recruiter_email),
            ("Date 1", submission.proposed_date_1),
            ("Date 2", submission.proposed_date_2),
            ("Timezone", submission.interview_timezone),
            ("Role", submission.role_title_interview),
        ]
    raise TypeError(f"Unsupported submission type: {type(submission).__name__}")


def render_notification(submission: Submission) -> str:
    """Operator-facing summary listing every submitted field."""
    heading, rows = _notification_rows(submission)
    body = ""
    for label, value in rows:
        body += f"""
        <tr>
          <th align="left" style="padding-right:1em">{label}</th>
          <td>{sanitize(value) or 'N/A'}</td>
        </tr>"""

    return f"""
    <html>
    <body style="font-family:sans-serif;color:#333">
      <h2>📬 {heading}</h2>
      <table border="0" cellpadding="6" cellspacing="0"
             style="border-collapse:collapse;border:1px solid #ddd">
        <tbody>{body}
        </tbody>
      </table>
      <p style="margin-top:1em;font-size:0.9em;color:#888">
        Reply language: {resolve_language(submission.language)}
      </p>
    </body>
    </html>
    """
