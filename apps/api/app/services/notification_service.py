"""Staff email notifications for new public submissions.

Sent through the Resend HTTP API after the submission is committed. Delivery
is best-effort: failures and timeouts are logged and never reach the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from uuid import UUID

import httpx

from app.core.async_utils import run_best_effort
from app.core.config import settings
from app.core.structured_logging import build_log_context
from app.db.enums import FormKind
from app.db.models import Organization
from app.services import org_service
from app.services.form_schema_service import ResolvedForm
from app.services.http_service import DEFAULT_RETRY_STATUSES, request_with_retries

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_MAX_ATTEMPTS = 3
RESEND_RETRY_BASE_DELAY = 0.5
RESEND_RETRY_MAX_DELAY = 4.0

SUBJECT_PREFIXES = {
    FormKind.LEAD.value: "New website lead",
    FormKind.DONATION.value: "New donation",
    FormKind.BOOKING.value: "New booking",
    FormKind.FEEDBACK.value: "New feedback",
}


@dataclass(frozen=True)
class NotificationMessage:
    """Plain data; safe to hand to a background task after the session closes."""

    kind: str
    org_id: str
    org_slug: str
    form_key: str
    recipients: tuple[str, ...]
    subject: str
    text: str
    idempotency_key: str | None = None


def _value(values: Mapping[str, object], key: str) -> str | None:
    value = values.get(key)
    if value is None or value == "" or value is False:
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _kind_lines(kind: str | None, resolved: ResolvedForm, values: Mapping[str, object]) -> list[str]:
    lines: list[str] = []
    if kind == FormKind.LEAD.value:
        if message := _value(values, "message"):
            lines.append(f"Message: {message}")
    elif kind == FormKind.DONATION.value:
        if amount := _value(values, "amount"):
            lines.append(f"Amount: {amount} {settings.DEFAULT_CURRENCY}")
        if message := _value(values, "message"):
            lines.append(f"Comment: {message}")
    elif kind == FormKind.BOOKING.value:
        if service := _value(values, "service"):
            lines.append(f"Service: {service}")
        when = " ".join(v for v in (_value(values, "date"), _value(values, "time")) if v)
        if when:
            lines.append(f"When: {when}")
        if message := _value(values, "message"):
            lines.append(f"Comment: {message}")
    elif kind == FormKind.FEEDBACK.value:
        if rating := _value(values, "rating"):
            lines.append(f"Rating: {rating}/5")
        if message := _value(values, "message"):
            lines.append(f"Feedback: {message}")
    else:
        for spec in resolved.schema.fields:
            if spec.name in ("name", "email", "phone", "source"):
                continue
            if text := _value(values, spec.name):
                lines.append(f"{spec.label or spec.name}: {text}")
    return lines


def build_notification(
    org: Organization,
    resolved: ResolvedForm,
    values: Mapping[str, object],
    case_id: UUID | None,
) -> NotificationMessage | None:
    """Message for a new submission, or None when the org has it switched off."""
    kind = resolved.form_kind or resolved.form_key
    config = org_service.get_notification_config(org)
    if not config.enabled_for(kind):
        return None

    lines: list[str] = []
    if name := _value(values, "name"):
        lines.append(f"Name: {name}")
    if email := _value(values, "email"):
        lines.append(f"Email: {email}")
    if phone := _value(values, "phone"):
        lines.append(f"Phone: {phone}")
    lines.extend(_kind_lines(resolved.form_kind, resolved, values))
    if source := _value(values, "source"):
        lines.append(f"Source: {source}")
    if case_id:
        lines.append(f"Case ID: {case_id}")

    prefix = SUBJECT_PREFIXES.get(resolved.form_kind or "", f"New {resolved.title} submission")
    return NotificationMessage(
        kind=kind,
        org_id=str(org.id),
        org_slug=org.slug,
        form_key=resolved.form_key,
        recipients=tuple(config.emails),
        subject=f"{prefix} - {org.name}",
        text="\n".join(lines),
        idempotency_key=f"submission/{case_id}" if case_id else None,
    )


def sender_configured() -> bool:
    return bool(settings.RESEND_API_KEY) and bool(settings.NOTIFICATION_EMAIL_FROM.strip())


async def _send_resend_email(
    *,
    to_emails: list[str],
    subject: str,
    text: str,
    idempotency_key: str | None,
) -> dict:
    payload: dict[str, object] = {
        "from": settings.NOTIFICATION_EMAIL_FROM.strip(),
        "to": to_emails,
        "subject": subject,
        "text": text,
    }
    headers = {
        "Authorization": f"Bearer {settings.RESEND_API_KEY}",
        "Content-Type": "application/json",
    }
    if idempotency_key:
        headers["Idempotency-Key"] = idempotency_key

    async with httpx.AsyncClient(timeout=settings.NOTIFICATION_TIMEOUT_SECONDS) as client:

        async def request_fn() -> httpx.Response:
            return await client.post(RESEND_SEND_URL, headers=headers, json=payload)

        response = await request_with_retries(
            request_fn,
            max_attempts=RESEND_MAX_ATTEMPTS,
            base_delay=RESEND_RETRY_BASE_DELAY,
            max_delay=RESEND_RETRY_MAX_DELAY,
            retry_statuses=DEFAULT_RETRY_STATUSES,
        )

    # 409 means Resend already accepted a send with this idempotency key
    if 200 <= response.status_code < 300 or response.status_code == 409:
        message_id = None
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("id"), str):
            message_id = data["id"]
        return {"success": True, "message_id": message_id}

    detail = None
    try:
        data = response.json()
        if isinstance(data, dict):
            detail = data.get("message") or data.get("error")
    except ValueError:
        detail = None
    if detail:
        return {"success": False, "error": f"Resend API error: {response.status_code} ({detail})"}
    return {"success": False, "error": f"Resend API error: {response.status_code}"}


async def send_notification(message: NotificationMessage) -> dict:
    """Send one notification. Returns a result dict; transport errors propagate."""
    log_context = build_log_context(org_id=message.org_id, form_key=message.form_key)
    if not sender_configured():
        logger.info(
            "Notification sender not configured; skipping %s notification",
            message.kind,
            extra=log_context,
        )
        return {"success": False, "skipped": True}

    result = await _send_resend_email(
        to_emails=list(message.recipients),
        subject=message.subject,
        text=message.text,
        idempotency_key=message.idempotency_key,
    )
    if result.get("success"):
        logger.info("Sent %s notification", message.kind, extra=log_context)
    else:
        logger.warning(
            "Notification send failed: %s", result.get("error"), extra=log_context
        )
    return result


async def dispatch_notification(message: NotificationMessage) -> bool:
    """Background-task entry point: time-boxed, never raises."""
    return await run_best_effort(
        lambda: send_notification(message),
        timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        label=f"{message.kind} notification",
        log_context=build_log_context(org_id=message.org_id, form_key=message.form_key),
    )
