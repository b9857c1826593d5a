"""Public form endpoints for website widgets (no staff login)."""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_db
from app.core.rate_limit import limiter, public_form_rate_key
from app.core.structured_logging import build_log_context
from app.schemas.forms import PublicFormConfigRead
from app.services import (
    form_schema_service,
    form_validation,
    notification_service,
    submission_service,
)
from app.services.form_schema_service import FormResolutionStatus
from app.services.trust_gate import PublicRequest, TrustGate, get_trust_gate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public/forms", tags=["public-forms"])

FORM_NOT_FOUND = "Form not found"
FORM_DISABLED = "Form is disabled"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _public_request(request: Request, org_slug: str) -> PublicRequest:
    headers = request.headers
    return PublicRequest(
        org_slug=org_slug,
        method=request.method,
        public_key=headers.get(settings.PUBLIC_KEY_HEADER),
        origin=headers.get("origin"),
        referer=headers.get("referer"),
        authorization=headers.get("authorization"),
    )


async def _read_json_object(request: Request) -> dict | None:
    """Parsed body, {} for an empty body, None when it isn't a JSON object."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except (ValueError, RecursionError):
        # Decode errors and over-long integer literals are ValueErrors
        return None
    return body if isinstance(body, dict) else None


@router.get("/{org_slug}/{form_key}/config")
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_READ}/minute", key_func=public_form_rate_key)
def get_public_form_config(
    request: Request,
    org_slug: str,
    form_key: str,
    db: Session = Depends(get_db),
    gate: TrustGate = Depends(get_trust_gate),
):
    """Field schema for rendering a widget. Disabled forms report isActive=false."""
    decision = gate.evaluate(db, _public_request(request, org_slug))
    if not decision.allowed:
        return _error(decision.status_code, decision.reason)

    resolution = form_schema_service.resolve_form(db, decision.org.id, form_key)
    if resolution.resolved is None:
        return _error(404, FORM_NOT_FOUND)

    resolved = resolution.resolved
    config = PublicFormConfigRead(
        form_key=resolved.form_key,
        title=resolved.title,
        is_active=resolved.is_active,
        config_version=resolved.schema.config_version,
        fields=resolved.schema.fields,
        rules=resolved.schema.rules,
    )
    return JSONResponse(
        status_code=200,
        content=config.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.post("/{org_slug}/{form_key}")
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_FORMS}/minute", key_func=public_form_rate_key)
async def submit_public_form(
    request: Request,
    org_slug: str,
    form_key: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    gate: TrustGate = Depends(get_trust_gate),
):
    """
    Record a widget submission.

    201 new submission, 200 replay of an earlier one (same idempotency
    token), 202 silently dropped bot submission.
    """
    decision = gate.evaluate(db, _public_request(request, org_slug))
    if not decision.allowed:
        return _error(decision.status_code, decision.reason)
    org = decision.org

    body = await _read_json_object(request)
    if body is None:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request body",
                "details": [{"field": "body", "message": "Must be a JSON object"}],
            },
        )

    if submission_service.is_honeypot(body):
        return JSONResponse(status_code=202, content={"received": True})

    token = submission_service.extract_idempotency_token(
        request.headers.get(settings.IDEMPOTENCY_HEADER), body
    )
    log_context = build_log_context(
        org_id=str(org.id),
        org_slug=org.slug,
        form_key=form_key,
        route=request.url.path,
        method=request.method,
    )

    replay = submission_service.find_replay(db, org.id, token)
    if replay is not None:
        logger.info("Replayed public submission", extra=log_context)
        return JSONResponse(status_code=200, content=replay.to_payload())

    resolution = form_schema_service.resolve_form(db, org.id, form_key)
    if resolution.status == FormResolutionStatus.NOT_FOUND:
        return _error(404, FORM_NOT_FOUND)
    if resolution.status == FormResolutionStatus.DISABLED:
        return _error(410, FORM_DISABLED)
    resolved = resolution.resolved

    result = form_validation.validate_payload(resolved.schema, body)
    if not result.ok:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation failed",
                "details": [error.as_dict() for error in result.errors],
            },
        )

    try:
        response = submission_service.record_submission(
            db,
            org,
            resolved,
            result.values,
            token=token,
            extra=submission_service.extract_extra_fields(resolved, body),
        )
    except Exception:
        logger.exception("Public form submission failed", extra=log_context)
        return _error(500, "Failed to submit public form")

    if response.idempotent:
        return JSONResponse(status_code=200, content=response.to_payload())

    message = notification_service.build_notification(
        org, resolved, result.values, response.case.id
    )
    if message is not None:
        background_tasks.add_task(notification_service.dispatch_notification, message)

    logger.info("Recorded public submission", extra=log_context)
    return JSONResponse(status_code=201, content=response.to_payload())
