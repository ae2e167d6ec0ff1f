"""
Contact form endpoints.
Accepts contact form submissions, emails them to the site owner and mirrors
them into Google Sheets when configured.
"""
from datetime import datetime, timezone
from typing import Optional

import httpx
import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.api.dependencies import get_orchestrator
from app.core.config import Settings, settings
from app.core.exceptions import ValidationError
from app.domain.schemas import ContactSubmission, ContactSubmissionResponse, HealthResponse
from app.services.submission import SubmissionOrchestrator
from app.state_machines import get_flow_machine

limiter = Limiter(key_func=get_remote_address)

logger = structlog.get_logger()

router = APIRouter(tags=["Contact"])

# Per-request webhook targets are limited to deployed Apps Script endpoints
APPS_SCRIPT_HOSTS = ("script.google.com", "script.googleusercontent.com")
WEBHOOK_OVERRIDE_MESSAGE = "webhookUrl must be an https Google Apps Script URL"


def validate_webhook_override(webhook_url: Optional[str]) -> Optional[str]:
    """
    Check the per-request webhook URL.

    Only https URLs on an Apps Script host are accepted, so a caller cannot
    point the server at arbitrary or internal addresses.

    Raises:
        ValidationError: not an https Apps Script URL
    """
    if webhook_url is None or not webhook_url.strip():
        return None
    webhook_url = webhook_url.strip()
    try:
        url = httpx.URL(webhook_url)
    except httpx.InvalidURL:
        url = None
    if (
        url is None
        or url.scheme != "https"
        or url.host.lower() not in APPS_SCRIPT_HOSTS
        or url.port not in (None, 443)
        or url.userinfo
    ):
        raise ValidationError(
            "Validation failed",
            errors=[{
                "field": "webhookUrl",
                "message": WEBHOOK_OVERRIDE_MESSAGE,
                "source": "query",
            }],
        )
    return webhook_url


def build_health_response(config: Settings, message: str) -> HealthResponse:
    missing = config.missing_email_settings
    return HealthResponse(
        success=True,
        message=message,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=config.api_version,
        email_configured=not missing,
        missing_email_settings=missing,
        google_sheets_configured=bool(config.google_sheets_url),
        service_account_configured=config.service_account_configured,
        webhook_configured=bool(config.google_sheets_webhook_url),
    )


@router.post("/submit", response_model=ContactSubmissionResponse, status_code=status.HTTP_200_OK)
@limiter.limit(f"{settings.rate_limit_requests}/minute")
async def submit_contact_form(
    request: Request,
    submission: ContactSubmission,
    webhook_url: Optional[str] = Query(default=None, alias="webhookUrl"),
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    """
    Submit contact form.

    Always answers 200 once the submission is valid; email and spreadsheet
    failures are reported in emailStatus and googleSheets.
    Rate limited per client IP.
    """
    webhook_override = validate_webhook_override(webhook_url)

    gate = get_flow_machine("response")
    request.state.response_gate = gate

    result = await orchestrator.handle(submission, webhook_override=webhook_override, gate=gate)
    if result is None:
        logger.warning("contact_form_response_already_sent")

    return JSONResponse(status_code=status.HTTP_200_OK, content=gate.payload)


@router.get("/health", response_model=HealthResponse, response_model_by_alias=True)
async def contact_health():
    """Contact API status and configuration presence flags."""
    return build_health_response(settings, "Contact form API is running")
