"""
Submission orchestrator.

Runs the fixed sequence for one accepted submission:
1. spreadsheet mirror (only when GOOGLE_SHEETS_URL is set)
2. admin notification
3. sender confirmation
4. result assembly

No channel failure rejects the submission; each one is recorded in its
dispatch result and the request is still answered as accepted.
"""
import uuid
from typing import Any, Mapping, Optional, Union

import structlog

from app.core.config import Settings
from app.domain.schemas import (
    ContactSubmission,
    DispatchResult,
    MirrorOutcome,
    OrchestrationResult,
)
from app.infrastructure.email_transport import EmailTransportProvider
from app.services.email.dispatcher import EmailDispatcher
from app.services.sheets.mirror import SpreadsheetMirror
from app.state_machines import ResponseGate, SubmissionFlowMachine, get_flow_machine

logger = structlog.get_logger()

SHEETS_NOT_CONFIGURED = "not-configured"


class SubmissionOrchestrator:
    """Drives one submission through mirror, admin email and confirmation."""

    def __init__(
        self,
        dispatcher: EmailDispatcher,
        mirror: SpreadsheetMirror,
        settings: Settings,
    ):
        self.dispatcher = dispatcher
        self.mirror = mirror
        self._settings = settings

    async def handle(
        self,
        submission: Union[ContactSubmission, Mapping[str, Any]],
        webhook_override: Optional[str] = None,
        gate: Optional[ResponseGate] = None,
    ) -> Optional[OrchestrationResult]:
        """
        Process one submission.

        Args:
            submission: Validated submission, or a raw mapping to validate
            webhook_override: Per-request Apps Script URL
            gate: Response gate of the current request; claimed once the
                result is assembled

        Returns:
            The orchestration result, or None when the gate had already
            produced a response for this request

        Raises:
            ValidationError: raw mapping failed validation; nothing was sent
        """
        if not isinstance(submission, ContactSubmission):
            submission = ContactSubmission.from_payload(submission)

        submission_id = uuid.uuid4().hex[:12]
        flow: SubmissionFlowMachine = get_flow_machine("submission", submission_id=submission_id)

        with structlog.contextvars.bound_contextvars(submission_id=submission_id):
            logger.info(
                "submission_received",
                fields=sorted(submission.fields().keys()),
                reply_to=submission.email,
            )

            mirror_outcome = None
            sheet_url = self._settings.google_sheets_url
            if sheet_url:
                mirror_outcome = await self._run_mirror(sheet_url, submission, webhook_override)
                flow.record_mirror()
                spreadsheet = mirror_outcome.to_dispatch_result()
            else:
                logger.info("sheets_not_configured")
                spreadsheet = DispatchResult.skipped(SHEETS_NOT_CONFIGURED)

            flow.attempt_admin_email()
            admin_email = await self._send_admin(submission, mirror_outcome)

            flow.attempt_confirmation()
            # Recorded on the result but never put on the wire
            confirmation = await self.dispatcher.send_confirmation(submission)

            result = OrchestrationResult(
                admin_email=admin_email,
                confirmation_email=confirmation,
                spreadsheet=spreadsheet,
                mirror_outcome=mirror_outcome,
            )
            flow.finalize()

            if gate is not None:
                payload = result.to_response().model_dump(by_alias=True, exclude_none=True)
                if not gate.claim(payload):
                    logger.warning("submission_response_suppressed")
                    return None

            logger.info(
                "submission_completed",
                admin_email=admin_email.status,
                confirmation_email=confirmation.status,
                spreadsheet=spreadsheet.status,
            )
            return result

    async def _run_mirror(
        self,
        sheet_url: str,
        submission: ContactSubmission,
        webhook_override: Optional[str],
    ) -> MirrorOutcome:
        try:
            outcome = await self.mirror.mirror(sheet_url, submission, webhook_override)
        except Exception as e:
            logger.exception("sheets_mirror_error", error=str(e))
            return MirrorOutcome(success=False, sheet_url=sheet_url, error=str(e))

        result = outcome.submission_result
        if not outcome.success:
            logger.warning("sheets_mirror_not_processed", error=outcome.error)
        elif result is None:
            logger.warning("sheets_mirror_link_only")
        elif not result.success:
            logger.error(
                "sheets_mirror_write_failed",
                method=result.method,
                error_kind=result.error_kind,
                error=result.error,
            )
        return outcome

    async def _send_admin(
        self, submission: ContactSubmission, mirror_outcome: Optional[MirrorOutcome]
    ) -> DispatchResult:
        try:
            sent = await self.dispatcher.send_admin_notification(submission, mirror_outcome)
        except Exception as e:
            error_kind = getattr(e, "error_kind", "SendError")
            logger.error("admin_email_not_sent", error_kind=error_kind, error=str(e))
            return DispatchResult.failed(error_kind, str(e))
        return DispatchResult.succeeded(sent.get("message_id"))


def build_orchestrator(settings: Settings) -> SubmissionOrchestrator:
    """Wire the transport provider, dispatcher and mirror for one process."""
    provider = EmailTransportProvider(settings)
    dispatcher = EmailDispatcher(provider, settings)
    mirror = SpreadsheetMirror.from_settings(settings)
    return SubmissionOrchestrator(dispatcher, mirror, settings)
