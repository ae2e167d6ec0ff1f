"""
Spreadsheet mirror: copies a submission into the configured Google Sheet.

Exactly one write strategy runs per submission, picked in this order:
service account API, per-request webhook, default webhook, none. The only
exception is the API strategy failing outright (credentials, transport),
which gets a single retry through the default webhook.
"""
from enum import Enum
from typing import Optional

import structlog

from app.core.config import Settings
from app.domain.schemas import (
    ContactSubmission,
    MirrorOutcome,
    MirrorSkipReason,
    WriteResult,
)
from app.infrastructure.sheets_client import SheetsApiClient
from app.services.sheets.api_strategy import ApiWriteStrategy
from app.services.sheets.formatting import extract_spreadsheet_id, is_valid_sheet_url
from app.services.sheets.webhook_strategy import WebhookWriteStrategy

logger = structlog.get_logger()

SPREADSHEET_ID_PLACEHOLDER = "{SPREADSHEET_ID}"


class WriteMethod(str, Enum):
    API = "api"
    WEBHOOK_OVERRIDE = "webhook-override"
    WEBHOOK_DEFAULT = "webhook-default"
    NONE = "none"


class SpreadsheetMirror:
    def __init__(
        self,
        webhook_strategy: WebhookWriteStrategy,
        api_strategy: Optional[ApiWriteStrategy] = None,
        default_webhook_url: str = "",
    ):
        self._webhook = webhook_strategy
        self._api = api_strategy
        self._default_webhook_url = default_webhook_url

    @classmethod
    def from_settings(cls, settings: Settings) -> "SpreadsheetMirror":
        api_strategy = None
        if settings.service_account_configured:
            api_strategy = ApiWriteStrategy(
                SheetsApiClient.from_settings(settings),
                sheet_name=settings.google_sheet_name,
            )
        return cls(
            webhook_strategy=WebhookWriteStrategy(timeout=settings.google_sheets_webhook_timeout),
            api_strategy=api_strategy,
            default_webhook_url=settings.google_sheets_webhook_url,
        )

    def select_method(self, webhook_override: Optional[str] = None) -> WriteMethod:
        if self._api is not None and self._api.configured:
            return WriteMethod.API
        if webhook_override:
            return WriteMethod.WEBHOOK_OVERRIDE
        if self._default_webhook_url:
            return WriteMethod.WEBHOOK_DEFAULT
        return WriteMethod.NONE

    def default_webhook_for(self, spreadsheet_id: str) -> str:
        return self._default_webhook_url.replace(SPREADSHEET_ID_PLACEHOLDER, spreadsheet_id)

    async def mirror(
        self,
        sheet_reference: Optional[str],
        submission: ContactSubmission,
        webhook_override: Optional[str] = None,
    ) -> MirrorOutcome:
        """
        Mirror one submission into the referenced spreadsheet.

        Args:
            sheet_reference: Google Sheets URL
            submission: The validated submission
            webhook_override: Per-request Apps Script URL, used only when no
                service account is configured

        Returns:
            MirrorOutcome. ``success`` reports whether the reference was
            usable; the write itself is in ``submission_result`` (None when
            no write method is configured). Never raises.
        """
        if not is_valid_sheet_url(sheet_reference):
            logger.warning("sheets_url_invalid", sheet_url=sheet_reference)
            return MirrorOutcome(
                success=False,
                error="Invalid Google Sheets URL format",
                skip_reason=MirrorSkipReason.INVALID_URL,
            )

        spreadsheet_id = extract_spreadsheet_id(sheet_reference)
        if not spreadsheet_id:
            logger.warning("sheets_id_extraction_failed", sheet_url=sheet_reference)
            return MirrorOutcome(
                success=False,
                sheet_url=sheet_reference,
                error="Could not extract spreadsheet ID from URL",
                skip_reason=MirrorSkipReason.ID_EXTRACTION_FAILED,
            )

        method = self.select_method(webhook_override)
        fields = submission.fields()
        logger.info("sheets_mirror_started", spreadsheet_id=spreadsheet_id, method=method.value)

        if method == WriteMethod.API:
            result = await self._write_via_api(spreadsheet_id, fields)
        elif method == WriteMethod.WEBHOOK_OVERRIDE:
            result = await self._write_via_webhook(webhook_override, fields)
        elif method == WriteMethod.WEBHOOK_DEFAULT:
            result = await self._write_via_webhook(self.default_webhook_for(spreadsheet_id), fields)
        else:
            logger.info("sheets_no_write_method", spreadsheet_id=spreadsheet_id)
            result = None

        return MirrorOutcome(
            success=True,
            message=self._outcome_message(result),
            sheet_url=sheet_reference,
            spreadsheet_id=spreadsheet_id,
            submission_result=result,
        )

    async def _write_via_api(self, spreadsheet_id: str, fields: dict) -> WriteResult:
        try:
            return await self._api.write(spreadsheet_id, fields)
        except Exception as e:
            error_kind = getattr(e, "error_kind", "WriteError")
            logger.error(
                "sheets_api_write_failed",
                spreadsheet_id=spreadsheet_id,
                error_kind=error_kind,
                error=str(e),
                fallback_available=bool(self._default_webhook_url),
            )
            if not self._default_webhook_url:
                return WriteResult(
                    success=False,
                    method=self._api.method,
                    error=f"API error: {e}",
                    error_kind=error_kind,
                )

        logger.info("sheets_webhook_fallback", spreadsheet_id=spreadsheet_id)
        result = await self._write_via_webhook(self.default_webhook_for(spreadsheet_id), fields)
        return result.model_copy(update={"fallback_used": True})

    async def _write_via_webhook(self, webhook_url: str, fields: dict) -> WriteResult:
        try:
            return await self._webhook.write(webhook_url, fields)
        except Exception as e:
            logger.exception("sheets_webhook_unexpected_error", error=str(e))
            return WriteResult(
                success=False,
                method=self._webhook.method,
                error=f"Error: {e}",
                error_kind="WriteError",
            )

    @staticmethod
    def _outcome_message(result: Optional[WriteResult]) -> str:
        if result is None:
            return "Google Sheets URL processed (no webhook or service account configured)"
        if result.success:
            return f"Google Sheets URL processed and data submitted via {result.method}"
        return "Google Sheets URL processed but submission failed"
