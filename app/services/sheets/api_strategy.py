"""
Spreadsheet write through the Sheets API with a service account.

Header reconciliation keeps existing columns where they are and appends any
new labels to the right, so every row stays aligned with its header.
"""
import asyncio
from typing import Dict, List

import structlog
from googleapiclient.errors import HttpError

from app.core.exceptions import SheetsNotFoundError, SheetsPermissionError, SheetsWriteError
from app.domain.schemas import WriteResult
from app.infrastructure.sheets_client import SheetsApiClient, a1_range, column_letter
from app.services.sheets.formatting import TIMESTAMP_HEADER, to_header_value_format

logger = structlog.get_logger()

API_METHOD = "Service Account API"

PERMISSION_DENIED_MESSAGE = (
    "Permission denied. Make sure your sheet is shared with the service account email."
)
NOT_FOUND_MESSAGE = (
    "Spreadsheet not found. Check that the spreadsheet ID is correct and the sheet is accessible."
)


def _normalize(label: str) -> str:
    return label.strip().lower()


def classify_http_error(error: HttpError) -> SheetsWriteError:
    """Map a Sheets API error response onto the sheet write error taxonomy."""
    status = int(getattr(error.resp, "status", 0) or 0)
    if status == 403:
        return SheetsPermissionError(PERMISSION_DENIED_MESSAGE, status_code=status)
    if status == 404:
        return SheetsNotFoundError(NOT_FOUND_MESSAGE, status_code=status)
    reason = getattr(error, "reason", None) or str(error)
    return SheetsWriteError(f"API error: {reason}", status_code=status or None)


def reconcile_headers(existing: List[str], incoming: List[str]) -> List[str]:
    """
    Final header row after adding the labels the sheet does not have yet.

    Matching ignores case and surrounding whitespace. Existing columns,
    blank ones included, keep their positions.
    """
    known = {_normalize(h) for h in existing if h}
    added = [h for h in incoming if _normalize(h) not in known]
    return list(existing) + added


def align_row(headers: List[str], labels: List[str], values: List[str]) -> List[str]:
    """Values placed under their header; blank or unmatched columns get ""."""
    by_label: Dict[str, str] = {_normalize(label): value for label, value in zip(labels, values)}
    return [by_label.get(_normalize(h), "") if h else "" for h in headers]


class ApiWriteStrategy:
    """
    Append submissions as rows using the service account.

    A per-spreadsheet lock serializes the read-extend-append sequence, so two
    concurrent submissions cannot both add the same new column.
    """

    method = API_METHOD

    def __init__(self, client: SheetsApiClient, sheet_name: str = "Sheet1"):
        self._client = client
        self._sheet_name = sheet_name
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def configured(self) -> bool:
        return self._client.configured

    def _lock_for(self, spreadsheet_id: str) -> asyncio.Lock:
        lock = self._locks.get(spreadsheet_id)
        if lock is None:
            lock = self._locks[spreadsheet_id] = asyncio.Lock()
        return lock

    async def write(self, spreadsheet_id: str, fields: dict) -> WriteResult:
        """
        Append one submission row.

        Returns:
            WriteResult; API error responses (403, 404, other statuses) come
            back as failed results with the matching error kind

        Raises:
            ConfigurationError: credentials missing or unreadable
            Exception: transport or client failures before the API answered
        """
        labels, values = to_header_value_format(fields)
        sheet = self._sheet_name

        try:
            async with self._lock_for(spreadsheet_id):
                existing = await self._client.get_header_row(spreadsheet_id, sheet)

                if not existing:
                    headers = labels
                    await self._client.update_cells(
                        spreadsheet_id, a1_range(sheet, "A1"), [headers]
                    )
                    logger.info("sheets_header_created", spreadsheet_id=spreadsheet_id, headers=headers)
                else:
                    headers = reconcile_headers(existing, labels)
                    added = headers[len(existing):]
                    if added:
                        start = column_letter(len(existing) + 1)
                        await self._client.update_cells(
                            spreadsheet_id, a1_range(sheet, f"{start}1"), [added]
                        )
                        logger.info(
                            "sheets_header_extended",
                            spreadsheet_id=spreadsheet_id,
                            added=added,
                        )

                row = align_row(headers, labels, values)
                await self._client.append_rows(spreadsheet_id, a1_range(sheet, "A1"), [row])
        except HttpError as e:
            error = classify_http_error(e)
            logger.error(
                "sheets_api_write_rejected",
                spreadsheet_id=spreadsheet_id,
                status_code=error.status_code,
                error_kind=error.error_kind,
                error=error.message,
            )
            return WriteResult(
                success=False,
                method=self.method,
                error=error.message,
                error_kind=error.error_kind,
                status_code=error.status_code,
            )

        saved = [h for h in labels if h != TIMESTAMP_HEADER]
        logger.info("sheets_api_row_appended", spreadsheet_id=spreadsheet_id, saved_fields=saved)
        return WriteResult(
            success=True,
            method=self.method,
            message="Data submitted to Google Sheets successfully via API",
            saved_fields=saved,
        )
