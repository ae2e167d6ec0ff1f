"""
Google Sheets API client authenticated with a service account.

Credentials and the discovery-built service are created once and shared.
The googleapiclient calls are blocking, so they run in worker threads; each
call gets its own AuthorizedHttp because httplib2 connections are not
thread-safe.
"""

import asyncio
import json
import threading
from pathlib import Path
from typing import Any, List, Optional

import google_auth_httplib2
import httplib2
import structlog
from google.oauth2 import service_account
from googleapiclient.discovery import build

from app.core.config import Settings
from app.core.exceptions import ConfigurationError

logger = structlog.get_logger()

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def a1_range(sheet_name: str, cells: str) -> str:
    """Qualify an A1 range with a quoted sheet name ('My Sheet'!A1)."""
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{cells}"


def column_letter(index: int) -> str:
    """
    1-based column number to its A1 letters.

    Examples:
        >>> column_letter(1)
        'A'
        >>> column_letter(28)
        'AB'
    """
    if index < 1:
        raise ValueError("Column index must be >= 1")
    letters = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


class SheetsApiClient:
    """Thin async wrapper over spreadsheets.values get/update/append."""

    def __init__(self, service_account_path: str = "", service_account_json: str = ""):
        self._service_account_path = service_account_path
        self._service_account_json = service_account_json
        self._credentials: Optional[service_account.Credentials] = None
        self._service: Optional[Any] = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SheetsApiClient":
        return cls(
            service_account_path=settings.google_service_account_path,
            service_account_json=settings.google_service_account_json,
        )

    @property
    def configured(self) -> bool:
        return bool(self._service_account_path or self._service_account_json)

    def _load_credentials(self) -> service_account.Credentials:
        if self._service_account_path:
            path = Path(self._service_account_path).expanduser().resolve()
            if not path.exists():
                raise ConfigurationError(f"Service account JSON file not found at: {path}")
            return service_account.Credentials.from_service_account_file(
                str(path), scopes=SCOPES
            )

        if not self._service_account_json:
            raise ConfigurationError(
                "Service account not configured. Set GOOGLE_SERVICE_ACCOUNT_PATH "
                "or GOOGLE_SERVICE_ACCOUNT_JSON.",
                missing=["GOOGLE_SERVICE_ACCOUNT_PATH", "GOOGLE_SERVICE_ACCOUNT_JSON"],
            )

        try:
            info = json.loads(self._service_account_json)
        except ValueError as e:
            raise ConfigurationError(
                "Invalid GOOGLE_SERVICE_ACCOUNT_JSON format. Must be valid JSON string."
            ) from e
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)

    def _get_service(self) -> Any:
        with self._lock:
            if self._service is None:
                self._credentials = self._load_credentials()
                self._service = build(
                    "sheets", "v4", credentials=self._credentials, cache_discovery=False
                )
                logger.info(
                    "sheets_client_initialized",
                    service_account=getattr(self._credentials, "service_account_email", None),
                )
            return self._service

    def _execute(self, request: Any) -> dict:
        http = google_auth_httplib2.AuthorizedHttp(self._credentials, http=httplib2.Http())
        return request.execute(http=http)

    async def get_header_row(self, spreadsheet_id: str, sheet_name: str) -> List[str]:
        """First row of the sheet, or [] when the sheet is empty."""

        def _call() -> dict:
            values = self._get_service().spreadsheets().values()
            return self._execute(
                values.get(spreadsheetId=spreadsheet_id, range=a1_range(sheet_name, "1:1"))
            )

        result = await asyncio.to_thread(_call)
        rows = result.get("values", [])
        if not rows:
            return []
        return [str(cell) for cell in rows[0]]

    async def update_cells(
        self, spreadsheet_id: str, range_: str, values: List[List[str]]
    ) -> dict:
        def _call() -> dict:
            service_values = self._get_service().spreadsheets().values()
            return self._execute(
                service_values.update(
                    spreadsheetId=spreadsheet_id,
                    range=range_,
                    valueInputOption="USER_ENTERED",
                    body={"values": values},
                )
            )

        return await asyncio.to_thread(_call)

    async def append_rows(
        self, spreadsheet_id: str, range_: str, values: List[List[str]]
    ) -> dict:
        def _call() -> dict:
            service_values = self._get_service().spreadsheets().values()
            return self._execute(
                service_values.append(
                    spreadsheetId=spreadsheet_id,
                    range=range_,
                    valueInputOption="USER_ENTERED",
                    insertDataOption="INSERT_ROWS",
                    body={"values": values},
                )
            )

        return await asyncio.to_thread(_call)
