"""
Spreadsheet write through a deployed Apps Script web app.

The script receives {headers, data, timestamp} and appends the row itself,
creating any missing header columns.
"""
import asyncio
from typing import Any, List, Optional

import httpx
import structlog

from app.domain.schemas import WriteResult
from app.services.sheets.formatting import TIMESTAMP_HEADER, to_header_value_format

logger = structlog.get_logger()

WEBHOOK_METHOD = "Webhook"
DEFAULT_WEBHOOK_TIMEOUT = 10.0

# Apps Script answers 200, or 302 towards the script's output URL
SUCCESS_STATUSES = (200, 302)


def _saved_fields(headers: List[str]) -> List[str]:
    return [h for h in headers if h and h != TIMESTAMP_HEADER]


def _parse_json(response: httpx.Response) -> Optional[Any]:
    try:
        return response.json()
    except ValueError:
        return None


class WebhookWriteStrategy:
    """POST one submission to an Apps Script webhook."""

    method = WEBHOOK_METHOD

    def __init__(
        self,
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._transport = transport

    async def _post(self, webhook_url: str, payload: dict) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=False,
        ) as client:
            return await client.post(webhook_url, json=payload)

    async def write(self, webhook_url: str, fields: dict) -> WriteResult:
        """
        Send the submission to the webhook.

        Never raises: timeouts, network errors, unexpected statuses and
        explicit ``success: false`` bodies all come back as failed results.
        """
        if not webhook_url:
            return WriteResult(
                success=False,
                method=self.method,
                error="Webhook URL not provided.",
                error_kind="ConfigurationError",
            )

        headers, values = to_header_value_format(fields)
        payload = {"headers": headers, "data": values, "timestamp": values[-1]}

        logger.info(
            "sheets_webhook_submitting",
            webhook_host=httpx.URL(webhook_url).host if "://" in webhook_url else None,
            headers=headers,
        )

        try:
            response = await asyncio.wait_for(
                self._post(webhook_url, payload), timeout=self._timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.error("sheets_webhook_timeout", timeout_seconds=self._timeout)
            return WriteResult(
                success=False,
                method=self.method,
                error="Google Sheets submission timeout. Please try again later.",
                error_kind="Timeout",
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("sheets_webhook_network_error", error=str(e))
            return WriteResult(
                success=False,
                method=self.method,
                error=f"Network error: {e}",
                error_kind="ConnectionError",
            )

        return self._interpret(response, headers)

    def _interpret(self, response: httpx.Response, headers: List[str]) -> WriteResult:
        parsed = _parse_json(response)

        if response.status_code not in SUCCESS_STATUSES:
            logger.error(
                "sheets_webhook_failed",
                status_code=response.status_code,
                response=response.text[:500],
            )
            return WriteResult(
                success=False,
                method=self.method,
                error=f"Google Sheets submission failed. Status: {response.status_code}",
                error_kind="WriteError",
                status_code=response.status_code,
                response=response.text[:500],
            )

        if isinstance(parsed, dict) and parsed.get("success") is False:
            logger.error(
                "sheets_webhook_rejected",
                status_code=response.status_code,
                response=parsed,
            )
            return WriteResult(
                success=False,
                method=self.method,
                error=parsed.get("error") or "Google Sheets submission failed",
                error_kind="WriteError",
                status_code=response.status_code,
                response=parsed,
            )

        saved = _saved_fields(headers)
        logger.info("sheets_webhook_saved", status_code=response.status_code, saved_fields=saved)
        return WriteResult(
            success=True,
            method=self.method,
            message="Data submitted to Google Sheets successfully",
            status_code=response.status_code,
            response=parsed if parsed is not None else response.text[:200],
            saved_fields=saved,
        )
