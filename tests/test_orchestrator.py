"""
Submission orchestrator tests.

Channels are mocked at their boundaries: the SMTP transport for the real
dispatcher, and httpx.MockTransport for the real webhook mirror.
"""

from unittest.mock import AsyncMock, MagicMock

import aiosmtplib
import httpx
import pytest

from app.core.exceptions import EmailAuthError, ValidationError
from app.domain.schemas import DispatchResult, DispatchStatus, MirrorOutcome, WriteResult
from app.services.email.dispatcher import EmailDispatcher
from app.services.sheets.mirror import SpreadsheetMirror
from app.services.sheets.webhook_strategy import WebhookWriteStrategy
from app.services.submission import SubmissionOrchestrator, build_orchestrator
from app.state_machines import ResponseGate

SHEET_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz_0123456789-xyz"
SHEET_URL = f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/edit"
WEBHOOK_URL = "https://script.google.com/macros/s/deployment/exec"

PAYLOAD = {"email": "a@gmail.com", "name": "Jane", "message": "Hi"}


def _dump(result):
    return result.to_response().model_dump(by_alias=True, exclude_none=True)


@pytest.fixture
def dispatcher():
    mock = MagicMock()
    mock.send_admin_notification = AsyncMock(return_value={"message_id": "<id@acme.io>"})
    mock.send_confirmation = AsyncMock(return_value=DispatchResult.succeeded("<thanks@acme.io>"))
    return mock


@pytest.fixture
def mirror():
    mock = MagicMock()
    mock.mirror = AsyncMock(
        return_value=MirrorOutcome(
            success=True,
            sheet_url=SHEET_URL,
            spreadsheet_id=SHEET_ID,
            submission_result=WriteResult(success=True, method="Webhook"),
        )
    )
    return mock


class TestWithoutSpreadsheet:
    @pytest.mark.asyncio
    async def test_accepted_with_email_sent(self, make_settings, dispatcher, mirror):
        orchestrator = SubmissionOrchestrator(dispatcher, mirror, make_settings())

        result = await orchestrator.handle(PAYLOAD)

        body = _dump(result)
        assert result.accepted is True
        assert body["success"] is True
        assert body["message"] == "Contact form submitted successfully"
        assert body["messageId"] == "<id@acme.io>"
        assert body["emailStatus"] == {"sent": True, "messageId": "<id@acme.io>"}
        assert "googleSheets" not in body
        assert result.spreadsheet.status == DispatchStatus.SKIPPED
        mirror.mirror.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_then_confirmation(self, make_settings, dispatcher, mirror):
        calls = []
        dispatcher.send_admin_notification.side_effect = lambda *a: calls.append("admin") or {"message_id": "x"}
        dispatcher.send_confirmation.side_effect = (
            lambda *a: calls.append("confirmation") or DispatchResult.succeeded()
        )
        orchestrator = SubmissionOrchestrator(dispatcher, mirror, make_settings())

        await orchestrator.handle(PAYLOAD)

        assert calls == ["admin", "confirmation"]

    @pytest.mark.asyncio
    async def test_invalid_payload_rejected_before_any_send(self, make_settings, dispatcher, mirror):
        orchestrator = SubmissionOrchestrator(dispatcher, mirror, make_settings())

        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.handle({"name": "Jane"})

        assert exc_info.value.errors[0]["field"] == "email"
        dispatcher.send_admin_notification.assert_not_awaited()
        dispatcher.send_confirmation.assert_not_awaited()


class TestEmailFailures:
    @pytest.mark.asyncio
    async def test_admin_auth_failure_still_accepted(self, make_settings, dispatcher, mirror):
        dispatcher.send_admin_notification.side_effect = EmailAuthError("Invalid login: 535")
        orchestrator = SubmissionOrchestrator(dispatcher, mirror, make_settings())

        result = await orchestrator.handle(PAYLOAD)

        body = _dump(result)
        assert body["success"] is True
        assert body["emailStatus"] == {
            "sent": False,
            "errorKind": "AuthError",
            "error": "Invalid login: 535",
        }
        assert "messageId" not in body
        dispatcher.send_confirmation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_smtp_auth_rejection_end_to_end(self, make_settings, transport_provider, transport, mirror):
        transport.send.side_effect = aiosmtplib.SMTPAuthenticationError(535, "5.7.8 Bad credentials")
        settings = make_settings()
        orchestrator = SubmissionOrchestrator(
            EmailDispatcher(transport_provider, settings), mirror, settings
        )

        result = await orchestrator.handle(PAYLOAD)

        assert result.accepted is True
        assert result.admin_email.error_kind == "AuthError"
        assert _dump(result)["emailStatus"]["sent"] is False

    @pytest.mark.asyncio
    async def test_confirmation_failure_not_surfaced(self, make_settings, transport_provider, transport, mirror):
        transport.send.side_effect = ["<admin@acme.io>", aiosmtplib.SMTPServerDisconnected("lost")]
        settings = make_settings()
        orchestrator = SubmissionOrchestrator(
            EmailDispatcher(transport_provider, settings), mirror, settings
        )

        result = await orchestrator.handle(PAYLOAD)

        body = _dump(result)
        assert transport.send.await_count == 2
        assert body["emailStatus"] == {"sent": True, "messageId": "<admin@acme.io>"}
        assert "confirmation" not in str(body).lower()
        assert result.confirmation_email.status == DispatchStatus.FAILED
        assert result.confirmation_email.error_kind == "ConnectionError"
        assert result.confirmation_email.message == "lost"


class TestWithSpreadsheet:
    @pytest.mark.asyncio
    async def test_mirror_outcome_passed_to_admin_email(self, make_settings, dispatcher, mirror):
        orchestrator = SubmissionOrchestrator(
            dispatcher, mirror, make_settings(google_sheets_url=SHEET_URL)
        )

        result = await orchestrator.handle(PAYLOAD, webhook_override=WEBHOOK_URL)

        submission, outcome = dispatcher.send_admin_notification.await_args.args
        assert outcome is result.mirror_outcome
        mirror.mirror.assert_awaited_once_with(SHEET_URL, submission, WEBHOOK_URL)
        assert _dump(result)["googleSheets"] == {
            "processed": True,
            "sheetUrl": SHEET_URL,
            "spreadsheetId": SHEET_ID,
            "submitted": True,
        }

    @pytest.mark.asyncio
    async def test_mirror_exception_is_wrapped(self, make_settings, dispatcher, mirror):
        mirror.mirror.side_effect = RuntimeError("sheets exploded")
        orchestrator = SubmissionOrchestrator(
            dispatcher, mirror, make_settings(google_sheets_url=SHEET_URL)
        )

        result = await orchestrator.handle(PAYLOAD)

        body = _dump(result)
        assert body["success"] is True
        assert body["googleSheets"] == {"processed": False, "sheetUrl": SHEET_URL}
        assert result.spreadsheet.status == DispatchStatus.FAILED
        dispatcher.send_admin_notification.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_webhook_500_reported_as_not_submitted(self, make_settings, dispatcher):
        webhook = WebhookWriteStrategy(
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="error"))
        )
        mirror = SpreadsheetMirror(webhook, default_webhook_url=WEBHOOK_URL)
        orchestrator = SubmissionOrchestrator(
            dispatcher, mirror, make_settings(google_sheets_url=SHEET_URL)
        )

        result = await orchestrator.handle(PAYLOAD)

        assert result.mirror_outcome.success is True
        assert result.mirror_outcome.submission_result.success is False
        sheets = _dump(result)["googleSheets"]
        assert sheets["processed"] is True
        assert sheets["submitted"] is False
        assert sheets["submissionError"] == "Google Sheets submission failed. Status: 500"
        assert _dump(result)["success"] is True


class TestResponseGate:
    @pytest.mark.asyncio
    async def test_gate_holds_the_response_payload(self, make_settings, dispatcher, mirror):
        orchestrator = SubmissionOrchestrator(dispatcher, mirror, make_settings())
        gate = ResponseGate()

        result = await orchestrator.handle(PAYLOAD, gate=gate)

        assert gate.is_sent is True
        assert gate.payload == _dump(result)

    @pytest.mark.asyncio
    async def test_second_response_is_suppressed(self, make_settings, dispatcher, mirror):
        orchestrator = SubmissionOrchestrator(dispatcher, mirror, make_settings())
        gate = ResponseGate()
        gate.claim({"success": True, "message": "already answered"})

        result = await orchestrator.handle(PAYLOAD, gate=gate)

        assert result is None
        assert gate.payload == {"success": True, "message": "already answered"}


class TestBuildOrchestrator:
    def test_wires_shared_transport_provider(self, make_settings):
        orchestrator = build_orchestrator(make_settings(google_sheets_webhook_url=WEBHOOK_URL))

        assert isinstance(orchestrator.dispatcher, EmailDispatcher)
        assert orchestrator.dispatcher.transport_provider.is_initialized is False
        assert isinstance(orchestrator.mirror, SpreadsheetMirror)
