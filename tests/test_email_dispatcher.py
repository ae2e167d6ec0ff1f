"""
Email dispatcher tests: message composition, error classification and the
send time budget. The SMTP transport is always a mock.
"""

import asyncio
import socket

import aiosmtplib
import pytest

from app.core.exceptions import (
    ConfigurationError,
    EmailAuthError,
    EmailConnectionError,
    EmailSendError,
    EmailTimeoutError,
)
from app.domain.schemas import ContactSubmission, DispatchStatus, MirrorOutcome, WriteResult
from app.services.email.dispatcher import EmailDispatcher, classify_email_error

SHEET_URL = "https://docs.google.com/spreadsheets/d/abc123/edit"


def _submission(**extra):
    payload = {"email": "jane@gmail.com"}
    payload.update(extra)
    return ContactSubmission.from_payload(payload)


def _bodies(message):
    text = message.get_body(("plain",)).get_content()
    html = message.get_body(("html",)).get_content()
    return text, html


class TestClassifyEmailError:
    @pytest.mark.parametrize(
        "exc,expected",
        [
            (asyncio.TimeoutError(), EmailTimeoutError),
            (aiosmtplib.SMTPTimeoutError("Timed out waiting for server"), EmailTimeoutError),
            (aiosmtplib.SMTPAuthenticationError(535, "5.7.8 Username and Password not accepted"), EmailAuthError),
            (aiosmtplib.SMTPResponseException(535, "Authentication failed"), EmailAuthError),
            (aiosmtplib.SMTPConnectError("Error connecting to smtp.relay.test on port 587"), EmailConnectionError),
            (ConnectionRefusedError(111, "Connection refused"), EmailConnectionError),
            (socket.gaierror(-2, "Name or service not known"), EmailConnectionError),
            (OSError("getaddrinfo failed"), EmailConnectionError),
            (RuntimeError("Invalid login: 535 rejected"), EmailAuthError),
            (RuntimeError("connection timed out"), EmailTimeoutError),
            (aiosmtplib.SMTPRecipientsRefused([]), EmailSendError),
            (RuntimeError("boom"), EmailSendError),
        ],
    )
    def test_classification(self, exc, expected):
        assert classify_email_error(exc) is expected


class TestAdminNotification:
    @pytest.mark.asyncio
    async def test_sends_to_recipient_with_reply_to(self, make_settings, transport_provider, transport):
        dispatcher = EmailDispatcher(transport_provider, make_settings())

        result = await dispatcher.send_admin_notification(
            _submission(name="Jane", subject="Pricing", message="Hi")
        )

        assert result == {"message_id": "<generated@acme.io>"}
        message = transport.send.await_args.args[0]
        assert message["To"] == "owner@acme.io"
        assert message["Cc"] == "forms@acme.io"
        assert message["Reply-To"] == "jane@gmail.com"
        assert message["Subject"] == "Contact Form: Pricing"
        assert "Jane" in message["From"]
        assert "forms@acme.io" in message["From"]

    @pytest.mark.asyncio
    async def test_no_cc_when_recipient_is_sender_account(self, make_settings, transport_provider, transport):
        dispatcher = EmailDispatcher(
            transport_provider, make_settings(recipient_email="forms@acme.io")
        )

        await dispatcher.send_admin_notification(_submission())

        message = transport.send.await_args.args[0]
        assert message["Cc"] is None
        assert message["Subject"] == "Contact Form: New Submission"
        assert "Contact Form User" in message["From"]

    def test_body_lists_fields_and_escapes_markup(self, make_settings, transport_provider):
        dispatcher = EmailDispatcher(transport_provider, make_settings())
        submission = _submission(
            name="<script>alert(1)</script>Jane",
            inquiryType="Sales",
            budget=5000,
            company="",
        )

        text, html = _bodies(dispatcher.build_admin_message(submission))

        assert "Inquiry Type: Sales" in text
        assert "Budget: 5000" in text
        assert "Company" not in text
        assert "<script>" not in html
        assert "Inquiry Type:</strong> Sales" in html

    def test_body_includes_sheet_link_and_status(self, make_settings, transport_provider):
        dispatcher = EmailDispatcher(transport_provider, make_settings())
        outcome = MirrorOutcome(
            success=True,
            sheet_url=SHEET_URL,
            spreadsheet_id="abc123",
            submission_result=WriteResult(
                success=False, method="Webhook", error="Google Sheets submission failed. Status: 500"
            ),
        )

        text, html = _bodies(dispatcher.build_admin_message(_submission(), outcome))

        assert f"Google Sheet: {SHEET_URL}" in text
        assert "Not saved: Google Sheets submission failed. Status: 500" in text
        assert SHEET_URL in html

    @pytest.mark.asyncio
    async def test_auth_failure_is_classified(self, make_settings, transport_provider, transport):
        transport.send.side_effect = aiosmtplib.SMTPAuthenticationError(
            535, "5.7.8 Username and Password not accepted"
        )
        dispatcher = EmailDispatcher(transport_provider, make_settings())

        with pytest.raises(EmailAuthError) as exc_info:
            await dispatcher.send_admin_notification(_submission())

        assert exc_info.value.error_kind == "AuthError"

    @pytest.mark.asyncio
    async def test_send_budget_exceeded_is_timeout(self, make_settings, transport_provider, transport):
        async def stalled(message):
            await asyncio.sleep(1)

        transport.send.side_effect = stalled
        dispatcher = EmailDispatcher(transport_provider, make_settings(), send_timeout=0.05)

        with pytest.raises(EmailTimeoutError):
            await dispatcher.send_admin_notification(_submission())

    def test_default_budget_is_25_seconds(self, make_settings, transport_provider):
        dispatcher = EmailDispatcher(transport_provider, make_settings())

        assert dispatcher._send_timeout == 25.0

    @pytest.mark.asyncio
    async def test_missing_recipient_is_configuration_error(self, make_settings, transport_provider, transport):
        dispatcher = EmailDispatcher(transport_provider, make_settings(recipient_email=""))

        with pytest.raises(ConfigurationError) as exc_info:
            await dispatcher.send_admin_notification(_submission())

        assert exc_info.value.missing == ["RECIPIENT_EMAIL"]
        transport.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_smtp_settings_propagate(self, make_settings, transport_provider):
        transport_provider.get.side_effect = ConfigurationError(
            "Email configuration incomplete: Missing EMAIL_PASS", missing=["EMAIL_PASS"]
        )
        dispatcher = EmailDispatcher(transport_provider, make_settings())

        with pytest.raises(ConfigurationError):
            await dispatcher.send_admin_notification(_submission())


class TestConfirmation:
    @pytest.mark.asyncio
    async def test_confirmation_addressed_to_sender(self, make_settings, transport_provider, transport):
        dispatcher = EmailDispatcher(transport_provider, make_settings())

        result = await dispatcher.send_confirmation(_submission(customerName="Jane"))

        message = transport.send.await_args.args[0]
        text, _ = _bodies(message)
        assert message["To"] == "jane@gmail.com"
        assert result.status == DispatchStatus.SUCCEEDED
        assert result.identifier == "<generated@acme.io>"
        assert message["Bcc"] == "forms@acme.io"
        assert message["Subject"] == "Thank you for contacting us"
        assert "Acme Studio" in message["From"]
        assert text.startswith("Dear Jane,")
        assert "The Acme Team" in text

    def test_greeting_falls_back_to_valued_customer(self, make_settings, transport_provider):
        dispatcher = EmailDispatcher(transport_provider, make_settings())

        text, _ = _bodies(dispatcher.build_confirmation_message(_submission()))

        assert text.startswith("Dear Valued Customer,")

    @pytest.mark.asyncio
    async def test_send_failure_is_swallowed(self, make_settings, transport_provider, transport):
        transport.send.side_effect = aiosmtplib.SMTPServerDisconnected("Connection lost")
        dispatcher = EmailDispatcher(transport_provider, make_settings())

        result = await dispatcher.send_confirmation(_submission())

        assert result.status == DispatchStatus.FAILED
        assert result.error_kind == "ConnectionError"

    @pytest.mark.asyncio
    async def test_missing_configuration_is_swallowed(self, make_settings, transport_provider):
        transport_provider.get.side_effect = ConfigurationError("Email configuration incomplete")
        dispatcher = EmailDispatcher(transport_provider, make_settings())

        result = await dispatcher.send_confirmation(_submission())

        assert result.status == DispatchStatus.FAILED
        assert result.error_kind == "ConfigurationError"
        assert result.message == "Email configuration incomplete"
