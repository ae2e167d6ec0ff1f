"""
Email dispatcher for contact submissions.

Two sends per submission:
- admin notification: the lead itself; failures are raised, classified
- sender confirmation: courtesy copy; failures are logged and returned,
  never raised

Every send is bounded by a wall-clock budget so a stalled SMTP server
cannot hold the request open.
"""
import asyncio
import socket
from email.message import EmailMessage
from email.utils import formataddr, formatdate, make_msgid
from typing import Dict, Optional, Type

import aiosmtplib
import structlog

from app.core.config import Settings
from app.core.exceptions import (
    ConfigurationError,
    EmailAuthError,
    EmailConnectionError,
    EmailDeliveryError,
    EmailSendError,
    EmailTimeoutError,
)
from app.domain.schemas import ContactSubmission, DispatchResult, MirrorOutcome
from app.infrastructure.email_transport import EmailTransportProvider, SmtpTransport
from app.services.email.templates import render_admin_notification, render_confirmation

logger = structlog.get_logger()

DEFAULT_SEND_TIMEOUT = 25.0

ADMIN_FALLBACK_NAME = "Contact Form User"
CONFIRMATION_FALLBACK_NAME = "Valued Customer"
CONFIRMATION_SUBJECT = "Thank you for contacting us"

AUTH_FAILURE_CODES = {534, 535}

TIMEOUT_PATTERNS = ("timeout", "timed out", "etimedout")
CONNECTION_PATTERNS = (
    "econnrefused",
    "enotfound",
    "connection refused",
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "no route to host",
    "network is unreachable",
)
AUTH_PATTERNS = (
    "invalid login",
    "authentication",
    "username and password not accepted",
    "eauth",
    "535",
)


def classify_email_error(exc: BaseException) -> Type[EmailDeliveryError]:
    """
    Map a transport exception onto the email error taxonomy.

    Exception types are checked first, then the error text:
    timeout → Timeout, refused/unresolvable host → ConnectionError,
    auth status code or wording → AuthError, anything else → SendError.
    """
    if isinstance(exc, EmailDeliveryError):
        return type(exc)
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return EmailTimeoutError
    if isinstance(exc, aiosmtplib.SMTPAuthenticationError):
        return EmailAuthError
    if getattr(exc, "code", None) in AUTH_FAILURE_CODES:
        return EmailAuthError
    if isinstance(
        exc,
        (
            aiosmtplib.SMTPConnectError,
            aiosmtplib.SMTPServerDisconnected,
            ConnectionRefusedError,
            socket.gaierror,
        ),
    ):
        return EmailConnectionError

    text = f"{type(exc).__name__} {exc}".lower()
    if any(pattern in text for pattern in TIMEOUT_PATTERNS):
        return EmailTimeoutError
    if any(pattern in text for pattern in CONNECTION_PATTERNS):
        return EmailConnectionError
    if any(pattern in text for pattern in AUTH_PATTERNS):
        return EmailAuthError
    return EmailSendError


def _header_safe(value: str) -> str:
    return " ".join(str(value).splitlines()).strip()


class EmailDispatcher:
    """Composes and sends the admin notification and sender confirmation."""

    def __init__(
        self,
        transport_provider: EmailTransportProvider,
        settings: Settings,
        send_timeout: Optional[float] = None,
    ):
        self._provider = transport_provider
        self._settings = settings
        self._send_timeout = send_timeout or settings.email_send_timeout or DEFAULT_SEND_TIMEOUT

    @property
    def transport_provider(self) -> EmailTransportProvider:
        return self._provider

    def _new_message(self) -> EmailMessage:
        message = EmailMessage()
        sender_domain = self._settings.email_user.rpartition("@")[2] or None
        message["Message-ID"] = make_msgid(domain=sender_domain)
        message["Date"] = formatdate(localtime=True)
        return message

    def build_admin_message(
        self, submission: ContactSubmission, mirror_outcome: Optional[MirrorOutcome] = None
    ) -> EmailMessage:
        s = self._settings
        message = self._new_message()
        display_name = _header_safe(submission.display_name(ADMIN_FALLBACK_NAME))
        message["From"] = formataddr((display_name, s.email_user))
        message["To"] = s.recipient_email
        if s.email_user and s.email_user != s.recipient_email:
            message["Cc"] = s.email_user
        message["Reply-To"] = submission.email
        message["Subject"] = _header_safe(f"Contact Form: {submission.subject_line()}")

        text, html = render_admin_notification(submission.fields(), mirror_outcome)
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    def build_confirmation_message(self, submission: ContactSubmission) -> EmailMessage:
        s = self._settings
        message = self._new_message()
        message["From"] = formataddr((_header_safe(s.company_name), s.email_user))
        message["To"] = submission.email
        if s.email_user and s.email_user != submission.email:
            message["Bcc"] = s.email_user
        message["Subject"] = CONFIRMATION_SUBJECT

        customer_name = submission.display_name(CONFIRMATION_FALLBACK_NAME)
        text, html = render_confirmation(customer_name, s.team_name)
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    async def _deliver(self, transport: SmtpTransport, message: EmailMessage) -> Optional[str]:
        """
        Send with the wall-clock budget applied.

        Raises:
            EmailDeliveryError: classified failure
        """
        try:
            return await asyncio.wait_for(transport.send(message), timeout=self._send_timeout)
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise EmailTimeoutError(
                str(e) or f"Email send exceeded {self._send_timeout:g} seconds",
                details={"timeout_seconds": self._send_timeout},
            ) from e
        except Exception as e:
            error_cls = classify_email_error(e)
            raise error_cls(
                str(e) or type(e).__name__,
                details={"transport_error": type(e).__name__},
            ) from e

    async def send_admin_notification(
        self, submission: ContactSubmission, mirror_outcome: Optional[MirrorOutcome] = None
    ) -> Dict[str, Optional[str]]:
        """
        Notify the configured recipient about a submission.

        Args:
            submission: The validated submission
            mirror_outcome: Spreadsheet mirror result; its sheet link and
                status are included in the body when present

        Returns:
            {"message_id": ...}

        Raises:
            ConfigurationError: SMTP settings or RECIPIENT_EMAIL missing
            EmailDeliveryError: Timeout / ConnectionError / AuthError / SendError
        """
        if not self._settings.recipient_email:
            raise ConfigurationError(
                "RECIPIENT_EMAIL is not set", missing=["RECIPIENT_EMAIL"]
            )

        transport = self._provider.get()
        message = self.build_admin_message(submission, mirror_outcome)

        logger.info(
            "admin_email_sending",
            to_email=self._settings.recipient_email,
            reply_to=submission.email,
            fields=sorted(submission.fields().keys()),
        )
        try:
            message_id = await self._deliver(transport, message)
        except EmailDeliveryError as e:
            logger.error(
                "admin_email_failed",
                to_email=self._settings.recipient_email,
                error_kind=e.error_kind,
                error=e.message,
            )
            raise

        logger.info(
            "admin_email_sent",
            to_email=self._settings.recipient_email,
            message_id=message_id,
        )
        return {"message_id": message_id}

    async def send_confirmation(self, submission: ContactSubmission) -> DispatchResult:
        """Thank the sender. Never raises; a failure comes back as a failed result."""
        try:
            transport = self._provider.get()
            message = self.build_confirmation_message(submission)
            message_id = await self._deliver(transport, message)
        except Exception as e:
            error_kind = getattr(e, "error_kind", type(e).__name__)
            logger.warning(
                "confirmation_email_failed",
                to_email=submission.email,
                error_kind=error_kind,
                error=str(e),
            )
            return DispatchResult.failed(error_kind, str(e))

        logger.info("confirmation_email_sent", to_email=submission.email, message_id=message_id)
        return DispatchResult.succeeded(message_id)
