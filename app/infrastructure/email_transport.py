"""
SMTP transport for outbound contact emails.

The provider builds the transport lazily on first use and hands back the
same instance afterwards. Each send opens its own aiosmtplib connection, so
one transport is safe to share between concurrent requests.
"""
from email.message import EmailMessage
from typing import Optional

import aiosmtplib
import structlog

from app.core.config import Settings
from app.core.exceptions import ConfigurationError

logger = structlog.get_logger()

IMPLICIT_TLS_PORT = 465


class SmtpTransport:
    """Authenticated SMTP sender for one server/account."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        validate_certs: bool = True,
        timeout: float = 60.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.validate_certs = validate_certs
        self.timeout = timeout

    def _client(self) -> aiosmtplib.SMTP:
        implicit_tls = self.port == IMPLICIT_TLS_PORT
        return aiosmtplib.SMTP(
            hostname=self.host,
            port=self.port,
            use_tls=implicit_tls,
            # None lets aiosmtplib upgrade with STARTTLS when offered
            start_tls=False if implicit_tls else None,
            validate_certs=self.validate_certs,
            timeout=self.timeout,
        )

    async def send(self, message: EmailMessage) -> Optional[str]:
        """
        Deliver one message.

        Returns:
            The message's Message-ID header

        Raises:
            aiosmtplib.SMTPException / OSError: straight from the transport;
                callers classify them
        """
        async with self._client() as smtp:
            await smtp.login(self.username, self._password)
            await smtp.send_message(message)
        return message["Message-ID"]

    async def verify(self) -> None:
        """Connect and authenticate without sending anything."""
        async with self._client() as smtp:
            await smtp.login(self.username, self._password)
        logger.info("smtp_verified", host=self.host, port=self.port)


class EmailTransportProvider:
    """
    Lazily constructed, process-wide SMTP transport.

    ``get()`` validates configuration on every call until the transport has
    been built once, so a deployment missing SMTP settings fails each email
    attempt with the same ConfigurationError.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._transport: Optional[SmtpTransport] = None

    @property
    def is_initialized(self) -> bool:
        return self._transport is not None

    def missing_settings(self):
        s = self._settings
        required = {
            "EMAIL_HOST": s.email_host,
            "EMAIL_PORT": s.email_port,
            "EMAIL_USER": s.email_user,
            "EMAIL_PASS": s.email_pass,
        }
        return [name for name, value in required.items() if not value]

    def get(self) -> SmtpTransport:
        if self._transport is None:
            self._transport = self._build()
        return self._transport

    def _build(self) -> SmtpTransport:
        missing = self.missing_settings()
        if missing:
            logger.error("email_transport_config_missing", missing=missing)
            raise ConfigurationError(
                f"Email configuration incomplete: Missing {', '.join(missing)}",
                missing=missing,
            )

        s = self._settings
        logger.info(
            "email_transport_created",
            host=s.email_host,
            port=s.email_port,
            user=s.email_user,
        )
        return SmtpTransport(
            host=s.email_host,
            port=int(s.email_port),
            username=s.email_user,
            password=s.email_pass,
            validate_certs=s.email_validate_certs,
        )
