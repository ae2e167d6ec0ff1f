"""Custom exceptions for domain-specific errors"""

from typing import Any, Dict, List, Optional


class DomainException(Exception):
    """Base exception for all domain errors"""

    error_kind = "DomainError"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# Configuration Errors
class ConfigurationError(DomainException):
    """Raised when required settings for a channel are missing"""

    error_kind = "ConfigurationError"

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        self.missing = list(missing or [])
        super().__init__(message, details={"missing": self.missing})


# Validation Errors
class ValidationError(DomainException):
    """Raised when a submission fails validation before orchestration"""

    error_kind = "ValidationError"

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.errors = list(errors or [])
        super().__init__(message, details={"errors": self.errors})


# Email Channel Errors
class EmailDeliveryError(DomainException):
    """Base exception for failures sending email"""

    error_kind = "SendError"


class EmailTimeoutError(EmailDeliveryError):
    """Raised when an SMTP send exceeds its time budget"""

    error_kind = "Timeout"


class EmailConnectionError(EmailDeliveryError):
    """Raised when the SMTP server cannot be reached"""

    error_kind = "ConnectionError"


class EmailAuthError(EmailDeliveryError):
    """Raised when the SMTP server rejects the credentials"""

    error_kind = "AuthError"


class EmailSendError(EmailDeliveryError):
    """Raised for any other SMTP failure"""

    error_kind = "SendError"


# Spreadsheet Channel Errors
class SheetsWriteError(DomainException):
    """Raised when the Sheets API rejects a write"""

    error_kind = "WriteError"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class SheetsPermissionError(SheetsWriteError):
    """Raised when the spreadsheet is not shared with the service account"""

    error_kind = "PermissionError"


class SheetsNotFoundError(SheetsWriteError):
    """Raised when the spreadsheet id does not resolve"""

    error_kind = "NotFoundError"
