from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ValidationError
from app.utils.email_validation import validate_email_address


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase"""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class CamelCaseModel(BaseModel):
    """Base model with camelCase alias configuration"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,  # Allow both snake_case and camelCase
        use_enum_values=True,
    )


REQUEST_LOCATIONS = ("body", "query", "path", "header")


def format_validation_errors(
    errors: Iterable[Mapping[str, Any]], source: str = "body"
) -> List[Dict[str, str]]:
    """
    Flatten pydantic error dicts into {field, message, source} entries.

    The field is the innermost named location ("email" for
    ("body", "email")); a missing body reports "body". FastAPI request
    locations set the source, otherwise ``source`` is used.
    """
    formatted = []
    for error in errors:
        loc = [part for part in error.get("loc", ()) if isinstance(part, str)]
        error_source = loc[0] if loc and loc[0] in REQUEST_LOCATIONS else source
        named = [part for part in loc if part not in REQUEST_LOCATIONS]
        field = named[-1] if named else (loc[0] if loc else source)
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        formatted.append({"field": field, "message": message, "source": error_source})
    return formatted


# Submission

DISPLAY_NAME_KEYS = ("name", "fullName", "customerName")


class ContactSubmission(BaseModel):
    """
    One contact form payload.

    Only ``email`` is declared; every other key the form sends is kept as
    opaque pass-through data (see ``fields``).
    """

    model_config = ConfigDict(extra="allow")

    email: str

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v):
        if not isinstance(v, str):
            raise ValueError("Email must be a string")
        v = v.strip()
        is_valid, error_message = validate_email_address(v)
        if not is_valid:
            raise ValueError(error_message)
        return v

    @classmethod
    def from_payload(cls, payload: Any) -> "ContactSubmission":
        """
        Build a submission from a raw mapping.

        Raises:
            ValidationError: with field-level errors when the payload is
                not an object or the email is missing/invalid
        """
        if not isinstance(payload, Mapping):
            raise ValidationError(
                "Validation failed",
                errors=[{
                    "field": "body",
                    "message": "Request body must be a JSON object",
                    "source": "body",
                }],
            )
        try:
            return cls.model_validate(dict(payload))
        except PydanticValidationError as e:
            raise ValidationError(
                "Validation failed", errors=format_validation_errors(e.errors())
            ) from e

    def fields(self) -> Dict[str, Any]:
        """All submitted fields, ``email`` included."""
        return self.model_dump()

    def display_name(self, default: str) -> str:
        data = self.fields()
        for key in DISPLAY_NAME_KEYS:
            value = data.get(key)
            if value:
                return str(value)
        return default

    def subject_line(self, default: str = "New Submission") -> str:
        data = self.fields()
        return str(data.get("subject") or data.get("inquiryType") or default)


# Dispatch outcomes

class DispatchStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class DispatchResult(CamelCaseModel):
    """Outcome of one side effect (admin email, confirmation, sheet write)."""

    status: DispatchStatus
    identifier: Optional[str] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def succeeded(cls, identifier: Optional[str] = None) -> "DispatchResult":
        return cls(status=DispatchStatus.SUCCEEDED, identifier=identifier)

    @classmethod
    def failed(cls, error_kind: str, message: str) -> "DispatchResult":
        return cls(status=DispatchStatus.FAILED, error_kind=error_kind, message=message)

    @classmethod
    def skipped(cls, reason: str) -> "DispatchResult":
        return cls(status=DispatchStatus.SKIPPED, reason=reason)

    @property
    def is_success(self) -> bool:
        return self.status == DispatchStatus.SUCCEEDED


class WriteResult(CamelCaseModel):
    """Result of one spreadsheet write attempt (webhook or API)."""

    success: bool
    method: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    status_code: Optional[int] = None
    response: Optional[Any] = None
    saved_fields: List[str] = Field(default_factory=list)
    fallback_used: bool = False


class MirrorSkipReason(str, Enum):
    INVALID_URL = "invalid-url"
    ID_EXTRACTION_FAILED = "id-extraction-failed"


class MirrorOutcome(CamelCaseModel):
    """
    What the spreadsheet mirror did for one submission.

    ``success`` means the sheet reference was usable; whether a row was
    actually written is in ``submission_result`` (None when no write
    strategy is configured).
    """

    success: bool
    message: str = ""
    sheet_url: Optional[str] = None
    spreadsheet_id: Optional[str] = None
    submission_result: Optional[WriteResult] = None
    error: Optional[str] = None
    skip_reason: Optional[MirrorSkipReason] = None

    def to_dispatch_result(self) -> DispatchResult:
        if self.skip_reason:
            return DispatchResult.skipped(getattr(self.skip_reason, "value", self.skip_reason))
        if not self.success:
            return DispatchResult.failed("WriteError", self.error or "Spreadsheet mirror failed")
        if self.submission_result is None:
            return DispatchResult.skipped("no-write-method")
        if self.submission_result.success:
            return DispatchResult.succeeded(self.spreadsheet_id)
        return DispatchResult.failed(
            self.submission_result.error_kind or "WriteError",
            self.submission_result.error or "Spreadsheet write failed",
        )


# API responses

class EmailStatus(CamelCaseModel):
    sent: bool
    message_id: Optional[str] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None


class GoogleSheetsStatus(CamelCaseModel):
    processed: bool
    sheet_url: Optional[str] = None
    spreadsheet_id: Optional[str] = None
    submitted: Optional[bool] = None
    submission_error: Optional[str] = None


class ContactSubmissionResponse(CamelCaseModel):
    success: bool
    message: str
    message_id: Optional[str] = None
    email_status: EmailStatus
    google_sheets: Optional[GoogleSheetsStatus] = None


class HealthResponse(CamelCaseModel):
    success: bool
    message: str
    timestamp: str
    version: str
    email_configured: bool
    missing_email_settings: List[str] = Field(default_factory=list)
    google_sheets_configured: bool
    service_account_configured: bool
    webhook_configured: bool


ACCEPTED_MESSAGE = "Contact form submitted successfully"


class OrchestrationResult(CamelCaseModel):
    """
    Everything that happened for one accepted submission.

    ``accepted`` is always True: channel failures are reported in the
    per-channel dispatch results, never as a rejected submission.
    """

    accepted: bool = True
    admin_email: DispatchResult
    confirmation_email: DispatchResult
    spreadsheet: DispatchResult
    mirror_outcome: Optional[MirrorOutcome] = None

    def to_response(self) -> ContactSubmissionResponse:
        """Wire form; the confirmation result is internal and left out."""
        admin = self.admin_email
        email_status = EmailStatus(
            sent=admin.is_success,
            message_id=admin.identifier,
            error_kind=admin.error_kind,
            error=admin.message,
        )

        google_sheets = None
        outcome = self.mirror_outcome
        if outcome is not None:
            google_sheets = GoogleSheetsStatus(
                processed=outcome.success,
                sheet_url=outcome.sheet_url,
                spreadsheet_id=outcome.spreadsheet_id,
            )
            result = outcome.submission_result
            if result is not None:
                google_sheets.submitted = result.success
                if not result.success:
                    google_sheets.submission_error = result.error

        return ContactSubmissionResponse(
            success=self.accepted,
            message=ACCEPTED_MESSAGE,
            message_id=admin.identifier,
            email_status=email_status,
            google_sheets=google_sheets,
        )
