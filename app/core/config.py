from typing import List, Optional, Union

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_prefix: str = Field(default="/api/contact")
    api_title: str = Field(default="Contact Relay API")
    api_version: str = Field(default="1.0.0")
    port: int = Field(default=5000)
    log_level: str = Field(default="INFO")

    # Environment
    environment: str = Field(default="development")

    # CORS
    cors_origins: Union[str, List[str]] = Field(default="*")
    cors_allow_credentials: bool = Field(default=False)

    # Rate Limiting (submissions per minute per client IP)
    rate_limit_requests: int = Field(default=100)

    # Sentry (optional, disabled if empty)
    sentry_dsn: str = Field(default="")

    # SMTP
    email_host: str = Field(default="")
    email_port: Optional[int] = Field(default=None)
    email_user: str = Field(default="")
    email_pass: str = Field(default="")
    email_validate_certs: bool = Field(default=True)
    email_send_timeout: float = Field(default=25.0)

    # Recipients and branding
    recipient_email: str = Field(default="")
    company_name: str = Field(default="Your Company")
    team_name: str = Field(default="Your Team")

    # Google Sheets
    google_sheets_url: str = Field(default="")
    google_sheets_webhook_url: str = Field(default="")
    google_sheets_webhook_timeout: float = Field(default=10.0)
    google_sheet_name: str = Field(default="Sheet1")
    google_service_account_path: str = Field(default="")
    # Inline service account JSON. GOOGLE_SERVICE_ACCOUNT_EMAIL is the
    # legacy name deployments used for the same payload.
    google_service_account_json: str = Field(
        default="",
        validation_alias=AliasChoices(
            "google_service_account_json", "google_service_account_email"
        ),
    )

    @field_validator("email_port", mode="before")
    @classmethod
    def blank_port_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            # Handle comma-separated string
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("cors_origins", mode="after")
    @classmethod
    def ensure_cors_is_list(cls, v):
        if isinstance(v, str):
            return [v]
        return v

    @property
    def service_account_configured(self) -> bool:
        return bool(self.google_service_account_path or self.google_service_account_json)

    @property
    def missing_email_settings(self) -> List[str]:
        """Names of the SMTP/recipient variables that are not set."""
        required = {
            "EMAIL_HOST": self.email_host,
            "EMAIL_PORT": self.email_port,
            "EMAIL_USER": self.email_user,
            "EMAIL_PASS": self.email_pass,
            "RECIPIENT_EMAIL": self.recipient_email,
        }
        return [name for name, value in required.items() if not value]


settings = Settings()
