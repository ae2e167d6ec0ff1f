"""
Shared fixtures. Environment defaults are set before any app module is
imported so the module-level Settings() never reads a developer's .env.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.config import Settings

SHEET_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz_0123456789-xyz"
SHEET_URL = f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/edit#gid=0"


def build_settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "email_host": "smtp.relay.test",
        "email_port": 587,
        "email_user": "forms@acme.io",
        "email_pass": "app-password",
        "recipient_email": "owner@acme.io",
        "company_name": "Acme Studio",
        "team_name": "The Acme Team",
        "google_sheets_url": "",
        "google_sheets_webhook_url": "",
        "google_service_account_path": "",
        "google_service_account_json": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def make_settings():
    return build_settings


@pytest.fixture
def transport():
    """SMTP transport double; send() returns a Message-ID."""
    smtp = MagicMock()
    smtp.send = AsyncMock(return_value="<generated@acme.io>")
    smtp.verify = AsyncMock(return_value=None)
    return smtp


@pytest.fixture
def transport_provider(transport):
    provider = MagicMock()
    provider.get.return_value = transport
    return provider
