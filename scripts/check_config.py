#!/usr/bin/env python3
"""
Check contact relay configuration

Usage:
    python scripts/check_config.py                 # Report email + Google Sheets settings
    python scripts/check_config.py --verify-smtp   # Also log in to the SMTP server
    python scripts/check_config.py --sheets-only   # Skip the email section
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import List, Optional

import structlog
from app.core.config import Settings, settings
from app.core.exceptions import ConfigurationError
from app.core.logging_config import configure_logging
from app.infrastructure.email_transport import EmailTransportProvider
from app.services.sheets.formatting import extract_spreadsheet_id, is_valid_sheet_url

logger = structlog.get_logger()


def _service_account_email(config: Settings) -> Optional[str]:
    """client_email from the configured service account, or None if unreadable"""
    if config.google_service_account_path:
        path = Path(config.google_service_account_path).expanduser().resolve()
        if not path.exists():
            print(f"   ❌ Service account file NOT FOUND at: {path}")
            return None
        raw = path.read_text(encoding="utf-8")
    else:
        raw = config.google_service_account_json

    try:
        info = json.loads(raw)
    except ValueError as e:
        print(f"   ❌ Service account JSON is invalid: {e}")
        return None

    client_email = info.get("client_email") if isinstance(info, dict) else None
    if not client_email:
        print("   ❌ Service account JSON missing client_email field")
    return client_email


def check_email(config: Settings) -> List[str]:
    """Print the email section and return the problems found"""
    problems = []
    print("\n1️⃣  Email (SMTP)")

    missing = config.missing_email_settings
    for name in ("EMAIL_HOST", "EMAIL_PORT", "EMAIL_USER", "EMAIL_PASS", "RECIPIENT_EMAIL"):
        marker = "❌" if name in missing else "✅"
        print(f"   {marker} {name}")
    if missing:
        problems.append(f"Missing email settings: {', '.join(missing)}")
    else:
        print(f"   📋 Server: {config.email_host}:{config.email_port}")
        print(f"   📋 Notifications go to: {config.recipient_email}")
    return problems


def check_sheets(config: Settings) -> List[str]:
    """Print the Google Sheets section and return the problems found"""
    problems = []
    print("\n2️⃣  Google Sheets")

    sheet_url = config.google_sheets_url
    if not sheet_url:
        print("   ⚠️  GOOGLE_SHEETS_URL is not set, submissions will not be mirrored")
        return problems

    if is_valid_sheet_url(sheet_url):
        print("   ✅ GOOGLE_SHEETS_URL format is valid")
        print(f"   📋 Spreadsheet ID: {extract_spreadsheet_id(sheet_url)}")
    else:
        print("   ❌ GOOGLE_SHEETS_URL format is INVALID")
        print("   💡 Should be: https://docs.google.com/spreadsheets/d/YOUR_SHEET_ID/edit")
        problems.append("Invalid GOOGLE_SHEETS_URL")

    if config.service_account_configured:
        client_email = _service_account_email(config)
        if client_email:
            print(f"   ✅ Service account: {client_email}")
            print("   💡 Make sure this email has Editor access to your Google Sheet!")
            print(f"   📋 Sheet tab: {config.google_sheet_name}")
        else:
            problems.append("Service account credentials unreadable")
        method = "Service Account API"
    elif config.google_sheets_webhook_url:
        method = "Webhook"
    else:
        method = None

    if config.google_sheets_webhook_url:
        print("   ✅ GOOGLE_SHEETS_WEBHOOK_URL is set")

    if method:
        print(f"   📋 Write method: {method}")
    else:
        print("   ⚠️  No write method configured, only the sheet link is emailed")
        print("   💡 Set GOOGLE_SERVICE_ACCOUNT_PATH or GOOGLE_SHEETS_WEBHOOK_URL")
    return problems


async def verify_smtp(config: Settings) -> List[str]:
    """Log in to the SMTP server without sending anything"""
    print("\n3️⃣  SMTP login")
    try:
        await EmailTransportProvider(config).get().verify()
    except ConfigurationError as e:
        print(f"   ❌ {e.message}")
        return [e.message]
    except Exception as e:
        logger.error("smtp_verify_failed", error=str(e))
        print(f"   ❌ SMTP connection failed: {e}")
        return [f"SMTP connection failed: {e}"]

    print("   ✅ SMTP server accepted the credentials")
    return []


async def main():
    parser = argparse.ArgumentParser(description="Check contact relay configuration")
    parser.add_argument(
        "--verify-smtp",
        action="store_true",
        help="Connect and authenticate against the SMTP server",
    )
    parser.add_argument(
        "--sheets-only", action="store_true", help="Only check Google Sheets settings"
    )

    args = parser.parse_args()
    configure_logging()

    print("🔍 Contact Relay Configuration Diagnostic")
    print("=" * 50)

    problems = []
    if not args.sheets_only:
        problems += check_email(settings)
    problems += check_sheets(settings)
    if args.verify_smtp and not args.sheets_only:
        problems += await verify_smtp(settings)

    print("\n" + "=" * 50)
    if problems:
        for problem in problems:
            print(f"❌ {problem}")
        raise SystemExit(1)
    print("✅ Configuration looks good")


if __name__ == "__main__":
    asyncio.run(main())
