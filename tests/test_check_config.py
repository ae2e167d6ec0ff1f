"""
Configuration diagnostics script tests.
"""

import json

import pytest

from scripts.check_config import check_email, check_sheets, verify_smtp

SHEET_URL = "https://docs.google.com/spreadsheets/d/1AbCdEfGhIjKlMnOpQrStUvWxYz/edit"


class TestCheckEmail:
    def test_complete_configuration(self, make_settings, capsys):
        assert check_email(make_settings()) == []
        assert "smtp.relay.test:587" in capsys.readouterr().out

    def test_reports_missing_settings(self, make_settings):
        problems = check_email(make_settings(email_host="", recipient_email=""))

        assert problems == ["Missing email settings: EMAIL_HOST, RECIPIENT_EMAIL"]


class TestCheckSheets:
    def test_unset_url_is_not_a_problem(self, make_settings, capsys):
        assert check_sheets(make_settings()) == []
        assert "not be mirrored" in capsys.readouterr().out

    def test_invalid_url(self, make_settings):
        assert check_sheets(make_settings(google_sheets_url="https://example.org/x")) == [
            "Invalid GOOGLE_SHEETS_URL"
        ]

    def test_service_account_file(self, make_settings, tmp_path, capsys):
        key_file = tmp_path / "service-account.json"
        key_file.write_text(json.dumps({"client_email": "relay@proj.iam.gserviceaccount.com"}))

        problems = check_sheets(
            make_settings(google_sheets_url=SHEET_URL, google_service_account_path=str(key_file))
        )

        out = capsys.readouterr().out
        assert problems == []
        assert "relay@proj.iam.gserviceaccount.com" in out
        assert "Write method: Service Account API" in out

    def test_missing_service_account_file(self, make_settings, tmp_path):
        problems = check_sheets(
            make_settings(
                google_sheets_url=SHEET_URL,
                google_service_account_path=str(tmp_path / "missing.json"),
            )
        )

        assert problems == ["Service account credentials unreadable"]

    def test_inline_json_must_parse(self, make_settings):
        problems = check_sheets(
            make_settings(google_sheets_url=SHEET_URL, google_service_account_json="{not json")
        )

        assert problems == ["Service account credentials unreadable"]


class TestVerifySmtp:
    @pytest.mark.asyncio
    async def test_missing_configuration(self, make_settings):
        problems = await verify_smtp(make_settings(email_pass=""))

        assert problems == ["Email configuration incomplete: Missing EMAIL_PASS"]
