"""
HTML and plain-text bodies for the admin notification and the sender
confirmation.
"""

import json
from typing import Any, Dict, Optional, Tuple

from app.domain.schemas import MirrorOutcome
from app.services.sheets.formatting import format_header_label
from app.utils.sanitize import render_field_value, sanitize_plain_text

WRAPPER_STYLE = "font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;"
PANEL_STYLE = "background-color: #f5f5f5; padding: 20px; border-radius: 5px;"
FOOTER_STYLE = "color: #666; font-size: 12px;"


def _visible_fields(fields: Dict[str, Any]):
    for key, value in fields.items():
        if key == "email" or value is None or value == "":
            continue
        yield key, value


def mirror_status_text(outcome: MirrorOutcome) -> str:
    """One-line description of what happened to the spreadsheet copy."""
    if not outcome.success:
        return f"Not processed: {outcome.error or 'unknown error'}"
    result = outcome.submission_result
    if result is None:
        return "Link only (no write method configured)"
    if result.success:
        return "Saved to Google Sheets"
    return f"Not saved: {result.error or 'unknown error'}"


def render_admin_notification(
    fields: Dict[str, Any], mirror_outcome: Optional[MirrorOutcome] = None
) -> Tuple[str, str]:
    """
    Build the admin notification body.

    Every non-empty field except ``email`` is listed under its header label.
    When the mirror outcome carries a sheet link, the link and its status
    are appended.

    Returns:
        (plain_text, html)
    """
    email = str(fields.get("email", ""))

    text_lines = ["New Contact Form Submission", "", f"Email: {email}"]
    html_rows = [f"<p><strong>Email:</strong> {sanitize_plain_text(email)}</p>"]

    for key, value in _visible_fields(fields):
        label = format_header_label(key)
        text_value = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        text_lines.append(f"{label}: {text_value}")
        html_rows.append(f"<p><strong>{sanitize_plain_text(label)}:</strong> {render_field_value(value)}</p>")

    sheet_html = ""
    if mirror_outcome is not None and mirror_outcome.sheet_url:
        status = mirror_status_text(mirror_outcome)
        text_lines += ["", f"Google Sheet: {mirror_outcome.sheet_url}", f"Sheet status: {status}"]
        sheet_html = f"""
          <div style="margin-top: 20px;">
            <p><strong>Google Sheet:</strong> <a href="{sanitize_plain_text(mirror_outcome.sheet_url)}">Open spreadsheet</a></p>
            <p><strong>Sheet status:</strong> {sanitize_plain_text(status)}</p>
          </div>"""

    text_lines += ["", "This email was sent from the contact form on your website."]

    html = f"""
        <div style="{WRAPPER_STYLE}">
          <h2 style="color: #333;">New Contact Form Submission</h2>
          <div style="{PANEL_STYLE}">
            {''.join(html_rows)}
          </div>{sheet_html}
          <p style="{FOOTER_STYLE}">
            This email was sent from the contact form on your website.
          </p>
        </div>
    """
    return "\n".join(text_lines), html


def render_confirmation(customer_name: str, team_name: str) -> Tuple[str, str]:
    text = (
        f"Dear {customer_name},\n\n"
        "We have received your message and will get back to you within 24 hours.\n\n"
        f"Best regards,\n{team_name}"
    )
    html = f"""
        <div style="{WRAPPER_STYLE}">
          <h2 style="color: #333;">Thank You for Contacting Us!</h2>
          <p>Dear {sanitize_plain_text(customer_name)},</p>
          <p>We have received your message and will get back to you within 24 hours.</p>
          <p>Best regards,<br>{sanitize_plain_text(team_name)}</p>
        </div>
    """
    return text, html
