"""
HTML escaping for submission values rendered into email bodies.
"""

import json
from typing import Any

import bleach


def sanitize_plain_text(content: str) -> str:
    """
    Neutralise markup in a user-supplied string.

    Tags are stripped and stray angle brackets / ampersands are escaped, so
    the result is safe to drop into an HTML email body.

    Args:
        content: Raw content from the submission

    Returns:
        Plain text safe for HTML
    """
    if not content:
        return ""

    cleaned = bleach.clean(content, tags=[], strip=True)

    return cleaned.strip()


def render_field_value(value: Any) -> str:
    """
    Render one submission value for an HTML email body.

    Strings keep their line breaks as <br>; anything else is shown as JSON.
    """
    if isinstance(value, str):
        return sanitize_plain_text(value).replace("\n", "<br>")
    return sanitize_plain_text(json.dumps(value, ensure_ascii=False))
