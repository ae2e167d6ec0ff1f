"""
Sheet URL parsing and the header/row layout shared by both write strategies.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

SHEETS_URL_PATTERN = re.compile(r"^https://docs\.google\.com/spreadsheets/d/[a-zA-Z0-9_-]+")
SPREADSHEET_ID_PATTERN = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")

TIMESTAMP_HEADER = "Timestamp"
# Prepended to a field label that would collide with TIMESTAMP_HEADER or
# with an earlier label
COLLISION_PREFIX = "Form"

_INTERIOR_CAPITAL = re.compile(r"([A-Z])")


def is_valid_sheet_url(sheet_url: Any) -> bool:
    """True for https://docs.google.com/spreadsheets/d/<id>... links."""
    if not sheet_url or not isinstance(sheet_url, str):
        return False
    return bool(SHEETS_URL_PATTERN.match(sheet_url))


def extract_spreadsheet_id(sheet_url: Any) -> Optional[str]:
    """
    Pull the spreadsheet id out of a sheet URL.

    Handles /edit, /edit#gid=0 and bare /d/<id> forms.
    """
    if not sheet_url or not isinstance(sheet_url, str):
        return None
    match = SPREADSHEET_ID_PATTERN.search(sheet_url)
    return match.group(1) if match else None


def format_header_label(key: str) -> str:
    """
    Column label for a submission field.

    Capitalizes the first character and puts a space before every interior
    capital, so ``inquiryType`` becomes ``Inquiry Type``.
    """
    if not key:
        return key
    return key[0].upper() + _INTERIOR_CAPITAL.sub(r" \1", key[1:])


def serialize_value(value: Any) -> str:
    """Cell text for a value: strings as-is, None as blank, the rest as JSON."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision (…T12:00:00.000Z)."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_header_value_format(
    fields: Dict[str, Any], timestamp: Optional[str] = None
) -> Tuple[List[str], List[str]]:
    """
    Headers and values for one submission.

    Field names are sorted alphabetically and formatted as labels; the
    timestamp is always the last header/value pair. Labels are unique when
    compared case-insensitively: a clashing one (a caller field named
    ``timestamp``, say) is prefixed with COLLISION_PREFIX until it is free.

    Returns:
        (headers, values) of equal length
    """
    headers: List[str] = []
    values: List[str] = []
    taken = {TIMESTAMP_HEADER.lower()}

    for key in sorted(fields.keys()):
        label = format_header_label(key)
        while label.strip().lower() in taken:
            label = f"{COLLISION_PREFIX} {label.strip()}"
        taken.add(label.strip().lower())
        headers.append(label)
        values.append(serialize_value(fields[key]))

    headers.append(TIMESTAMP_HEADER)
    values.append(timestamp or utc_timestamp())

    return headers, values
