from app.services.sheets.api_strategy import ApiWriteStrategy
from app.services.sheets.formatting import (
    extract_spreadsheet_id,
    format_header_label,
    is_valid_sheet_url,
    to_header_value_format,
)
from app.services.sheets.mirror import SpreadsheetMirror, WriteMethod
from app.services.sheets.webhook_strategy import WebhookWriteStrategy

__all__ = [
    "ApiWriteStrategy",
    "SpreadsheetMirror",
    "WebhookWriteStrategy",
    "WriteMethod",
    "extract_spreadsheet_id",
    "format_header_label",
    "is_valid_sheet_url",
    "to_header_value_format",
]
