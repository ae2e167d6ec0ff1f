"""
Sender email validation for contact submissions.

Validates addresses for:
- Format (local part and domain must start/end with an alphanumeric)
- Domain structure (at least one dot, no empty labels, TLD of 2+ letters)
- Placeholder and disposable domains (example.com, mailinator.com, etc.)
"""

import re
from typing import Tuple

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9._-]*[a-zA-Z0-9])?"
    r"@[a-zA-Z0-9]([a-zA-Z0-9.-]*[a-zA-Z0-9])?\.[a-zA-Z]{2,}$"
)

# Domains that are never real senders
BLOCKED_DOMAINS = {
    "inspectgmail.com",
    "example.com",
    "test.com",
    "fake.com",
    "invalid.com",
    "testemail.com",
    "dummy.com",
    "sample.com",
    "mailinator.com",
    "10minutemail.com",
    "tempmail.com",
    "throwaway.email",
}

INVALID_FORMAT_MESSAGE = "Please provide a valid email address (e.g., user@gmail.com)"
BLOCKED_DOMAIN_MESSAGE = (
    "Invalid email domain. Please use a valid email address "
    "(e.g., gmail.com, yahoo.com, outlook.com)"
)


def validate_email_address(email: str) -> Tuple[bool, str]:
    """
    Validate a sender email address.

    Args:
        email: The address to validate (already stripped)

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_email_address("jane@gmail.com")
        (True, "")

        >>> validate_email_address("jane@example.com")
        (False, "Invalid email domain. ...")
    """
    if not email:
        return False, "Email is required"

    if not EMAIL_PATTERN.match(email):
        return False, INVALID_FORMAT_MESSAGE

    domain = email.rsplit("@", 1)[1].lower()

    if domain.startswith(".") or domain.endswith(".") or ".." in domain:
        return False, INVALID_FORMAT_MESSAGE

    tld = domain.rsplit(".", 1)[-1]
    if len(tld) < 2:
        return False, INVALID_FORMAT_MESSAGE

    if domain in BLOCKED_DOMAINS:
        return False, BLOCKED_DOMAIN_MESSAGE

    return True, ""
