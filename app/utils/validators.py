from __future__ import annotations

import re

# Local part: RFC 5322 atext plus dots. Domain: one or more labels of up to
# 63 chars that start and end alphanumeric.
EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

# E.164: optional +, no leading zero, up to 15 digits
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")


def is_valid_email(value: object) -> bool:
    return isinstance(value, str) and len(value) <= 254 and bool(EMAIL_PATTERN.fullmatch(value))


def normalize_email(value: object) -> object:
    """Lower-case and trim; non-strings pass through for the schema to reject."""
    if isinstance(value, str):
        return value.strip().lower()
    return value
