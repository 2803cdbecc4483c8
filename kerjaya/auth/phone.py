"""
Phone number and login code handling utilities.
"""

import re
from typing import Optional

_FORMATTING_CHARS = set(" \t-().")
_PHONE_PATTERN = re.compile(r"^\+?\d{6,15}$")


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to the form Telegram accepts.

    Removes spaces, dashes, dots and parentheses. A leading + is kept
    when present; no country code is assumed.

    Args:
        phone: Phone number in any format

    Returns:
        Normalized phone number or None if invalid

    Examples:
        normalize_phone("+60 12-345 6789") -> "+60123456789"
        normalize_phone("(011) 1222.333") -> "0111222333"
        normalize_phone("abc") -> None
    """
    if not phone or not isinstance(phone, str):
        return None

    cleaned = "".join(c for c in phone if c not in _FORMATTING_CHARS)

    if not _PHONE_PATTERN.match(cleaned):
        return None

    return cleaned


def normalize_code(code: Optional[str]) -> Optional[str]:
    """Strip whitespace from a login code; None if nothing is left."""
    if not code or not isinstance(code, str):
        return None

    cleaned = "".join(code.split())
    return cleaned or None
