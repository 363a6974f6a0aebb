"""
Input validators. Pure functions with no framework imports.

Validators never raise; they return a normalised value, ``None`` or a
human-readable failure message and leave the error type to the caller.
"""

from __future__ import annotations

import re
from typing import Optional

from email_validator import EmailNotValidError, validate_email

PASSWORD_MAX_LENGTH = 128
PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"

COMMON_PASSWORDS = frozenset(
    {
        "password",
        "password123",
        "admin",
        "admin123",
        "12345678",
        "qwerty",
        "letmein",
    }
)

# UAE numbers: +971XXXXXXXXX, 971XXXXXXXXX, 05XXXXXXXX, 5XXXXXXXX
_PHONE_RE = re.compile(r"^(\+971|971|0)?([1-9][0-9]{8})$")


def check_password_strength(password: str, min_length: int = 8) -> Optional[str]:
    """Return the message for the first failed strength rule, or ``None``.

    Rules are evaluated in a fixed order: minimum length, maximum length,
    uppercase, lowercase, digit, special character, common-password list.
    """
    if len(password) < min_length:
        return f"Password must be at least {min_length} characters long"
    if len(password) > PASSWORD_MAX_LENGTH:
        return f"Password must not exceed {PASSWORD_MAX_LENGTH} characters"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"\d", password):
        return "Password must contain at least one number"
    if not any(ch in PASSWORD_SPECIAL_CHARACTERS for ch in password):
        return (
            "Password must contain at least one special character "
            f"({PASSWORD_SPECIAL_CHARACTERS})"
        )
    if password.lower() in COMMON_PASSWORDS:
        return "Password is too common. Please choose a stronger password"
    return None


def normalize_email(email: str) -> str:
    """Trim and lower-case *email*; emails are unique case-insensitively."""
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    """Return True if *email* is a syntactically valid address.

    Deliverability (DNS) is not checked; codes sent to a dead mailbox simply
    never arrive.
    """
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def normalize_phone_number(phone_number: str) -> Optional[str]:
    """Return *phone_number* in canonical ``+971XXXXXXXXX`` form.

    Whitespace is ignored. Returns ``None`` when the number does not match
    the supported UAE formats.
    """
    compact = re.sub(r"\s", "", phone_number)
    match = _PHONE_RE.match(compact)
    if not match:
        return None
    return "+971" + match.group(2)
