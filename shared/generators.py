"""
Generators for OTP codes, session ids and opaque tokens.

All generators use the cryptographically secure ``secrets`` module.
"""

from __future__ import annotations

import secrets
import string


def generate_otp_code(length: int = 6) -> str:
    """Generate a cryptographically secure numeric OTP.

    Args:
        length: Number of digits (default 6).

    Returns:
        String of random decimal digits (leading zeros allowed).
    """
    if length < 1:
        raise ValueError("OTP length must be positive")
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_session_id() -> str:
    """Generate an opaque registration session identifier (64 hex chars)."""
    return secrets.token_hex(32)
