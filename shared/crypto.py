"""
Cryptographic helpers for password and token hashing.

Uses argon2 for passwords (via argon2-cffi) and SHA-256 for OTP codes.
"""

from __future__ import annotations

import hashlib
import hmac

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError


class CredentialHasher:
    """One-way password hashing with a configurable argon2 time cost."""

    def __init__(self, time_cost: int = 3) -> None:
        self._hasher = PasswordHasher(time_cost=time_cost)

    def hash(self, plain_password: str) -> str:
        """Hash *plain_password* with argon2id.

        Returns:
            Argon2 hash string (includes algorithm parameters and salt).
        """
        return self._hasher.hash(plain_password)

    def verify(self, plain_password: str, password_hash: str) -> bool:
        """Verify *plain_password* against an argon2 *password_hash*.

        Returns:
            ``True`` if the password matches, ``False`` for a wrong password
            or a malformed/missing hash.
        """
        if not password_hash:
            return False
        try:
            return self._hasher.verify(password_hash, plain_password)
        except (VerificationError, InvalidHashError):
            return False


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    Used to hash OTP codes before storing them so the plaintext is never
    persisted.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(token: str, token_hash: str) -> bool:
    """Constant-time comparison of *token* against a stored SHA-256 hash."""
    return hmac.compare_digest(hash_token(token), token_hash)
