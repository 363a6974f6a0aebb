"""
Verification code document model.

Maps to the `verification_codes` MongoDB collection.

Used for both registration OTPs and password reset OTPs (``purpose``).
code_hash stores SHA-256(otp_code); the plain OTP is never stored.
is_used is permanent once set; attempts counts failed matches and the code
is dead once it reaches MAX_OTP_ATTEMPTS.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel, PyObjectId


class VerificationMethod(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    BOTH = "both"


class CodePurpose(str, Enum):
    REGISTRATION = "registration"
    PASSWORD_RESET = "password_reset"


class VerificationCodeDoc(MongoBaseModel):
    """Document model for the `verification_codes` collection."""

    user_id: Optional[PyObjectId] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    code_hash: str
    method: VerificationMethod
    purpose: CodePurpose = CodePurpose.REGISTRATION
    attempts: int = Field(default=0, ge=0)
    is_used: bool = False
    expires_at: datetime
    created_at: Optional[datetime] = None
    used_at: Optional[datetime] = None
