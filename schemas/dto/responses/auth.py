"""
Response payloads (the ``data`` member of ApiResponse) for /auth endpoints.

RegistrationStartedData — POST /auth/register/step1  (201)
RegistrationStepData    — POST /auth/register/step2, step3
AuthenticatedData       — POST /auth/verify, POST /auth/login
CodeSentData            — POST /auth/verify/resend
AccessTokenData         — POST /auth/refresh
ResetProofData          — POST /auth/password/verify-code
MeData                  — GET /auth/me, GET and PUT /auth/profile
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class RegistrationStartedData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str
    expires_at: datetime
    email: str
    phone_number: str
    next_step: int
    requires_verification: bool
    verification_sent: bool


class RegistrationStepData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str
    step_completed: int
    next_step: int
    # Only step 3 dispatches a code
    verification_sent: Optional[bool] = None


class AuthenticatedData(BaseModel):
    """User (never with a password hash), profile summary and both tokens."""

    model_config = ConfigDict(populate_by_name=True)

    user: dict[str, Any]
    profile: Optional[dict[str, Any]] = None
    access_token: str
    refresh_token: str


class CodeSentData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    expires_at: datetime
    verification_sent: bool


class AccessTokenData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str


class ResetProofData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    proof_token: str


class MeData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: dict[str, Any]
    profile: Optional[dict[str, Any]] = None
