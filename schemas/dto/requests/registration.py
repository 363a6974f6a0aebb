"""
Request DTOs for registration endpoints.

RegisterStep1Request   — POST /auth/register/step1
RegisterStep2Request   — POST /auth/register/step2
RegisterStep3Request   — POST /auth/register/step3
VerifyRegistrationRequest — POST /auth/verify
ResendCodeRequest      — POST /auth/verify/resend

Field-level rules that depend on configuration (password policy, phone
format) are enforced by RegistrationService, not here.
"""

from __future__ import annotations

from typing import Optional

from pydantic import EmailStr, Field, model_validator

from schemas.dto.requests._base import CamelRequest
from schemas.models.user import Coordinates


class RegisterStep1Request(CamelRequest):
    full_name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone_number: str = Field(min_length=1, max_length=32)
    password: str = Field(min_length=1)


class RegisterStep2Request(CamelRequest):
    session_id: str = Field(min_length=1)
    address: str = Field(min_length=1, max_length=500)
    street: str = Field(min_length=1, max_length=200)
    state: str = Field(min_length=1, max_length=100)
    location: str = Field(min_length=1, max_length=200)
    coordinates: Optional[Coordinates] = None


class RegisterStep3Request(CamelRequest):
    session_id: str = Field(min_length=1)
    company_legal_name: str = Field(min_length=1, max_length=300)
    trade_license_number: str = Field(min_length=1, max_length=100)
    emirates_id_url: Optional[str] = Field(default=None, max_length=2048)
    vat_certification: Optional[str] = Field(default=None, max_length=100)


class VerifyRegistrationRequest(CamelRequest):
    """At least one of email, phoneNumber or sessionId identifies the registration."""

    code: str = Field(pattern=r"^\d{4,10}$")
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    session_id: Optional[str] = None

    @model_validator(mode="after")
    def _require_target(self) -> "VerifyRegistrationRequest":
        if not (self.email or self.phone_number or self.session_id):
            raise ValueError("email, phoneNumber or sessionId is required")
        return self


class ResendCodeRequest(CamelRequest):
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None

    @model_validator(mode="after")
    def _require_target(self) -> "ResendCodeRequest":
        if not (self.email or self.phone_number):
            raise ValueError("email or phoneNumber is required")
        return self
