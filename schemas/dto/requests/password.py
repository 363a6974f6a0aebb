"""
Request DTOs for password endpoints.

ForgotPasswordRequest   — POST /auth/password/forgot
VerifyResetCodeRequest  — POST /auth/password/verify-code
ResetPasswordRequest    — POST /auth/password/reset
ChangePasswordRequest   — POST /auth/password/change  (Bearer)
"""

from __future__ import annotations

from pydantic import EmailStr, Field

from schemas.dto.requests._base import CamelRequest


class ForgotPasswordRequest(CamelRequest):
    email: EmailStr


class VerifyResetCodeRequest(CamelRequest):
    email: EmailStr
    code: str = Field(pattern=r"^\d{4,10}$")


class ResetPasswordRequest(CamelRequest):
    email: EmailStr
    code: str = Field(pattern=r"^\d{4,10}$")
    new_password: str = Field(min_length=1)


class ChangePasswordRequest(CamelRequest):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=1)
