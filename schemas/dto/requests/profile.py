"""
Request DTOs for the profile endpoint.

UpdateProfileRequest — PUT /auth/profile  (Bearer)
"""

from __future__ import annotations

from typing import Optional

from pydantic import EmailStr, Field, model_validator

from schemas.dto.requests._base import CamelRequest


class UpdateProfileRequest(CamelRequest):
    """Every field is optional; only the ones sent are changed."""

    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(default=None, min_length=1, max_length=32)
    language: Optional[str] = Field(default=None, min_length=2, max_length=16)
    timezone: Optional[str] = Field(default=None, min_length=1, max_length=64)
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _password_change_needs_current(self) -> "UpdateProfileRequest":
        if self.new_password is not None and not self.current_password:
            raise ValueError("currentPassword is required to set a new password")
        return self
