"""
Request DTOs for session endpoints.

LoginRequest    — POST /auth/login
RefreshRequest  — POST /auth/refresh
"""

from __future__ import annotations

from pydantic import EmailStr, Field

from schemas.dto.requests._base import CamelRequest


class LoginRequest(CamelRequest):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(CamelRequest):
    refresh_token: str = Field(min_length=1)
