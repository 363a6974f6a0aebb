"""
User and garage profile document models.

Maps to the `users` and `garage_profiles` MongoDB collections.

A user is created only when registration step 4 succeeds, so the auth flow
never writes an unverified row. Other creation paths (admin tooling) may
still produce `pending_verification` users, which login refuses when
REQUIRE_EMAIL_VERIFICATION is on.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from schemas.models.base import MongoBaseModel, PyObjectId


class UserRole(str, Enum):
    GARAGE_OWNER = "garage_owner"
    ADMIN = "admin"
    MOBILE_USER = "mobile_user"


class UserStatus(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    REJECTED = "rejected"


class Coordinates(BaseModel):
    """Embedded latitude/longitude pair."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class UserDoc(MongoBaseModel):
    """
    Document model for the `users` collection.

    email is stored lower-cased and backed by a unique index.
    locked_until is only set once failed_login_attempts reaches the
    configured maximum and is cleared on the next successful login.
    """

    email: str
    password_hash: Optional[str] = None
    role: UserRole = UserRole.GARAGE_OWNER
    status: UserStatus = UserStatus.PENDING_VERIFICATION
    failed_login_attempts: int = Field(default=0, ge=0)
    locked_until: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    last_login_ip: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def public_dict(self) -> dict:
        """Serializable view of the user with the password hash stripped."""
        data = self.model_dump(mode="json", exclude={"password_hash"})
        data["id"] = self.id_str
        return data


class GarageProfileDoc(MongoBaseModel):
    """Document model for the `garage_profiles` collection (one per user)."""

    user_id: PyObjectId
    full_name: str
    email: str
    phone_number: str

    # Business location (registration step 2)
    address: Optional[str] = None
    street: Optional[str] = None
    state: Optional[str] = None
    location: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    # Business details (registration step 3)
    company_legal_name: Optional[str] = None
    emirates_id_url: Optional[str] = None
    trade_license_number: Optional[str] = None
    vat_certification: Optional[str] = None

    # Preferences, editable through PUT /auth/profile
    language: Optional[str] = None
    timezone: Optional[str] = None

    role: UserRole = UserRole.GARAGE_OWNER
    status: UserStatus = UserStatus.ACTIVE
    is_email_verified: bool = False
    is_phone_verified: bool = False
    email_verified_at: Optional[datetime] = None
    phone_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def summary(self) -> dict:
        """Short profile shape returned by login, verify, /auth/me and /auth/profile."""
        return {
            "full_name": self.full_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "company_legal_name": self.company_legal_name,
            "status": self.status,
            "language": self.language,
            "timezone": self.timezone,
        }
