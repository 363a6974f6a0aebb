"""
Registration session document model.

Maps to the `registration_sessions` MongoDB collection.

Holds a garage owner's signup data across the four registration steps
before any user row exists. step_completed only moves forward; the session
is deleted once step 4 creates the user, or by the expiry sweep.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel
from schemas.models.user import Coordinates


class RegistrationSessionDoc(MongoBaseModel):
    """Document model for the `registration_sessions` collection."""

    session_id: str
    email: str
    phone_number: str
    full_name: str
    password_hash: str

    # Step 2
    address: Optional[str] = None
    street: Optional[str] = None
    state: Optional[str] = None
    location: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    # Step 3
    company_legal_name: Optional[str] = None
    emirates_id_url: Optional[str] = None
    trade_license_number: Optional[str] = None
    vat_certification: Optional[str] = None

    step_completed: int = Field(default=1, ge=1, le=3)
    expires_at: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
