"""
Repository for the `verification_codes` collection.

A target is an email address, a phone number, or both. Lookups match on
every identifier given, so a code issued to (email, phone) is found by
either one alone.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from pymongo import DESCENDING

from repositories.base import BaseRepository, store_operation, to_object_id
from schemas.models.verification_code import (
    CodePurpose,
    VerificationCodeDoc,
    VerificationMethod,
)
from shared.crypto import hash_token
from shared.datetime_utils import utcnow


def _target_filter(
    email: Optional[str], phone_number: Optional[str], purpose: CodePurpose
) -> dict:
    if not email and not phone_number:
        raise ValueError("A verification target needs an email or phone number")
    query: dict = {"purpose": CodePurpose(purpose).value}
    if email:
        query["email"] = email.lower()
    if phone_number:
        query["phone_number"] = phone_number
    return query


class VerificationCodeRepository(BaseRepository):
    collection_name = "verification_codes"

    @store_operation("create")
    async def create(
        self,
        *,
        code: str,
        method: VerificationMethod,
        purpose: CodePurpose,
        expiry_minutes: int,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
        user_id: Any = None,
        now: Optional[datetime] = None,
    ) -> VerificationCodeDoc:
        now = now or utcnow()
        record = VerificationCodeDoc(
            user_id=to_object_id(user_id),
            email=email.lower() if email else None,
            phone_number=phone_number,
            code_hash=hash_token(code),
            method=method,
            purpose=purpose,
            attempts=0,
            is_used=False,
            expires_at=now + timedelta(minutes=expiry_minutes),
            created_at=now,
        )
        result = await self._col.insert_one(record.to_mongo())
        record.id = result.inserted_id
        return record

    @store_operation("find_latest_unused")
    async def find_latest_unused(
        self,
        *,
        purpose: CodePurpose,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Optional[VerificationCodeDoc]:
        """Newest unused code for the target, expired or not."""
        query = _target_filter(email, phone_number, purpose)
        query["is_used"] = False
        doc = await self._col.find_one(query, sort=[("created_at", DESCENDING)])
        return VerificationCodeDoc.from_mongo(doc)

    @store_operation("mark_used")
    async def mark_used(self, code_id: Any, now: Optional[datetime] = None) -> bool:
        result = await self._col.update_one(
            {"_id": to_object_id(code_id), "is_used": False},
            {"$set": {"is_used": True, "used_at": now or utcnow()}},
        )
        return result.modified_count == 1

    @store_operation("increment_attempt")
    async def increment_attempt(self, code_id: Any) -> None:
        await self._col.update_one(
            {"_id": to_object_id(code_id)}, {"$inc": {"attempts": 1}}
        )

    @store_operation("invalidate_active_for")
    async def invalidate_active_for(
        self,
        *,
        purpose: CodePurpose,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Mark every unused code for the target used; returns how many."""
        query = _target_filter(email, phone_number, purpose)
        query["is_used"] = False
        result = await self._col.update_many(
            query, {"$set": {"is_used": True, "used_at": now or utcnow()}}
        )
        return result.modified_count

    @store_operation("sweep_expired")
    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        result = await self._col.delete_many({"expires_at": {"$lte": now or utcnow()}})
        return result.deleted_count
