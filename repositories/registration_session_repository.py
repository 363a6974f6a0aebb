"""
Repository for the `registration_sessions` collection.

Step updates are conditional on the stored step_completed and use ``$max``
so the step counter can never move backwards, even when two requests for
the same session race.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pymongo import DESCENDING

from repositories.base import BaseRepository, store_operation
from schemas.models.registration_session import RegistrationSessionDoc
from shared.datetime_utils import utcnow
from shared.generators import generate_session_id


class RegistrationSessionRepository(BaseRepository):
    collection_name = "registration_sessions"

    @store_operation("create")
    async def create(
        self,
        *,
        email: str,
        phone_number: str,
        full_name: str,
        password_hash: str,
        ttl_hours: int = 24,
        now: Optional[datetime] = None,
    ) -> RegistrationSessionDoc:
        now = now or utcnow()
        session = RegistrationSessionDoc(
            session_id=generate_session_id(),
            email=email.lower(),
            phone_number=phone_number,
            full_name=full_name,
            password_hash=password_hash,
            step_completed=1,
            expires_at=now + timedelta(hours=ttl_hours),
            created_at=now,
            updated_at=now,
        )
        result = await self._col.insert_one(session.to_mongo())
        session.id = result.inserted_id
        return session

    @store_operation("get")
    async def get(
        self, session_id: str, now: Optional[datetime] = None
    ) -> Optional[RegistrationSessionDoc]:
        """Return the session, or None when it is missing or expired."""
        doc = await self._col.find_one(
            {"session_id": session_id, "expires_at": {"$gt": now or utcnow()}}
        )
        return RegistrationSessionDoc.from_mongo(doc)

    @store_operation("find_active_by_email")
    async def find_active_by_email(
        self, email: str, now: Optional[datetime] = None
    ) -> Optional[RegistrationSessionDoc]:
        doc = await self._col.find_one(
            {"email": email.lower(), "expires_at": {"$gt": now or utcnow()}},
            sort=[("created_at", DESCENDING)],
        )
        return RegistrationSessionDoc.from_mongo(doc)

    @store_operation("find_active_by_phone")
    async def find_active_by_phone(
        self, phone_number: str, now: Optional[datetime] = None
    ) -> Optional[RegistrationSessionDoc]:
        doc = await self._col.find_one(
            {"phone_number": phone_number, "expires_at": {"$gt": now or utcnow()}},
            sort=[("created_at", DESCENDING)],
        )
        return RegistrationSessionDoc.from_mongo(doc)

    async def _advance(
        self, session_id: str, step: int, fields: dict, now: Optional[datetime]
    ) -> bool:
        now = now or utcnow()
        result = await self._col.update_one(
            {
                "session_id": session_id,
                "step_completed": {"$gte": step - 1},
                "expires_at": {"$gt": now},
            },
            {
                "$set": {**fields, "updated_at": now},
                "$max": {"step_completed": step},
            },
        )
        return result.matched_count == 1

    @store_operation("update_step2")
    async def update_step2(
        self, session_id: str, fields: dict, now: Optional[datetime] = None
    ) -> bool:
        """Merge business-location fields; False unless step 1 is complete."""
        return await self._advance(session_id, 2, fields, now)

    @store_operation("update_step3")
    async def update_step3(
        self, session_id: str, fields: dict, now: Optional[datetime] = None
    ) -> bool:
        """Merge business-detail fields; False unless step 2 is complete."""
        return await self._advance(session_id, 3, fields, now)

    @store_operation("delete")
    async def delete(self, session_id: str) -> None:
        await self._col.delete_one({"session_id": session_id})

    @store_operation("sweep_expired")
    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        result = await self._col.delete_many({"expires_at": {"$lte": now or utcnow()}})
        return result.deleted_count
