"""
Repository for the `users` collection.

Failed-login counting uses an atomic ``$inc`` so concurrent bad attempts
against the same account are all counted.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from repositories.base import BaseRepository, store_operation, to_object_id
from schemas.models.user import UserDoc, UserRole, UserStatus
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)


class UserRepository(BaseRepository):
    collection_name = "users"

    @store_operation("create")
    async def create(
        self,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.GARAGE_OWNER,
        status: UserStatus = UserStatus.PENDING_VERIFICATION,
    ) -> UserDoc:
        now = utcnow()
        user = UserDoc(
            email=email.lower(),
            password_hash=password_hash,
            role=role,
            status=status,
            failed_login_attempts=0,
            created_at=now,
            updated_at=now,
        )
        doc = user.to_mongo()
        try:
            result = await self._col.insert_one(doc)
        except DuplicateKeyError:
            log.info("user_create_conflict", email=email.lower())
            raise ConflictError("Email already registered", field="email")
        user.id = result.inserted_id
        return user

    @store_operation("get_by_email")
    async def get_by_email(self, email: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"email": email.lower()})
        return UserDoc.from_mongo(doc)

    @store_operation("get_by_id")
    async def get_by_id(self, user_id: Any) -> Optional[UserDoc]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self._col.find_one({"_id": oid})
        return UserDoc.from_mongo(doc)

    @store_operation("update")
    async def update(self, user_id: Any, fields: dict) -> Optional[UserDoc]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        try:
            doc = await self._col.find_one_and_update(
                {"_id": oid},
                {"$set": {**fields, "updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise ConflictError("Email already in use", field="email")
        return UserDoc.from_mongo(doc)

    @store_operation("delete")
    async def delete(self, user_id: Any) -> bool:
        result = await self._col.delete_one({"_id": to_object_id(user_id)})
        return result.deleted_count == 1

    @store_operation("increment_failed_login")
    async def increment_failed_login(self, user_id: Any) -> int:
        """Atomically add one failed attempt and return the new count."""
        doc = await self._col.find_one_and_update(
            {"_id": to_object_id(user_id)},
            {
                "$inc": {"failed_login_attempts": 1},
                "$set": {"updated_at": utcnow()},
            },
            projection={"failed_login_attempts": 1},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return 0
        return int(doc.get("failed_login_attempts", 0))

    @store_operation("reset_failed_login")
    async def reset_failed_login(self, user_id: Any) -> None:
        await self._col.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {
                    "failed_login_attempts": 0,
                    "locked_until": None,
                    "updated_at": utcnow(),
                }
            },
        )

    @store_operation("lock")
    async def lock(
        self, user_id: Any, duration_minutes: int, now: Optional[datetime] = None
    ) -> datetime:
        locked_until = (now or utcnow()) + timedelta(minutes=duration_minutes)
        await self._col.update_one(
            {"_id": to_object_id(user_id)},
            {"$set": {"locked_until": locked_until, "updated_at": utcnow()}},
        )
        return locked_until

    @store_operation("update_last_login")
    async def update_last_login(
        self, user_id: Any, ip_address: Optional[str] = None
    ) -> None:
        now = utcnow()
        await self._col.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {
                    "last_login_at": now,
                    "last_login_ip": ip_address,
                    "updated_at": now,
                }
            },
        )
