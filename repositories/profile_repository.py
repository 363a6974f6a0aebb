"""Repository for the `garage_profiles` collection (one profile per user)."""

from __future__ import annotations

from typing import Any, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from repositories.base import BaseRepository, store_operation, to_object_id
from schemas.models.user import GarageProfileDoc
from shared.datetime_utils import utcnow


class ProfileRepository(BaseRepository):
    collection_name = "garage_profiles"

    @store_operation("create")
    async def create(self, profile: GarageProfileDoc) -> GarageProfileDoc:
        now = utcnow()
        profile.created_at = profile.created_at or now
        profile.updated_at = now
        try:
            result = await self._col.insert_one(profile.to_mongo())
        except DuplicateKeyError:
            raise ConflictError("Profile already exists for this user")
        profile.id = result.inserted_id
        return profile

    @store_operation("get_by_user_id")
    async def get_by_user_id(self, user_id: Any) -> Optional[GarageProfileDoc]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self._col.find_one({"user_id": oid})
        return GarageProfileDoc.from_mongo(doc)

    @store_operation("update")
    async def update(self, user_id: Any, fields: dict) -> Optional[GarageProfileDoc]:
        doc = await self._col.find_one_and_update(
            {"user_id": to_object_id(user_id)},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return GarageProfileDoc.from_mongo(doc)
