"""
Shared base for the MongoDB document models.

Documents keep their primary key as a BSON ObjectId in ``_id``; models expose
it as ``id`` and serialize it as a hex string for API responses. Enum fields
are stored by value so raw documents stay plain BSON.
"""

from __future__ import annotations

from typing import Any, Optional, Type, TypeVar

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema

M = TypeVar("M", bound="MongoBaseModel")


def coerce_object_id(value: Any) -> Optional[ObjectId]:
    """ObjectId for an ObjectId or 24-char hex string; None for anything else."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


class PyObjectId(ObjectId):
    """ObjectId field type: accepts hex strings, dumps to str in JSON mode."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.to_string_ser_schema(when_used="json"),
        )

    @classmethod
    def _validate(cls, v: Any) -> ObjectId:
        oid = coerce_object_id(v)
        if oid is None:
            raise ValueError(f"Invalid ObjectId: {v!r}")
        return oid


class MongoBaseModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    def to_mongo(self) -> dict:
        """Insert-ready dict keyed by ``_id``; an unset id is left for Mongo to assign."""
        data = self.model_dump(by_alias=True, mode="python")
        if data.get("_id") is None:
            del data["_id"]
        return data

    @classmethod
    def from_mongo(cls: Type[M], data: Optional[dict]) -> Optional[M]:
        # find_one() hands back None for a miss
        if data is None:
            return None
        return cls.model_validate(data)

    @property
    def id_str(self) -> Optional[str]:
        return None if self.id is None else str(self.id)
