"""MongoDB index definitions, applied once at startup."""

from __future__ import annotations

from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.asynchronous.database import AsyncDatabase

from shared.logging import get_logger

log = get_logger(__name__)

INDEXES: dict[str, list[IndexModel]] = {
    "users": [
        IndexModel([("email", ASCENDING)], unique=True, name="email_unique"),
    ],
    "garage_profiles": [
        IndexModel([("user_id", ASCENDING)], unique=True, name="user_id_unique"),
    ],
    "registration_sessions": [
        IndexModel([("session_id", ASCENDING)], unique=True, name="session_id_unique"),
        IndexModel([("email", ASCENDING), ("created_at", DESCENDING)], name="email"),
        IndexModel(
            [("phone_number", ASCENDING), ("created_at", DESCENDING)], name="phone"
        ),
        # Backstop for the cleanup worker
        IndexModel([("expires_at", ASCENDING)], expireAfterSeconds=0, name="ttl"),
    ],
    "verification_codes": [
        IndexModel(
            [
                ("email", ASCENDING),
                ("purpose", ASCENDING),
                ("is_used", ASCENDING),
                ("created_at", DESCENDING),
            ],
            name="email_lookup",
        ),
        IndexModel(
            [
                ("phone_number", ASCENDING),
                ("purpose", ASCENDING),
                ("is_used", ASCENDING),
                ("created_at", DESCENDING),
            ],
            name="phone_lookup",
        ),
        IndexModel([("expires_at", ASCENDING)], expireAfterSeconds=86400, name="ttl"),
    ],
}


async def ensure_indexes(db: AsyncDatabase) -> None:
    for collection, indexes in INDEXES.items():
        await db[collection].create_indexes(indexes)
    log.info("mongo_indexes_ensured", collections=list(INDEXES))
