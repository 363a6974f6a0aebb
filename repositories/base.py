"""
Shared repository plumbing.

Repositories wrap one async pymongo collection each. Every public method is
decorated with ``store_operation`` so a datastore failure surfaces as a
logged UnavailableError instead of a raw PyMongoError.
"""

from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, TypeVar

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from errors import UnavailableError
from schemas.models.base import coerce_object_id
from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


def store_operation(
    name: str,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Translate PyMongoError raised by the wrapped coroutine to UnavailableError."""

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(self: "BaseRepository", *args: Any, **kwargs: Any) -> T:
            try:
                return await fn(self, *args, **kwargs)
            except PyMongoError as e:
                log.error(
                    "store_operation_failed",
                    collection=self.collection_name,
                    operation=name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise UnavailableError(
                    "Service temporarily unavailable. Please try again later."
                ) from e

        return wrapper

    return decorator


# Malformed ids map to None so lookups by them simply miss
to_object_id = coerce_object_id


class BaseRepository:
    collection_name: str = ""

    def __init__(self, db: AsyncDatabase) -> None:
        self._col: AsyncCollection = db[self.collection_name]
