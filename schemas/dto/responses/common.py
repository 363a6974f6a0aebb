"""
Common response DTOs shared across multiple endpoints.

ErrorResponse    — standard error shape from AppError.to_dict()
HealthResponse   — GET /health
ApiResponse      — {success, message, data} envelope used by every /auth route
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

DataT = TypeVar("DataT")


class ErrorResponse(BaseModel):
    """Standard error JSON body produced by the AppError exception handler."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]


class ApiResponse(BaseModel, Generic[DataT]):
    """Success envelope; ``data`` is omitted by routes that have nothing to return."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: Optional[str] = None
    data: Optional[DataT] = None
