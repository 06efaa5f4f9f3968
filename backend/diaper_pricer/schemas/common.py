"""Common Pydantic schemas used across the API."""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class CatalogMeta(BaseModel):
    """Catalog freshness metadata included in listing responses."""

    total: int = 0
    last_successful_run: datetime | None = None
    refresh_scheduled: bool = False


class ApiResponse(BaseModel, Generic[T]):
    """Standard API response envelope."""

    status: str = "success"
    data: T
    meta: CatalogMeta | None = None


class ErrorDetail(BaseModel):
    """Error detail for error responses."""

    code: str
    message: str
    field: str | None = None


class ErrorResponse(BaseModel):
    """Standard API error response."""

    status: str = "error"
    error: ErrorDetail
