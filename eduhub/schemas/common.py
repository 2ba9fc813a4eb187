from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Uniform ``{success, data, message}`` wrapper returned by every endpoint."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    message: str
    code: Optional[str] = None


def total_pages(total: int, limit: int) -> int:
    """``ceil(total / limit)`` without going through floats."""
    return -(-total // limit) if limit > 0 else 0


def envelope(data=None, message: Optional[str] = None) -> dict:
    """Success body; ``data`` may hold ORM objects, validated by the route's response model."""
    return {"success": True, "data": data, "message": message}
