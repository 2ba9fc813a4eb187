"""Typed errors raised by the service layer.

Services never build HTTP responses themselves. They raise one of the errors
below and the exception handler registered in :mod:`eduhub.main` renders the
``{success: false, message, code}`` envelope with the matching status code.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class ServiceError(Exception):
    """Base class for domain errors; defaults to a 400 response."""

    message: str
    code: str = "bad_request"
    status_code: int = 400

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class NotFoundError(ServiceError):
    code: str = "not_found"
    status_code: int = 404


@dataclass(eq=False)
class ForbiddenError(ServiceError):
    code: str = "forbidden"
    status_code: int = 403


@dataclass(eq=False)
class ConflictError(ServiceError):
    code: str = "conflict"
    status_code: int = 409


@dataclass(eq=False)
class ValidationError(ServiceError):
    code: str = "validation_error"
    status_code: int = 400
