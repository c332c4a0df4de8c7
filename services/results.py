"""Result and error types returned by the service layer.

Expected failures (bad input, duplicates, bad credentials or tokens) come back
as a failed `ServiceResult`. Store and codec outages are raised as
`InternalServiceError` instead.
"""
from dataclasses import dataclass
from enum import Enum

from fastapi import status
from fastapi.responses import JSONResponse

from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure taxonomy shared by every service."""

    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"


STATUS_CODES = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@dataclass(frozen=True)
class ServiceError:
    """A failure reported to the caller.

    `message` is safe to send back; `reason` is for logs only.
    """

    kind: ErrorKind
    message: str
    reason: Optional[str] = None

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    def to_response(self) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if self.kind is ErrorKind.UNAUTHORIZED else None
        return JSONResponse(
            status_code=self.status_code,
            content={"detail": self.message},
            headers=headers,
        )


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ServiceResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, reason: Optional[str] = None) -> "ServiceResult[T]":
        return cls(error=ServiceError(kind=kind, message=message, reason=reason))


class InternalServiceError(Exception):
    """Store or codec fault. The message is generic; the cause is chained."""

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str = "Something went wrong. Please try again later."):
        super().__init__(message)
        self.message = message

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=STATUS_CODES[self.kind],
            content={"detail": self.message},
        )
