"""Operation result schemas."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel

from clinic_ledger.core.exceptions import (
    AppException,
    ConflictException,
    InsufficientStockException,
    NotFoundException,
)

T = TypeVar("T")


class ResultStatus(str, Enum):
    """Outcome of a state transition."""

    OK = "ok"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INSUFFICIENT_STOCK = "insufficient_stock"


_EXCEPTIONS: dict[ResultStatus, type[AppException]] = {
    ResultStatus.NOT_FOUND: NotFoundException,
    ResultStatus.CONFLICT: ConflictException,
    ResultStatus.INSUFFICIENT_STOCK: InsufficientStockException,
}


class OperationResult(BaseModel, Generic[T]):
    """Explicit result of a transition, so callers can branch on what happened."""

    status: ResultStatus
    value: T | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        """Check if the operation went through."""
        return self.status == ResultStatus.OK

    @classmethod
    def success(cls, value: T | None = None) -> "OperationResult[T]":
        """Build a successful result."""
        return cls(status=ResultStatus.OK, value=value)

    @classmethod
    def not_found(cls, message: str) -> "OperationResult[T]":
        """Build a not-found result."""
        return cls(status=ResultStatus.NOT_FOUND, message=message)

    @classmethod
    def conflict(cls, message: str, value: T | None = None) -> "OperationResult[T]":
        """Build a conflict result."""
        return cls(status=ResultStatus.CONFLICT, value=value, message=message)

    @classmethod
    def insufficient_stock(cls, message: str, value: T | None = None) -> "OperationResult[T]":
        """Build an insufficient-stock result."""
        return cls(status=ResultStatus.INSUFFICIENT_STOCK, value=value, message=message)

    def raise_for_status(self) -> T | None:
        """
        Return the value or raise the matching exception.

        Raises:
            NotFoundException: For NOT_FOUND
            ConflictException: For CONFLICT
            InsufficientStockException: For INSUFFICIENT_STOCK
        """
        if self.ok:
            return self.value
        raise _EXCEPTIONS[self.status](self.message or self.status.value)
