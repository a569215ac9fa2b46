"""Typed pricing errors and a small result wrapper for expected failures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class PricingError(Exception):
    """Base class for failures raised by the pricing engine."""

    def __init__(
        self,
        message: str,
        *,
        line_number: int | None = None,
        field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line_number = line_number
        self.field = field

    def at_line(self, line_number: int) -> PricingError:
        """Return a copy of the error tagged with the failing line."""

        return type(self)(self.message, line_number=line_number, field=self.field)

    def __str__(self) -> str:
        if self.line_number is None:
            return self.message
        location = f"line {self.line_number}"
        if self.field:
            location += f" ({self.field})"
        return f"{location}: {self.message}"


class ValidationError(PricingError, ValueError):
    """Input is out of range or inconsistent (currency, discount, tax, quantity)."""


class NotFoundError(PricingError, LookupError):
    """No rate card or rate card item is effective for the request."""


class ConsistencyError(PricingError, RuntimeError):
    """Computed figures violate a totals invariant; indicates a defect."""


@dataclass(slots=True, frozen=True)
class Result(Generic[T]):
    """Outcome of an operation whose failure is an expected business case."""

    value: T | None = None
    error: PricingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: PricingError) -> Result[T]:
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the captured error."""

        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


__all__ = [
    "ConsistencyError",
    "NotFoundError",
    "PricingError",
    "Result",
    "ValidationError",
]
