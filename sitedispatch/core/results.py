"""
Result values for validators that report failures without raising
"""
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ValidationError:
    """A validation failure reported back to the command pipeline"""
    message: str
    field: Optional[str] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a ValidationError"""
    value: Optional[T] = None
    error: Optional[ValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, message: str, field: Optional[str] = None) -> "Result[T]":
        return cls(error=ValidationError(message=message, field=field))
