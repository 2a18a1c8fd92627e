"""Result types returned by hierarchy operations.

Entry points of the mutator, factory and propagator report failures as
values instead of raising, so the HTTP layer can map them to status codes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class Outcome:
    """Success (``error is None``) or a failure with a caller-facing message."""

    error: Optional[ErrorKind] = None
    message: str = "ok"
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None, message: str = "ok") -> "Outcome":
        return cls(error=None, message=message, value=value)

    @classmethod
    def invalid(cls, message: str) -> "Outcome":
        return cls(error=ErrorKind.VALIDATION, message=message)

    @classmethod
    def not_found(cls, message: str) -> "Outcome":
        return cls(error=ErrorKind.NOT_FOUND, message=message)

    @classmethod
    def unexpected(cls, message: str) -> "Outcome":
        return cls(error=ErrorKind.UNEXPECTED, message=message)


@dataclass(frozen=True)
class PropagationResult:
    """User-facing message plus severity ("success" or "error")."""

    message: str
    severity: str

    @property
    def ok(self) -> bool:
        return self.severity == "success"


__all__ = ["ErrorKind", "Outcome", "PropagationResult"]
