"""Custom exceptions for centralized error handling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class AppError(Exception):
    """Base application error."""

    code: str
    message: str
    status_code: int
    details: Any | None = None

    def __str__(self) -> str:
        return self.message


class ValidationError(AppError):
    """Input validation error."""

    def __init__(self, message: str = "Validation error", details: Any | None = None) -> None:
        super().__init__(code="validation_error", message=message, status_code=400, details=details)


class MissingIndexError(AppError):
    """A ranged query needs a composite index and the range is too long to chunk."""

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(code="missing_index", message=message, status_code=412, details=details)
