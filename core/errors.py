from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base class for dashboard core errors."""


class LoadFailure(DashboardError):
    """Raised when a fetch collaborator cannot produce monthly records."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    @classmethod
    def from_exception(cls, exc: BaseException) -> "LoadFailure":
        if isinstance(exc, LoadFailure):
            return exc
        message = str(exc) or type(exc).__name__
        return cls(message, cause=exc)


class RecordFormatError(LoadFailure):
    """Tabular input is missing columns required to build records."""
