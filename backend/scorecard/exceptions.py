"""Error taxonomy shared by the validator, aggregator and batch runners."""

from __future__ import annotations

from typing import List, Optional


class ScorecardError(Exception):
    """Base exception for scorecard processing errors."""

    def __init__(self, message: str, *, source: Optional[str] = None) -> None:
        self.source = source
        super().__init__(message)


class InputError(ScorecardError):
    """Raised when a record source is missing or cannot be parsed."""


class ContentError(ScorecardError):
    """Raised when a record is readable but structurally invalid."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        errors: Optional[List[str]] = None,
    ) -> None:
        self.errors = list(errors or [])
        super().__init__(message, source=source)


class RecordStructureError(ContentError):
    """Raised by the aggregator for records it cannot reduce."""


__all__ = [
    "ContentError",
    "InputError",
    "RecordStructureError",
    "ScorecardError",
]
