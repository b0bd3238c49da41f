"""Exceptions raised by the valuation domain services."""
from __future__ import annotations

from datetime import date
from typing import Optional


class DateOutOfRangeError(LookupError):
    """Requested date precedes every point of a price or FX series."""

    def __init__(self, requested: date, earliest: Optional[date] = None) -> None:
        if earliest is None:
            message = f"No price available on or before {requested.isoformat()} (empty series)"
        else:
            message = (
                f"Requested date {requested.isoformat()} is before the earliest "
                f"available price date {earliest.isoformat()}"
            )
        super().__init__(message)
        self.requested = requested
        self.earliest = earliest


class MissingFieldError(ValueError):
    """A structurally required statement field is absent."""

    def __init__(self, field_name: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"{field_name} not found")
        self.field_name = field_name
