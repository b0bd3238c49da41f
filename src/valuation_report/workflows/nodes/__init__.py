"""Convenience re-exports for workflow nodes."""
from __future__ import annotations

from . import (
    assemble,
    currency_normalize,
    growth_curve,
    previous_period,
    price_load,
    statement_load,
    summary_load,
    this_period,
)

__all__ = [
    "assemble",
    "currency_normalize",
    "growth_curve",
    "previous_period",
    "price_load",
    "statement_load",
    "summary_load",
    "this_period",
]
