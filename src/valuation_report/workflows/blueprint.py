"""Workflow blueprint describing report stages and their handlers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, TYPE_CHECKING

from valuation_report.workflows.nodes import (
    assemble,
    currency_normalize,
    growth_curve,
    previous_period,
    price_load,
    statement_load,
    summary_load,
    this_period,
)

if TYPE_CHECKING:
    from valuation_report.workflows.context import WorkflowContext
    from valuation_report.workflows.state import ReportState


@dataclass
class StageSpec:
    """Single LangGraph stage definition."""

    key: str
    description: str
    handler: Callable[["ReportState", "WorkflowContext"], "ReportState"]
    depends_on: List[str] = field(default_factory=list)


def build_default_stages() -> List[StageSpec]:
    """Return the ordered stages for the report workflow."""
    return [
        StageSpec(
            key="load_summary",
            description="Fetch quote summary; read quote type, quote currency and statement currency.",
            handler=summary_load.run,
        ),
        StageSpec(
            key="load_prices",
            description="Fetch roughly five years of daily closes.",
            handler=price_load.run,
        ),
        StageSpec(
            key="load_statements",
            description="Fetch annual and quarterly statements (equities only).",
            handler=statement_load.run,
            depends_on=["load_summary"],
        ),
        StageSpec(
            key="normalize_currency",
            description="Convert statements into the quote currency at period-end FX closes.",
            handler=currency_normalize.run,
            depends_on=["load_statements"],
        ),
        StageSpec(
            key="this_period",
            description="Aggregate the latest four quarters; fall back to the reported trailing statement.",
            handler=this_period.run,
            depends_on=["load_prices", "normalize_currency"],
        ),
        StageSpec(
            key="previous_period",
            description="Aggregate the four quarters preceding the latest one.",
            handler=previous_period.run,
            depends_on=["load_prices", "normalize_currency"],
        ),
        StageSpec(
            key="growth",
            description="Compute revenue and earnings CAGR for annual and quarterly series.",
            handler=growth_curve.run,
            depends_on=["normalize_currency"],
        ),
        StageSpec(
            key="assemble_report",
            description="Merge metrics, growth and summary point estimates into one report record.",
            handler=assemble.run,
            depends_on=["this_period", "previous_period", "growth"],
        ),
    ]
