"""Workflow state definitions shared by LangGraph nodes."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict

from valuation_report.domain.models.financials import (
    GrowthResult,
    PriceSeries,
    Statement,
    ValuationMetrics,
)

EQUITY_QUOTE_TYPE = "EQUITY"


class ReportState(TypedDict, total=False):
    symbol: str
    report_date: str

    summary: Dict[str, Any]
    quote_type: Optional[str]
    price_currency: Optional[str]
    statement_currency: Optional[str]
    prices: PriceSeries

    annual_statements: List[Statement]
    quarterly_statements: List[Statement]

    this_period: Optional[ValuationMetrics]
    previous_period: Optional[ValuationMetrics]
    annual_growth: Optional[GrowthResult]
    quarterly_growth: Optional[GrowthResult]

    report: Optional[Dict[str, Any]]
    stage_order: List[str]

    logs: List[str]
    errors: List[str]


def is_equity(state: ReportState) -> bool:
    return state.get("quote_type") == EQUITY_QUOTE_TYPE
