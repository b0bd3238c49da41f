"""LangGraph node computing the current trailing-twelve-month valuation."""
from __future__ import annotations

import logging

from valuation_report.domain.errors import MissingFieldError
from valuation_report.domain.services.calculations import get_ttm_statistics
from valuation_report.workflows.context import WorkflowContext
from valuation_report.workflows.state import ReportState, is_equity

logger = logging.getLogger(__name__)


def run(state: ReportState, context: WorkflowContext) -> ReportState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    symbol = state["symbol"]
    prices = state.get("prices") or []

    if not is_equity(state):
        state["this_period"] = None
        return state

    logs.append("ThisPeriod -> aggregate latest four quarters")
    metrics = None
    try:
        metrics = context.trailing_calculator.calculate(state.get("quarterly_statements") or [], prices)
    except MissingFieldError as exc:
        errors.append(f"ThisPeriod -> quarterly aggregation failed: {exc}")
        logger.warning("%s >> %s; falling back to reported trailing statement", symbol, exc)

    if metrics is None:
        logs.append("ThisPeriod -> fall back to provider-reported trailing statement")
        metrics = get_ttm_statistics(
            symbol,
            prices,
            context.provider,
            state.get("price_currency"),
            state.get("statement_currency"),
        )

    state["this_period"] = metrics
    return state
