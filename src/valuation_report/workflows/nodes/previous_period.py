"""LangGraph node computing the TTM valuation one quarter earlier."""
from __future__ import annotations

import logging

from valuation_report.domain.errors import MissingFieldError
from valuation_report.domain.services.calculations import TRAILING_WINDOW, previous_window
from valuation_report.workflows.context import WorkflowContext
from valuation_report.workflows.state import ReportState, is_equity

logger = logging.getLogger(__name__)


def run(state: ReportState, context: WorkflowContext) -> ReportState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    symbol = state["symbol"]

    window = previous_window(state.get("quarterly_statements") or [])
    if not is_equity(state) or len(window) < TRAILING_WINDOW:
        state["previous_period"] = None
        return state

    logs.append("PreviousPeriod -> aggregate the four quarters before the latest")
    try:
        state["previous_period"] = context.trailing_calculator.calculate(window, state.get("prices") or [])
    except MissingFieldError as exc:
        errors.append(f"PreviousPeriod -> skipped: {exc}")
        logger.warning("%s >> previous period skipped: %s", symbol, exc)
        state["previous_period"] = None
    return state
