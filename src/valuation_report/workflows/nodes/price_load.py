"""LangGraph node loading the daily price history."""
from __future__ import annotations

from valuation_report.workflows.context import WorkflowContext
from valuation_report.workflows.state import ReportState


def run(state: ReportState, context: WorkflowContext) -> ReportState:
    logs = state.setdefault("logs", [])
    symbol = state["symbol"]

    prices = context.provider.fetch_prices(symbol)
    state["prices"] = prices
    logs.append(f"PriceLoad -> {len(prices)} daily closes")
    return state
