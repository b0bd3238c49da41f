"""LangGraph node re-expressing statements in the quote currency."""
from __future__ import annotations

from valuation_report.domain.services.currency import convert_currency_in_statements, needs_conversion
from valuation_report.workflows.context import WorkflowContext
from valuation_report.workflows.state import ReportState


def run(state: ReportState, context: WorkflowContext) -> ReportState:
    logs = state.setdefault("logs", [])
    price_currency = state.get("price_currency")
    statement_currency = state.get("statement_currency")

    if not needs_conversion(price_currency, statement_currency):
        return state

    logs.append(f"CurrencyNormalize -> {statement_currency} to {price_currency}")
    for key in ("annual_statements", "quarterly_statements"):
        state[key] = convert_currency_in_statements(
            state.get(key) or [],
            statement_currency,
            price_currency,
            context.provider,
        )
    return state
