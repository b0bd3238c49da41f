"""LangGraph node loading annual and quarterly statements for equities."""
from __future__ import annotations

from valuation_report.workflows.context import WorkflowContext
from valuation_report.workflows.state import ReportState, is_equity


def run(state: ReportState, context: WorkflowContext) -> ReportState:
    logs = state.setdefault("logs", [])
    symbol = state["symbol"]

    if not is_equity(state):
        # Funds, ETFs and indices carry no statements.
        state["annual_statements"] = []
        state["quarterly_statements"] = []
        logs.append(f"StatementLoad -> skipped for quoteType={state.get('quote_type')}")
        return state

    state["annual_statements"] = context.provider.fetch_annual_statements(symbol)
    state["quarterly_statements"] = context.provider.fetch_quarterly_statements(symbol)
    logs.append(
        f"StatementLoad -> {len(state['annual_statements'])} annual, "
        f"{len(state['quarterly_statements'])} quarterly statements"
    )
    return state
