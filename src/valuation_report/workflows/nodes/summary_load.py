"""LangGraph node loading quote metadata and point estimates."""
from __future__ import annotations

from valuation_report.workflows.context import WorkflowContext
from valuation_report.workflows.state import ReportState


def run(state: ReportState, context: WorkflowContext) -> ReportState:
    logs = state.setdefault("logs", [])
    symbol = state["symbol"]

    logs.append("SummaryLoad -> fetch quote summary")
    summary = context.provider.fetch_summary(symbol)
    price = summary.get("price") or {}
    financial_data = summary.get("financialData") or {}

    state["summary"] = summary
    state["quote_type"] = price.get("quoteType")
    state["price_currency"] = price.get("currency")
    state["statement_currency"] = financial_data.get("financialCurrency")
    logs.append(
        f"SummaryLoad -> quoteType={state['quote_type']} currency={state['price_currency']} "
        f"statementCurrency={state['statement_currency']}"
    )
    return state
