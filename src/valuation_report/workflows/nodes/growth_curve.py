"""LangGraph node deriving growth rates from annual and quarterly statements."""
from __future__ import annotations

from valuation_report.workflows.context import WorkflowContext
from valuation_report.workflows.state import ReportState


def run(state: ReportState, context: WorkflowContext) -> ReportState:
    logs = state.setdefault("logs", [])

    logs.append("GrowthCurve -> compute four-period CAGR for revenue and earnings")
    state["annual_growth"] = context.growth_calculator.calculate(state.get("annual_statements") or [])
    state["quarterly_growth"] = context.growth_calculator.calculate(state.get("quarterly_statements") or [])
    return state
