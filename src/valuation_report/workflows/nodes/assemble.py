"""LangGraph node merging computed metrics with summary point estimates."""
from __future__ import annotations

from typing import Any, Dict, Optional

from valuation_report.domain.models.financials import GrowthResult, ValuationMetrics
from valuation_report.domain.services.prices import latest_close
from valuation_report.workflows.context import WorkflowContext
from valuation_report.workflows.state import ReportState, is_equity

GROWTH_ESTIMATE_PERIODS = {
    "this_quarter": "0q",
    "next_quarter": "+1q",
    "this_year": "0y",
    "next_year": "+1y",
}


def run(state: ReportState, context: WorkflowContext) -> ReportState:
    logs = state.setdefault("logs", [])
    state["report"] = build_report(state)
    logs.append("Assemble -> report ready")
    return state


def build_report(state: ReportState) -> Dict[str, Any]:
    """Shape the pipeline state into the per-symbol report record."""
    summary = state.get("summary") or {}
    price_module = summary.get("price") or {}
    quote_module = summary.get("quoteType") or {}
    key_stats = summary.get("defaultKeyStatistics") or {}
    financial_data = summary.get("financialData") or {}
    detail = summary.get("summaryDetail") or {}
    earnings_dates = ((summary.get("earnings") or {}).get("earningsChart") or {}).get("earningsDate") or []

    this_period: Optional[ValuationMetrics] = state.get("this_period")
    previous_period: Optional[ValuationMetrics] = state.get("previous_period")
    annual_growth: Optional[GrowthResult] = state.get("annual_growth")
    quarterly_growth: Optional[GrowthResult] = state.get("quarterly_growth")
    equity = is_equity(state)

    price = price_module.get("regularMarketPrice")
    if price is None:
        price = latest_close(state.get("prices") or [])

    shares_outstanding = key_stats.get("sharesOutstanding")
    if shares_outstanding is None and this_period is not None:
        shares_outstanding = this_period.shares_outstanding
    market_cap = _mul(price, shares_outstanding)

    ttm_net_income = this_period.net_income if this_period else None
    ttm_fcf = this_period.free_cash_flow if this_period else None
    ttm_revenue = this_period.total_revenue if this_period else None
    ttm_operating_income = this_period.operating_income if this_period else None

    calculated_pe = _div(market_cap, ttm_net_income) if equity else None
    if calculated_pe is None:
        calculated_pe = detail.get("trailingPE")
    price_to_sales = _div(market_cap, ttm_revenue) if equity else None
    if price_to_sales is None:
        price_to_sales = detail.get("priceToSalesTrailing12Months")

    return {
        "symbol": state["symbol"],
        "info": {
            "name": price_module.get("longName"),
            "quote_type": state.get("quote_type"),
            "currency": state.get("price_currency"),
            "statement_currency": state.get("statement_currency"),
            "earnings_date": earnings_dates[0] if earnings_dates else None,
            "listing_date": quote_module.get("firstTradeDateEpochUtc"),
        },
        "key_statistics": {
            "price": price,
            "shares_outstanding": key_stats.get("sharesOutstanding"),
            "market_cap": market_cap if equity else None,
            "beta": key_stats.get("beta"),
            "fifty_two_week_range": fifty_two_week_range(
                price, detail.get("fiftyTwoWeekLow"), detail.get("fiftyTwoWeekHigh")
            ),
        },
        "valuation": {
            "calculated_trailing_pe": calculated_pe,
            "trailing_pe": detail.get("trailingPE"),
            "forward_pe": detail.get("forwardPE"),
            "fcf_yield": _div(ttm_fcf, market_cap),
            "fcf_yield_adjusted": this_period.fcf_yield_adjusted if this_period else None,
            "fcf_per_share": _div(ttm_fcf, shares_outstanding),
            "fcf_per_share_adjusted": this_period.fcf_per_share_adjusted if this_period else None,
            "trailing_eps": key_stats.get("trailingEps"),
            "forward_eps": key_stats.get("forwardEps"),
            "price_to_sales": price_to_sales,
        },
        "this_period": this_period.to_dict() if this_period else None,
        "previous_period": previous_period.to_dict() if previous_period else None,
        "margins_and_growth": {
            "operating_margin": _div(ttm_operating_income, ttm_revenue),
            "profit_margin": _div(ttm_net_income, ttm_revenue),
            "earnings_annual_growth": financial_data.get("earningsGrowth"),
            "quarterly_earnings_growth": key_stats.get("earningsQuarterlyGrowth"),
            "quarterly_revenue_growth": financial_data.get("revenueGrowth"),
            "revenue": {
                "annual": annual_growth.revenue if annual_growth else None,
                "quarterly": quarterly_growth.revenue if quarterly_growth else None,
            },
            "earnings": {
                "annual": annual_growth.earnings if annual_growth else None,
                "quarterly": quarterly_growth.earnings if quarterly_growth else None,
            },
        },
        "growth_estimates": {
            name: growth_estimate(summary, period) for name, period in GROWTH_ESTIMATE_PERIODS.items()
        },
    }


def fifty_two_week_range(
    price: Optional[float], low: Optional[float], high: Optional[float]
) -> Optional[float]:
    """Position of ``price`` within the 52-week band; 0 at the low, 1 at the high."""
    if price is None or low is None or high is None or high == low:
        return None
    return (price - low) / (high - low)


def growth_estimate(summary: Dict[str, Any], period: str) -> Optional[Dict[str, Any]]:
    trend = (summary.get("earningsTrend") or {}).get("trend") or []
    entry = next((t for t in trend if t.get("period") == period), None)
    if entry is None:
        return None
    earnings = entry.get("earningsEstimate") or {}
    revenue = entry.get("revenueEstimate") or {}
    return {
        "end_date": entry.get("endDate"),
        "earnings_growth": earnings.get("growth"),
        "revenue_growth": revenue.get("growth"),
        "earnings_analysts": earnings.get("numberOfAnalysts"),
        "revenue_analysts": revenue.get("numberOfAnalysts"),
    }


def _mul(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if not a or not b:
        return None
    return a * b


def _div(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    if not numerator or not denominator:
        return None
    return numerator / denominator
