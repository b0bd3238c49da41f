"""Domain service layer providing valuation and growth calculations.

This module implements:
- Valuation metrics for one aggregated period (market cap, P/E, FCF yield, per-share figures)
- Trailing-twelve-month aggregation over the latest four quarterly statements
- A fallback to the provider-reported trailing statement for short histories
- Compound growth over a four-period window

Every ratio is null-propagating: a missing or zero input yields ``None`` for
that metric only, never ``0``, ``inf`` or ``float('nan')``.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional, Protocol, Sequence

from valuation_report.domain.errors import MissingFieldError
from valuation_report.domain.models.financials import (
    GrowthResult,
    PriceSeries,
    Statement,
    ValuationMetrics,
)
from valuation_report.domain.services.currency import convert_currency_in_statements, needs_conversion
from valuation_report.domain.services.prices import price_on

logger = logging.getLogger(__name__)

TRAILING_WINDOW = 4


class TrailingStatementProvider(Protocol):
    def fetch_prices(self, symbol: str) -> PriceSeries: ...

    def fetch_trailing_statements(self, symbol: str) -> List[Statement]: ...


def calculate_valuation_metrics(
    *,
    date: date,
    close: Optional[float],
    shares_outstanding: Optional[float],
    diluted_shares_outstanding: Optional[float],
    net_income: Optional[float],
    free_cash_flow: Optional[float],
    stock_based_compensation: Optional[float],
    eps: Optional[float],
    total_cash: Optional[float] = None,
    total_debt: Optional[float] = None,
    total_revenue: Optional[float] = None,
    operating_income: Optional[float] = None,
) -> ValuationMetrics:
    """Shape one period's inputs into the full valuation metric set."""
    market_cap = _mul(close, shares_outstanding)
    diluted_market_cap = _mul(close, diluted_shares_outstanding)

    adjusted_fcf = None
    if free_cash_flow and stock_based_compensation:
        adjusted_fcf = free_cash_flow - stock_based_compensation

    return ValuationMetrics(
        date=date,
        close=close,
        shares_outstanding=shares_outstanding,
        diluted_shares_outstanding=diluted_shares_outstanding,
        market_cap=market_cap,
        diluted_market_cap=diluted_market_cap,
        net_income=net_income,
        free_cash_flow=free_cash_flow,
        stock_based_compensation=stock_based_compensation,
        eps=eps,
        pe=_div(close, eps),
        fcf_yield=_div(free_cash_flow, market_cap),
        fcf_yield_adjusted=_div(adjusted_fcf, diluted_market_cap),
        fcf_per_share=_div(free_cash_flow, shares_outstanding),
        fcf_per_share_adjusted=_div(adjusted_fcf, diluted_shares_outstanding),
        total_cash=total_cash,
        total_debt=total_debt,
        total_revenue=total_revenue,
        operating_income=operating_income,
    )


class TrailingStatisticsCalculator:
    """Aggregate the latest four quarters into one TTM valuation record."""

    def calculate(self, statements: Sequence[Statement], prices: PriceSeries) -> Optional[ValuationMetrics]:
        if len(statements) < TRAILING_WINDOW:
            return None

        window = _sort_by_date(statements)[-TRAILING_WINDOW:]
        last = window[-1]
        shares_outstanding = last.shares_outstanding
        if not shares_outstanding:
            raise MissingFieldError("shares_outstanding", "Shares outstanding not found")

        # EPS applies the latest share count to every quarter; not a weighted EPS.
        eps = _sum_present(
            s.net_income / shares_outstanding for s in window if s.net_income
        )

        return calculate_valuation_metrics(
            date=last.date,
            close=price_on(last.date, prices),
            shares_outstanding=shares_outstanding,
            diluted_shares_outstanding=last.diluted_average_shares or shares_outstanding,
            net_income=_sum_present(s.net_income for s in window),
            free_cash_flow=_sum_present(s.free_cash_flow for s in window),
            stock_based_compensation=_sum_present(s.stock_based_compensation for s in window),
            eps=eps,
            total_cash=last.total_cash,
            total_debt=last.total_debt,
            total_revenue=_sum_present(s.total_revenue for s in window),
            operating_income=_sum_present(s.operating_income for s in window),
        )


class GrowthCalculator:
    """Compound per-period growth of revenue and net income over four periods."""

    def calculate(self, statements: Sequence[Statement]) -> Optional[GrowthResult]:
        if len(statements) < TRAILING_WINDOW:
            return None

        window = _sort_by_date(statements)[-TRAILING_WINDOW:]
        first, last = window[0], window[-1]
        intervals = len(window) - 1
        return GrowthResult(
            revenue=_cagr(first.total_revenue, last.total_revenue, intervals),
            earnings=_cagr(first.net_income, last.net_income, intervals),
        )


def calculate_trailing_statistics(statements: Sequence[Statement], prices: PriceSeries) -> Optional[ValuationMetrics]:
    return TrailingStatisticsCalculator().calculate(statements, prices)


def calculate_growth(statements: Sequence[Statement]) -> Optional[GrowthResult]:
    return GrowthCalculator().calculate(statements)


def previous_window(statements: Sequence[Statement]) -> List[Statement]:
    """Quarterly window shifted back one period: drop the latest, keep the next four."""
    return _sort_by_date(statements)[:-1][-TRAILING_WINDOW:]


def select_latest_statement(statements: Sequence[Statement]) -> Optional[Statement]:
    if not statements:
        return None
    return _sort_by_date(statements)[-1]


def get_ttm_statistics(
    symbol: str,
    prices: PriceSeries,
    provider: TrailingStatementProvider,
    price_currency: Optional[str] = None,
    statement_currency: Optional[str] = None,
) -> Optional[ValuationMetrics]:
    """Valuation from the provider-reported trailing statement.

    Used when fewer than four quarterly statements exist. Returns ``None``
    when the provider has no trailing statement or when shares, net income or
    free cash flow is missing from it.
    """
    trailing = provider.fetch_trailing_statements(symbol)
    if needs_conversion(price_currency, statement_currency):
        trailing = convert_currency_in_statements(trailing, statement_currency, price_currency, provider)

    statement = select_latest_statement(trailing)
    if statement is None:
        logger.debug("%s >> no trailing statement reported", symbol)
        return None

    shares_outstanding = statement.shares_outstanding
    if not shares_outstanding or not statement.net_income or not statement.free_cash_flow:
        logger.debug("%s >> trailing statement lacks shares, net income or free cash flow", symbol)
        return None

    return calculate_valuation_metrics(
        date=statement.date,
        close=price_on(statement.date, prices),
        shares_outstanding=shares_outstanding,
        diluted_shares_outstanding=statement.diluted_average_shares or shares_outstanding,
        net_income=statement.net_income,
        free_cash_flow=statement.free_cash_flow,
        stock_based_compensation=statement.stock_based_compensation or 0.0,
        eps=statement.basic_eps,
        total_cash=statement.total_cash,
        total_debt=statement.total_debt,
        total_revenue=statement.total_revenue,
        operating_income=statement.operating_income,
    )


# ----------------------------
# Internal helpers
# ----------------------------

def _sort_by_date(statements: Iterable[Statement]) -> List[Statement]:
    return sorted(statements, key=lambda s: s.date)


def _sum_present(values: Iterable[Optional[float]]) -> Optional[float]:
    present = [v for v in values if v is not None]
    return float(sum(present)) if present else None


def _mul(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if not a or not b:
        return None
    return a * b


def _div(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    if not numerator or not denominator:
        return None
    return numerator / denominator


def _cagr(start: Optional[float], end: Optional[float], intervals: int) -> Optional[float]:
    # Undefined across a sign change or from a zero base.
    if start is None or end is None or start <= 0 or end <= 0 or intervals <= 0:
        return None
    return (end / start) ** (1.0 / intervals) - 1.0
