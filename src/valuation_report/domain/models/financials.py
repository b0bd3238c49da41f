"""Domain models describing the financial data exchanged between services."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


class PeriodType(str, Enum):
    """Reporting frequency of a statement series."""

    QUARTERLY = "QUARTERLY"
    ANNUAL = "ANNUAL"
    TRAILING = "TRAILING"


@dataclass(frozen=True)
class PricePoint:
    """Daily close for an instrument or an FX pair."""

    date: date
    close: float


PriceSeries = List[PricePoint]


# Numeric statement fields that carry a currency. Anything not listed here is
# copied verbatim by the currency normalizer.
MONETARY_FIELDS = (
    "total_revenue",
    "gross_profit",
    "operating_income",
    "ebitda",
    "net_income",
    "basic_eps",
    "diluted_eps",
    "operating_cash_flow",
    "capital_expenditure",
    "free_cash_flow",
    "stock_based_compensation",
    "cash_and_cash_equivalents",
    "cash_cash_equivalents_and_short_term_investments",
    "total_debt",
)

@dataclass(frozen=True)
class Statement:
    """One reported period of line items for a single instrument."""

    date: date
    period_type: PeriodType
    # Identifying / non-monetary
    basic_average_shares: Optional[float] = None
    diluted_average_shares: Optional[float] = None
    ordinary_shares_number: Optional[float] = None
    share_issued: Optional[float] = None
    tax_rate_for_calcs: Optional[float] = None
    # Income statement
    total_revenue: Optional[float] = None
    gross_profit: Optional[float] = None
    operating_income: Optional[float] = None
    ebitda: Optional[float] = None
    net_income: Optional[float] = None
    basic_eps: Optional[float] = None
    diluted_eps: Optional[float] = None
    # Cash flow
    operating_cash_flow: Optional[float] = None
    capital_expenditure: Optional[float] = None
    free_cash_flow: Optional[float] = None
    stock_based_compensation: Optional[float] = None
    # Balance sheet
    cash_and_cash_equivalents: Optional[float] = None
    cash_cash_equivalents_and_short_term_investments: Optional[float] = None
    total_debt: Optional[float] = None

    @property
    def shares_outstanding(self) -> Optional[float]:
        """Basic average shares, falling back to ordinary shares; zero counts as missing."""
        return self.basic_average_shares or self.ordinary_shares_number or None

    @property
    def total_cash(self) -> Optional[float]:
        return self.cash_cash_equivalents_and_short_term_investments or self.cash_and_cash_equivalents

    def monetary_values(self) -> Dict[str, Optional[float]]:
        return {name: getattr(self, name) for name in MONETARY_FIELDS}


@dataclass
class ValuationMetrics:
    """Valuation snapshot for one aggregated period (TTM window or trailing statement)."""

    date: date
    close: Optional[float]
    shares_outstanding: Optional[float]
    diluted_shares_outstanding: Optional[float]
    market_cap: Optional[float]
    diluted_market_cap: Optional[float]
    net_income: Optional[float]
    free_cash_flow: Optional[float]
    stock_based_compensation: Optional[float]
    eps: Optional[float]
    pe: Optional[float]
    fcf_yield: Optional[float]
    fcf_yield_adjusted: Optional[float]
    fcf_per_share: Optional[float]
    fcf_per_share_adjusted: Optional[float]
    total_cash: Optional[float] = None
    total_debt: Optional[float] = None
    total_revenue: Optional[float] = None
    operating_income: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GrowthResult:
    """Compound per-period growth across a four-period window."""

    revenue: Optional[float]
    earnings: Optional[float]


@dataclass
class SymbolOutcome:
    """Result of one symbol's pipeline inside a batch run."""

    symbol: str
    report: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
