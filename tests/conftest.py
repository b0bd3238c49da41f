from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import pytest

from valuation_report.domain.models.financials import PeriodType, PricePoint, Statement
from valuation_report.infrastructure.data_providers.yahoo_client import build_summary


def daily_prices(start: date, end: date, close: float = 20.0) -> List[PricePoint]:
    days = (end - start).days + 1
    return [PricePoint(date=start + timedelta(days=i), close=close) for i in range(days)]


def quarter(day: date, **values: Any) -> Statement:
    return Statement(date=day, period_type=PeriodType.QUARTERLY, **values)


QUARTER_ENDS = [
    date(2023, 3, 31),
    date(2023, 6, 30),
    date(2023, 9, 30),
    date(2023, 12, 31),
    date(2024, 3, 31),
]


class FakeProvider:
    """In-memory market data provider recording every call."""

    def __init__(
        self,
        *,
        info: Optional[Dict[str, Any]] = None,
        prices: Optional[Dict[str, List[PricePoint]]] = None,
        quarterly: Optional[List[Statement]] = None,
        annual: Optional[List[Statement]] = None,
        trailing: Optional[List[Statement]] = None,
        earnings_estimate=None,
        revenue_estimate=None,
    ) -> None:
        self.info = info or {}
        self.prices = prices or {}
        self.quarterly = quarterly or []
        self.annual = annual or []
        self.trailing = trailing or []
        self.earnings_estimate = earnings_estimate
        self.revenue_estimate = revenue_estimate
        self.calls: List[str] = []

    def fetch_summary(self, symbol: str) -> Dict[str, Any]:
        self.calls.append(f"fetch_summary:{symbol}")
        return build_summary(self.info, self.earnings_estimate, self.revenue_estimate)

    def fetch_prices(self, symbol: str) -> List[PricePoint]:
        self.calls.append(f"fetch_prices:{symbol}")
        return list(self.prices.get(symbol, []))

    def fetch_quarterly_statements(self, symbol: str) -> List[Statement]:
        self.calls.append(f"fetch_quarterly_statements:{symbol}")
        return list(self.quarterly)

    def fetch_annual_statements(self, symbol: str) -> List[Statement]:
        self.calls.append(f"fetch_annual_statements:{symbol}")
        return list(self.annual)

    def fetch_trailing_statements(self, symbol: str) -> List[Statement]:
        self.calls.append(f"fetch_trailing_statements:{symbol}")
        return list(self.trailing)


@pytest.fixture
def equity_info() -> Dict[str, Any]:
    return {
        "longName": "Test Corp",
        "quoteType": "EQUITY",
        "currency": "USD",
        "financialCurrency": "USD",
        "regularMarketPrice": 25.0,
        "sharesOutstanding": 1000.0,
        "beta": 1.2,
        "trailingEps": 0.4,
        "forwardEps": 0.5,
        "trailingPE": 60.0,
        "forwardPE": 50.0,
        "fiftyTwoWeekLow": 10.0,
        "fiftyTwoWeekHigh": 30.0,
        "earningsGrowth": 0.05,
        "revenueGrowth": 0.07,
        "earningsQuarterlyGrowth": 0.03,
        "firstTradeDateEpochUtc": 345479400,
    }


@pytest.fixture
def quarterly_statements() -> List[Statement]:
    return [
        quarter(
            day,
            basic_average_shares=1000.0,
            diluted_average_shares=1100.0,
            net_income=100.0,
            free_cash_flow=50.0,
            stock_based_compensation=10.0,
            total_revenue=500.0,
            operating_income=150.0,
        )
        for day in QUARTER_ENDS
    ]


@pytest.fixture
def annual_statements() -> List[Statement]:
    revenues = [1000.0, 1100.0, 1210.0, 1331.0]
    return [
        Statement(
            date=date(2020 + i, 12, 31),
            period_type=PeriodType.ANNUAL,
            total_revenue=revenue,
            net_income=revenue / 10,
        )
        for i, revenue in enumerate(revenues)
    ]


@pytest.fixture
def flat_prices() -> List[PricePoint]:
    return daily_prices(date(2022, 12, 1), date(2024, 4, 30))


@pytest.fixture
def make_provider():
    return FakeProvider
