"""Thin wrapper around yfinance with project defaults."""
from __future__ import annotations

import json
import logging
import math
import time
from concurrent.futures import Future
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Iterable, List, Optional

import pandas as pd
import yfinance as yf
from yfinance.exceptions import YFRateLimitError

from valuation_report.domain.models.financials import PeriodType, PricePoint, PriceSeries, Statement

logger = logging.getLogger(__name__)

SUMMARY_ESTIMATE_PERIODS = ("0q", "+1q", "0y", "+1y")

# Ticker attributes exported by ``fetch_summary_all_modules``.
ALL_MODULE_ATTRIBUTES = (
    "info",
    "calendar",
    "earnings_estimate",
    "revenue_estimate",
    "earnings_history",
    "eps_trend",
    "growth_estimates",
    "recommendations",
    "upgrades_downgrades",
    "major_holders",
    "institutional_holders",
    "mutualfund_holders",
    "insider_transactions",
    "insider_roster_holders",
    "sec_filings",
)

# Statement field -> Yahoo row names, first present wins.
STATEMENT_FIELD_MAP: Dict[str, List[str]] = {
    "total_revenue": ["TotalRevenue", "OperatingRevenue"],
    "gross_profit": ["GrossProfit"],
    "operating_income": ["OperatingIncome", "TotalOperatingIncomeAsReported"],
    "ebitda": ["EBITDA", "NormalizedEBITDA"],
    "net_income": ["NetIncome", "NetIncomeCommonStockholders"],
    "basic_eps": ["BasicEPS"],
    "diluted_eps": ["DilutedEPS"],
    "basic_average_shares": ["BasicAverageShares"],
    "diluted_average_shares": ["DilutedAverageShares"],
    "tax_rate_for_calcs": ["TaxRateForCalcs"],
    "operating_cash_flow": ["OperatingCashFlow", "CashFlowFromContinuingOperatingActivities"],
    "capital_expenditure": ["CapitalExpenditure"],
    "free_cash_flow": ["FreeCashFlow"],
    "stock_based_compensation": ["StockBasedCompensation"],
    "cash_and_cash_equivalents": ["CashAndCashEquivalents"],
    "cash_cash_equivalents_and_short_term_investments": ["CashCashEquivalentsAndShortTermInvestments"],
    "total_debt": ["TotalDebt"],
    "ordinary_shares_number": ["OrdinarySharesNumber"],
    "share_issued": ["ShareIssued"],
}

_FREQUENCIES = {
    PeriodType.QUARTERLY: "quarterly",
    PeriodType.ANNUAL: "yearly",
    PeriodType.TRAILING: "trailing",
}


class YahooFinanceClient:
    """Encapsulate yfinance access, retries, and price memoization."""

    def __init__(
        self,
        *,
        max_retries: int = 5,
        retry_delay: float = 2.0,
        price_lookback_days: int = 1857,
        quarterly_lookback_days: int = 730,
        annual_lookback_days: int = 1826,
        payload_dir: Optional[Path] = None,
        verbose: bool = False,
        ticker_factory: Callable[[str], Any] = yf.Ticker,
    ) -> None:
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._price_lookback_days = price_lookback_days
        self._quarterly_lookback_days = quarterly_lookback_days
        self._annual_lookback_days = annual_lookback_days
        self._payload_dir = payload_dir
        self._ticker_factory = ticker_factory
        self._price_cache: Dict[str, Future] = {}
        self._price_lock = Lock()
        if not verbose:
            logging.getLogger("yfinance").setLevel(logging.CRITICAL)

    # ------------------
    # Public API helpers
    # ------------------
    def fetch_prices(self, symbol: str) -> PriceSeries:
        """Daily closes for a ticker or FX pair, memoized per symbol for the process lifetime."""
        with self._price_lock:
            future = self._price_cache.get(symbol)
            owner = future is None
            if owner:
                future = Future()
                self._price_cache[symbol] = future
        if not owner:
            return future.result()

        try:
            prices = self._call_with_retry(lambda: self._download_prices(symbol), symbol, "fetch_prices")
        except BaseException as exc:
            with self._price_lock:
                self._price_cache.pop(symbol, None)
            future.set_exception(exc)
            raise
        future.set_result(prices)
        return prices

    def fetch_summary(self, symbol: str) -> Dict[str, Any]:
        """Quote and point estimates arranged by Yahoo quote-summary module."""
        ticker = self._ticker_factory(symbol)
        info = self._call_with_retry(lambda: ticker.info, symbol, "fetch_summary") or {}
        earnings = self._call_with_retry(lambda: ticker.earnings_estimate, symbol, "fetch_summary")
        revenue = self._call_with_retry(lambda: ticker.revenue_estimate, symbol, "fetch_summary")
        summary = build_summary(info, earnings, revenue)
        self._save_payload(symbol, "quoteSummary", summary)
        return summary

    def fetch_summary_all_modules(self, symbol: str) -> Dict[str, Any]:
        """Every data set the provider exposes for ``symbol``; unavailable ones map to ``None``."""
        ticker = self._ticker_factory(symbol)
        payload: Dict[str, Any] = {}
        for attribute in ALL_MODULE_ATTRIBUTES:
            try:
                value = self._call_with_retry(
                    lambda attr=attribute: getattr(ticker, attr), symbol, "fetch_summary_all_modules"
                )
            except Exception as exc:  # pylint: disable=broad-except
                logger.debug("%s >> %s unavailable: %s", symbol, attribute, exc)
                value = None
            payload[attribute] = to_jsonable(value)
        self._save_payload(symbol, "quoteSummaryAllModules", payload)
        return payload

    def fetch_quarterly_statements(self, symbol: str) -> List[Statement]:
        return self._fetch_statements(symbol, PeriodType.QUARTERLY, self._quarterly_lookback_days)

    def fetch_annual_statements(self, symbol: str) -> List[Statement]:
        return self._fetch_statements(symbol, PeriodType.ANNUAL, self._annual_lookback_days)

    def fetch_trailing_statements(self, symbol: str) -> List[Statement]:
        return self._fetch_statements(symbol, PeriodType.TRAILING, self._quarterly_lookback_days)

    # -----------------
    # Internal helpers
    # -----------------
    def _download_prices(self, symbol: str) -> PriceSeries:
        today = date.today()
        start = today - timedelta(days=self._price_lookback_days)
        ticker = self._ticker_factory(symbol)
        frame = ticker.history(
            start=start.strftime("%Y-%m-%d"),
            end=(today + timedelta(days=1)).strftime("%Y-%m-%d"),
            interval="1d",
            auto_adjust=False,
        )
        prices = prices_from_history(frame)
        logger.debug("%s >> fetched %d daily closes", symbol, len(prices))
        return prices

    def _fetch_statements(self, symbol: str, period_type: PeriodType, lookback_days: int) -> List[Statement]:
        freq = _FREQUENCIES[period_type]
        ticker = self._ticker_factory(symbol)
        method = f"fetch_{freq}_statements"

        frames = [
            self._call_with_retry(lambda: ticker.get_income_stmt(pretty=False, freq=freq), symbol, method),
            self._call_with_retry(lambda: ticker.get_cash_flow(pretty=False, freq=freq), symbol, method),
        ]
        # Yahoo publishes no trailing balance sheet.
        if period_type is not PeriodType.TRAILING:
            frames.append(
                self._call_with_retry(lambda: ticker.get_balance_sheet(pretty=False, freq=freq), symbol, method)
            )
        self._save_payload(symbol, f"{freq}Statements", [to_jsonable(f) for f in frames])

        since = date.today() - timedelta(days=lookback_days)
        statements = [s for s in statements_from_frames(frames, period_type) if s.date >= since]
        logger.debug("%s >> %d %s statements", symbol, len(statements), freq)
        return statements

    def _call_with_retry(self, func: Callable[[], Any], symbol: str, method_name: str) -> Any:
        delay = self._retry_delay
        for attempt in range(self._max_retries + 1):
            try:
                return func()
            except Exception as exc:  # pylint: disable=broad-except
                if attempt >= self._max_retries or not is_rate_limited(exc):
                    raise
                logger.warning("%s >> %s >> Rate limited. Retrying in %.1fs...", symbol, method_name, delay)
                time.sleep(delay)
                delay *= 2
        raise RuntimeError(f"{method_name} failed for {symbol} without exception")

    def _save_payload(self, symbol: str, kind: str, payload: Any) -> None:
        if self._payload_dir is None:
            return
        self._payload_dir.mkdir(parents=True, exist_ok=True)
        target = self._payload_dir / f"{symbol}-{kind}.json"
        target.write_text(json.dumps(to_jsonable(payload), indent=4, default=str), encoding="utf-8")


# -----------------
# Normalization
# -----------------

def is_rate_limited(exc: BaseException) -> bool:
    if isinstance(exc, YFRateLimitError):
        return True
    if getattr(exc, "code", None) == 429 or getattr(exc, "status_code", None) == 429:
        return True
    return "Too Many Requests" in str(exc)


def prices_from_history(frame: Optional[pd.DataFrame]) -> PriceSeries:
    if frame is None or frame.empty or "Close" not in frame.columns:
        return []
    closes = frame["Close"].dropna()
    return [PricePoint(date=pd.Timestamp(ts).date(), close=float(value)) for ts, value in closes.items()]


def statements_from_frames(frames: Iterable[Optional[pd.DataFrame]], period_type: PeriodType) -> List[Statement]:
    """Merge Yahoo statement frames (rows = line items, columns = period ends) into Statements."""
    merged: Optional[pd.DataFrame] = None
    for frame in frames:
        if frame is None or frame.empty:
            continue
        by_period = frame.T
        merged = by_period if merged is None else merged.combine_first(by_period)
    if merged is None:
        return []

    statements: List[Statement] = []
    for period_end, row in merged.iterrows():
        values: Dict[str, float] = {}
        for canonical, candidates in STATEMENT_FIELD_MAP.items():
            value = _first_present(row, candidates)
            if value is not None:
                values[canonical] = value
        if not values:
            continue
        # Derived FCF when possible; Yahoo reports capex as a negative outflow.
        if "free_cash_flow" not in values:
            ocf = values.get("operating_cash_flow")
            capex = values.get("capital_expenditure")
            if ocf is not None and capex is not None:
                values["free_cash_flow"] = ocf + capex
        statements.append(Statement(date=pd.Timestamp(period_end).date(), period_type=period_type, **values))
    return sorted(statements, key=lambda s: s.date)


def build_summary(
    info: Dict[str, Any],
    earnings_estimate: Optional[pd.DataFrame] = None,
    revenue_estimate: Optional[pd.DataFrame] = None,
) -> Dict[str, Any]:
    """Arrange flat ``Ticker.info`` fields into Yahoo quote-summary modules."""
    listing_epoch = info.get("firstTradeDateEpochUtc")
    if listing_epoch is None and info.get("firstTradeDateMilliseconds") is not None:
        listing_epoch = info["firstTradeDateMilliseconds"] / 1000.0
    earnings_ts = info.get("earningsTimestamp") or info.get("earningsTimestampStart")

    end_dates = estimate_end_dates(info)
    trend = []
    for period in SUMMARY_ESTIMATE_PERIODS:
        earnings_row = _estimate_row(earnings_estimate, period)
        revenue_row = _estimate_row(revenue_estimate, period)
        if earnings_row is None and revenue_row is None:
            continue
        trend.append(
            {
                "period": period,
                "endDate": end_dates.get(period),
                "earningsEstimate": earnings_row or {},
                "revenueEstimate": revenue_row or {},
            }
        )

    return {
        "price": {
            "longName": info.get("longName") or info.get("shortName"),
            "quoteType": info.get("quoteType"),
            "currency": info.get("currency"),
            "regularMarketPrice": info.get("regularMarketPrice") or info.get("currentPrice"),
        },
        "quoteType": {
            "quoteType": info.get("quoteType"),
            "firstTradeDateEpochUtc": _epoch_to_datetime(listing_epoch),
        },
        "defaultKeyStatistics": {
            "sharesOutstanding": info.get("sharesOutstanding"),
            "beta": info.get("beta"),
            "trailingEps": info.get("trailingEps"),
            "forwardEps": info.get("forwardEps"),
            "earningsQuarterlyGrowth": info.get("earningsQuarterlyGrowth"),
        },
        "financialData": {
            "financialCurrency": info.get("financialCurrency"),
            "earningsGrowth": info.get("earningsGrowth"),
            "revenueGrowth": info.get("revenueGrowth"),
        },
        "earnings": {
            "earningsChart": {
                "earningsDate": [_epoch_to_datetime(earnings_ts)] if earnings_ts else [],
            }
        },
        "earningsTrend": {"trend": trend},
        "summaryDetail": {
            "fiftyTwoWeekLow": info.get("fiftyTwoWeekLow"),
            "fiftyTwoWeekHigh": info.get("fiftyTwoWeekHigh"),
            "trailingPE": info.get("trailingPE"),
            "forwardPE": info.get("forwardPE"),
            "priceToSalesTrailing12Months": info.get("priceToSalesTrailing12Months"),
        },
    }


def to_jsonable(value: Any) -> Any:
    """Convert provider payloads (frames, timestamps, numpy scalars) into JSON-safe values."""
    if isinstance(value, pd.DataFrame):
        return json.loads(value.to_json(orient="split", date_format="iso"))
    if isinstance(value, pd.Series):
        return json.loads(value.to_json(date_format="iso"))
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and math.isnan(value):
        return None
    if hasattr(value, "item"):
        return value.item()
    return value


def _first_present(row: pd.Series, candidates: Iterable[str]) -> Optional[float]:
    for key in candidates:
        if key in row and pd.notna(row[key]):
            return float(row[key])
    return None


def _estimate_row(frame: Optional[pd.DataFrame], period: str) -> Optional[Dict[str, Any]]:
    if frame is None or frame.empty or period not in frame.index:
        return None
    row = frame.loc[period]
    return {
        "growth": _optional_float(row.get("growth")),
        "numberOfAnalysts": _optional_float(row.get("numberOfAnalysts")),
    }


def _optional_float(value: Any) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _epoch_to_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def estimate_end_dates(info: Dict[str, Any]) -> Dict[str, Optional[date]]:
    """Period-end dates of the ``0q``/``+1q``/``0y``/``+1y`` estimates.

    Quarters roll forward from ``mostRecentQuarter``, years from
    ``nextFiscalYearEnd``. Periods whose anchor is missing map to ``None``.
    """
    last_quarter = _epoch_to_datetime(info.get("mostRecentQuarter"))
    fiscal_year_end = _epoch_to_datetime(info.get("nextFiscalYearEnd"))
    return {
        "0q": _shift_months(last_quarter, 3),
        "+1q": _shift_months(last_quarter, 6),
        "0y": _shift_months(fiscal_year_end, 0),
        "+1y": _shift_months(fiscal_year_end, 12),
    }


def _shift_months(anchor: Optional[datetime], months: int) -> Optional[date]:
    if anchor is None:
        return None
    start = pd.Timestamp(anchor.date())
    shifted = start + pd.DateOffset(months=months)
    # Keep month-end anchors on the month end (Sep 30 + 3 months is Dec 31).
    if start.is_month_end:
        shifted = shifted + pd.offsets.MonthEnd(0)
    return shifted.date()
