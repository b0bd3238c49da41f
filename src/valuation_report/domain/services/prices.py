"""Point-in-time lookups over daily price series."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import pandas as pd

from valuation_report.domain.errors import DateOutOfRangeError
from valuation_report.domain.models.financials import PriceSeries


def as_calendar_date(value) -> date:
    """Truncate datetimes and pandas timestamps to their calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.to_datetime(value).date()


def price_on(target, prices: PriceSeries) -> float:
    """Close of the latest point dated on or before ``target``.

    Raises :class:`DateOutOfRangeError` when ``target`` precedes the series or
    the series is empty. Among points sharing a date the last one inserted wins.
    """
    day = as_calendar_date(target)
    frame = _frame(prices)
    if frame.empty:
        raise DateOutOfRangeError(day)

    earliest = frame["date"].iloc[0]
    if pd.Timestamp(day) < earliest:
        raise DateOutOfRangeError(day, earliest.date())

    eligible = frame[frame["date"] <= pd.Timestamp(day)]
    return float(eligible["close"].iloc[-1])


def latest_close(prices: PriceSeries) -> Optional[float]:
    """Close of the most recent point, or ``None`` for an empty series."""
    frame = _frame(prices)
    if frame.empty:
        return None
    return float(frame["close"].iloc[-1])


def _frame(prices: PriceSeries) -> pd.DataFrame:
    if not prices:
        return pd.DataFrame(columns=["date", "close"])
    df = pd.DataFrame(
        {
            "date": pd.to_datetime([as_calendar_date(p.date) for p in prices]),
            "close": [p.close for p in prices],
        }
    )
    # Stable sort keeps insertion order within a day so keep="last" is the latest insert.
    df = df.sort_values("date", kind="mergesort")
    df = df.drop_duplicates(subset="date", keep="last").reset_index(drop=True)
    return df
