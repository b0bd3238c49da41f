from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from valuation_report.domain.models.financials import GrowthResult
from valuation_report.reports.export import (
    flatten_record,
    read_symbols,
    to_key_values,
    write_key_values_csv,
    write_wide_csv,
)


def _record(symbol, **extra):
    record = {
        "symbol": symbol,
        "info": {"name": f"{symbol} Inc", "listing_date": date(2001, 5, 4), "earnings_date": None},
        "valuation": {"trailing_pe": 12.5, "forward_pe": ""},
        "growth": GrowthResult(revenue=0.1, earnings=None),
        "growth_estimates": {},
    }
    record.update(extra)
    return record


def test_flatten_record_dotted_keys():
    flat = flatten_record(_record("AAA", dates=[date(2024, 1, 1)]))
    assert flat["info.name"] == "AAA Inc"
    assert flat["info.listing_date"] == "2001-05-04"
    assert flat["growth.revenue"] == 0.1
    assert flat["growth_estimates"] == {}
    assert flat["dates.0"] == "2024-01-01"


def test_key_values_drop_blank_and_sort_by_symbol():
    rows = to_key_values([_record("ZZZ"), _record("AAA")])

    assert [r["symbol"] for r in rows][:1] == ["AAA"]
    assert all(r["symbol"] in ("AAA", "ZZZ") for r in rows)
    keys = {r["key"] for r in rows}
    assert "info.earnings_date" not in keys
    assert "valuation.forward_pe" not in keys
    assert "growth.earnings" not in keys
    assert "growth_estimates" not in keys
    assert "valuation.trailing_pe" in keys
    # Report order within a symbol is preserved.
    aaa_keys = [r["key"] for r in rows if r["symbol"] == "AAA"]
    assert aaa_keys[0] == "symbol"
    assert aaa_keys[1] == "info.name"


def test_zero_values_are_kept():
    rows = to_key_values([{"symbol": "AAA", "growth": {"revenue": 0.0}}])
    assert {"symbol": "AAA", "key": "growth.revenue", "value": 0.0} in rows


def test_write_csvs(tmp_path):
    records = [_record("BBB"), _record("AAA")]
    long_path = tmp_path / "out" / "report.csv"
    wide_path = tmp_path / "out" / "wide.csv"

    count = write_key_values_csv(records, long_path)
    write_wide_csv(records, wide_path)

    long_frame = pd.read_csv(long_path)
    assert list(long_frame.columns) == ["symbol", "key", "value"]
    assert len(long_frame) == count
    assert long_frame["symbol"].iloc[0] == "AAA"

    wide_frame = pd.read_csv(wide_path)
    assert len(wide_frame) == 2
    assert "valuation.trailing_pe" in wide_frame.columns


def test_read_symbols(tmp_path):
    path = tmp_path / "symbols.csv"
    path.write_text("symbol\nAAPL\n\nMSFT\n 7203.T \n", encoding="utf-8")
    assert read_symbols(path) == ["AAPL", "MSFT", "7203.T"]


def test_read_symbols_requires_column(tmp_path):
    path = tmp_path / "symbols.csv"
    path.write_text("ticker\nAAPL\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_symbols(path)
