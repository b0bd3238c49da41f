"""Tabular export of symbol reports (wide and long CSV) and symbol list input."""
from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd

KEY_VALUE_COLUMNS = ["symbol", "key", "value"]


def flatten_record(record: Mapping[str, Any], *, prefix: str = "", sep: str = ".") -> Dict[str, Any]:
    """Flatten nested mappings into dotted-path keys.

    Lists are indexed (``earnings_dates.0``); empty mappings are kept as ``{}``
    so callers can decide whether to drop them.
    """
    flat: Dict[str, Any] = {}
    for key, value in record.items():
        path = f"{prefix}{sep}{key}" if prefix else str(key)
        if is_dataclass(value) and not isinstance(value, type):
            value = asdict(value)
        if isinstance(value, Mapping):
            if value:
                flat.update(flatten_record(value, prefix=path, sep=sep))
            else:
                flat[path] = {}
        elif isinstance(value, (list, tuple)):
            for idx, item in enumerate(value):
                flat.update(flatten_record({str(idx): item}, prefix=path, sep=sep))
        else:
            flat[path] = _scalar(value)
    return flat


def to_key_values(records: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Long-format (symbol, key, value) rows without null/empty values, sorted by symbol."""
    rows: List[Dict[str, Any]] = []
    for record in records:
        flat = flatten_record(record)
        symbol = flat.get("symbol")
        for key, value in flat.items():
            if _is_blank(value):
                continue
            rows.append({"symbol": symbol, "key": key, "value": value})
    # Stable sort keeps each symbol's keys in report order.
    return sorted(rows, key=lambda row: str(row["symbol"]))


def write_key_values_csv(records: Iterable[Mapping[str, Any]], path: Path) -> int:
    rows = to_key_values(records)
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows, columns=KEY_VALUE_COLUMNS).to_csv(path, index=False)
    return len(rows)


def write_wide_csv(records: Iterable[Mapping[str, Any]], path: Path) -> int:
    flattened = [flatten_record(r) for r in records]
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = pd.DataFrame(flattened)
    frame.to_csv(path, index=False)
    return len(frame)


def read_symbols(path: Path) -> List[str]:
    """Read the ``symbol`` column of a CSV, skipping blank entries."""
    frame = pd.read_csv(path, dtype=str, skip_blank_lines=True)
    if "symbol" not in frame.columns:
        raise ValueError(f"{path} has no 'symbol' column")
    symbols = frame["symbol"].dropna().str.strip()
    return [s for s in symbols.tolist() if s]


def _scalar(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def _is_blank(value: Any) -> bool:
    if value is None or value == "":
        return True
    return isinstance(value, Mapping) and not value
