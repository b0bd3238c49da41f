"""Currency normalization of statement line items."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Protocol, Sequence, TypeVar

from valuation_report.domain.models.financials import PriceSeries, Statement
from valuation_report.domain.services.prices import price_on

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Statement)


class PriceProvider(Protocol):
    def fetch_prices(self, symbol: str) -> PriceSeries: ...


def fx_pair_symbol(from_currency: str, to_currency: str) -> str:
    """Yahoo-style FX ticker, e.g. ``EURUSD=X``."""
    return f"{from_currency.upper()}{to_currency.upper()}=X"


def needs_conversion(price_currency: Optional[str], statement_currency: Optional[str]) -> bool:
    return bool(price_currency and statement_currency and price_currency != statement_currency)


def convert_statement(statement: S, rate: float) -> S:
    """Return a copy of ``statement`` with every monetary field scaled by ``rate``."""
    changes = {
        name: value * rate
        for name, value in statement.monetary_values().items()
        if value is not None
    }
    return replace(statement, **changes)


def convert_currency_in_statements(
    statements: Sequence[S],
    from_currency: str,
    to_currency: str,
    provider: PriceProvider,
) -> List[S]:
    """Re-express monetary fields of ``statements`` in ``to_currency``.

    Each statement uses the FX close on or before its own period-end date.
    The input objects are left untouched. Converting an already converted
    series again applies the rate twice, so callers convert once per series.
    """
    if from_currency == to_currency:
        return list(statements)
    if not statements:
        return []

    pair = fx_pair_symbol(from_currency, to_currency)
    rates = provider.fetch_prices(pair)
    logger.debug("Converting %d statements via %s (%d rate points)", len(statements), pair, len(rates))

    converted: List[S] = []
    for statement in statements:
        rate = price_on(statement.date, rates)
        converted.append(convert_statement(statement, rate))
    return converted

