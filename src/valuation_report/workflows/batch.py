"""Bounded-parallel batch runner over many symbols."""
from __future__ import annotations

import logging
import random
from concurrent.futures import ThreadPoolExecutor, as_completed
from threading import Lock
from typing import List, Optional, Protocol, Sequence

from valuation_report.domain.models.financials import SymbolOutcome

logger = logging.getLogger(__name__)


class SymbolReporter(Protocol):
    def report(self, symbol: str) -> dict: ...


def run_batch(
    workflow: SymbolReporter,
    symbols: Sequence[str],
    parallelism: int = 3,
    *,
    shuffle: bool = False,
    rng: Optional[random.Random] = None,
) -> List[SymbolOutcome]:
    """Build a report for every symbol with at most ``parallelism`` in flight.

    A failing symbol is recorded on its :class:`SymbolOutcome` and never
    cancels the others. Outcomes come back in processing order (the input
    order, or the shuffled order when ``shuffle`` is set) once all symbols
    have finished.
    """
    ordered = list(symbols)
    if shuffle:
        (rng or random).shuffle(ordered)

    total = len(ordered)
    if total == 0:
        return []

    outcomes: List[Optional[SymbolOutcome]] = [None] * total
    progress = {"done": 0}
    progress_lock = Lock()

    def _one(symbol: str) -> SymbolOutcome:
        try:
            return SymbolOutcome(symbol=symbol, report=workflow.report(symbol))
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("%s >> failed: %s", symbol, exc)
            logger.debug("%s >> traceback", symbol, exc_info=True)
            return SymbolOutcome(symbol=symbol, error=f"{type(exc).__name__}: {exc}")
        finally:
            with progress_lock:
                progress["done"] += 1
                logger.info("%s >> done (%d/%d)", symbol, progress["done"], total)

    with ThreadPoolExecutor(max_workers=max(parallelism, 1)) as executor:
        futures = {executor.submit(_one, symbol): idx for idx, symbol in enumerate(ordered)}
        for future in as_completed(futures):
            outcomes[futures[future]] = future.result()

    return [o for o in outcomes if o is not None]
