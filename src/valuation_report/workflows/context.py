"""Workflow dependency container."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from valuation_report.domain.models.financials import PriceSeries, Statement
from valuation_report.domain.services.calculations import GrowthCalculator, TrailingStatisticsCalculator
from valuation_report.infrastructure.db.sqlite import SQLiteRepository
from valuation_report.settings.config import Config


class MarketDataProvider(Protocol):
    """Data-provider contract consumed by the workflow nodes."""

    def fetch_prices(self, symbol: str) -> PriceSeries: ...

    def fetch_summary(self, symbol: str) -> Dict[str, Any]: ...

    def fetch_quarterly_statements(self, symbol: str) -> List[Statement]: ...

    def fetch_annual_statements(self, symbol: str) -> List[Statement]: ...

    def fetch_trailing_statements(self, symbol: str) -> List[Statement]: ...


@dataclass
class WorkflowContext:
    """Holds dependencies shared by LangGraph nodes."""

    config: Config
    provider: MarketDataProvider
    trailing_calculator: TrailingStatisticsCalculator
    growth_calculator: GrowthCalculator
    repository: Optional[SQLiteRepository] = None

    def close(self) -> None:
        """Release any dependencies that need explicit cleanup."""
        if self.repository is not None:
            self.repository.close()
