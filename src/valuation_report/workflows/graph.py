"""LangGraph workflow assembly for the per-symbol valuation report."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from langgraph.graph import END, StateGraph

from valuation_report.domain.services.calculations import GrowthCalculator, TrailingStatisticsCalculator
from valuation_report.infrastructure.data_providers.yahoo_client import YahooFinanceClient
from valuation_report.infrastructure.db.sqlite import SQLiteRepository
from valuation_report.reports.export import to_key_values
from valuation_report.settings.config import Config
from valuation_report.workflows import context as context_module
from valuation_report.workflows.blueprint import StageSpec, build_default_stages
from valuation_report.workflows.state import ReportState

logger = logging.getLogger(__name__)


class ReportWorkflow:
    """Compose LangGraph nodes into a runnable workflow."""

    def __init__(
        self,
        config: Config,
        provider: Optional[context_module.MarketDataProvider] = None,
        repository: Optional[SQLiteRepository] = None,
    ) -> None:
        self._config = config
        self._context = self._build_context(provider, repository)
        self._stages: List[StageSpec] = build_default_stages()
        self._graph = self._build_graph()

    @property
    def context(self) -> context_module.WorkflowContext:
        return self._context

    def _build_context(
        self,
        provider: Optional[context_module.MarketDataProvider],
        repository: Optional[SQLiteRepository],
    ) -> context_module.WorkflowContext:
        if provider is None:
            provider = YahooFinanceClient(
                max_retries=self._config.provider_max_retries,
                retry_delay=self._config.provider_retry_delay,
                price_lookback_days=self._config.price_lookback_days,
                payload_dir=self._config.payload_dir if self._config.save_payloads else None,
                verbose=self._config.provider_verbose,
            )
        return context_module.WorkflowContext(
            config=self._config,
            provider=provider,
            trailing_calculator=TrailingStatisticsCalculator(),
            growth_calculator=GrowthCalculator(),
            repository=repository,
        )

    def _build_graph(self):
        builder = StateGraph(dict)

        if not self._stages:
            raise RuntimeError("Workflow blueprint is empty; cannot build LangGraph.")

        for stage in self._stages:
            builder.add_node(stage.key, self._wrap(stage.handler))

        # Serialize execution in declared stage order to avoid concurrent state writes.
        builder.set_entry_point(self._stages[0].key)
        for current, nxt in zip(self._stages, self._stages[1:]):
            builder.add_edge(current.key, nxt.key)
        builder.add_edge(self._stages[-1].key, END)

        return builder.compile(checkpointer=None)

    def _wrap(self, func: Callable[[ReportState, context_module.WorkflowContext], ReportState]):
        def wrapper(state: Dict[str, Any]) -> Dict[str, Any]:
            return func(state, self._context)

        return wrapper

    def run(self, symbol: str) -> ReportState:
        """Execute the workflow for a single symbol.

        Provider failures and :class:`DateOutOfRangeError` propagate to the
        caller; the batch runner records them per symbol.
        """
        initial_state: ReportState = {
            "symbol": symbol,
            "report_date": datetime.now(timezone.utc).date().isoformat(),
            "logs": [],
            "errors": [],
            "stage_order": [stage.key for stage in self._stages],
        }
        result: ReportState = self._graph.invoke(initial_state)
        return result  # type: ignore[return-value]

    def report(self, symbol: str) -> Dict[str, Any]:
        """Run the workflow and return only the assembled report record."""
        state = self.run(symbol)
        return state.get("report") or {}

    def persist_state(self, state: ReportState, path: Path) -> None:
        """Serialize the workflow state to disk for debugging or auditing."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state, default=_json_serializer, indent=2, ensure_ascii=False)
        path.write_text(payload, encoding="utf-8")

    def persist_key_values(self, records: Iterable[Mapping[str, Any]]) -> int:
        """Store long-format report rows in SQLite; returns the number of rows written."""
        if self._context.repository is None:
            self._config.database_path.parent.mkdir(parents=True, exist_ok=True)
            self._context.repository = SQLiteRepository(
                database_uri=f"sqlite:///{self._config.database_path}",
                echo=self._config.sqlite_echo,
            )
        rows = to_key_values(records)
        written = self._context.repository.upsert_key_values(rows)
        logger.info("Stored %d report values in %s", written, self._config.database_path)
        return written

    def describe_stages(self) -> List[str]:
        """Return human-readable workflow stage descriptions."""
        return [f"{stage.key}: {stage.description}" for stage in self._stages]

    def close(self) -> None:
        self._context.close()

    def __del__(self) -> None:  # pragma: no cover
        try:
            self._context.close()
        except Exception:  # pylint: disable=broad-except
            pass


def _json_serializer(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return str(value)
