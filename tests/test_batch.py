from __future__ import annotations

import random
import threading
import time

from conftest import FakeProvider
from valuation_report.settings.config import Config
from valuation_report.workflows.batch import run_batch
from valuation_report.workflows.graph import ReportWorkflow


class _StubWorkflow:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def report(self, symbol):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            time.sleep(0.01)
            if symbol in self.failing:
                raise RuntimeError(f"no data for {symbol}")
            return {"symbol": symbol}
        finally:
            with self._lock:
                self.active -= 1


def test_failures_are_isolated():
    workflow = _StubWorkflow(failing={"BAD"})
    outcomes = run_batch(workflow, ["AAA", "BAD", "CCC"], parallelism=3)

    assert [o.symbol for o in outcomes] == ["AAA", "BAD", "CCC"]
    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[0].report == {"symbol": "AAA"}
    assert "no data for BAD" in outcomes[1].error


def test_parallelism_is_bounded():
    workflow = _StubWorkflow()
    outcomes = run_batch(workflow, [f"S{i}" for i in range(12)], parallelism=2)
    assert len(outcomes) == 12
    assert workflow.peak <= 2


def test_shuffle_keeps_every_symbol():
    symbols = [f"S{i}" for i in range(10)]
    outcomes = run_batch(_StubWorkflow(), symbols, shuffle=True, rng=random.Random(7))
    assert sorted(o.symbol for o in outcomes) == sorted(symbols)


def test_shuffled_outcomes_follow_processing_order():
    symbols = [f"S{i}" for i in range(10)]
    expected = list(symbols)
    random.Random(7).shuffle(expected)

    outcomes = run_batch(_StubWorkflow(), symbols, parallelism=4, shuffle=True, rng=random.Random(7))

    assert [o.symbol for o in outcomes] == expected


def test_empty_batch():
    assert run_batch(_StubWorkflow(), []) == []


def test_batch_over_real_workflow(tmp_path, equity_info, quarterly_statements, flat_prices):
    provider = FakeProvider(
        info=equity_info,
        prices={"GOOD": flat_prices},
        quarterly=quarterly_statements,
    )
    workflow = ReportWorkflow(Config(output_dir=tmp_path, database_path=tmp_path / "db.sqlite"), provider=provider)

    # "MISSING" has no price history, so its statements precede every close.
    outcomes = run_batch(workflow, ["GOOD", "MISSING"], parallelism=2)

    assert outcomes[0].ok
    assert outcomes[0].report["symbol"] == "GOOD"
    assert not outcomes[1].ok
    assert outcomes[1].error.startswith("DateOutOfRangeError")
