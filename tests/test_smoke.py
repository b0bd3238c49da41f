"""Basic smoke tests for configuration, stage wiring and the CLI."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import FakeProvider
from valuation_report.cli import commands
from valuation_report.settings.config import Config
from valuation_report.workflows.graph import ReportWorkflow


def test_config_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("OUTPUT_DIR", "SYMBOLS_PATH", "BATCH_PARALLELISM", "PROVIDER_MAX_RETRIES", "PROVIDER_RETRY_DELAY", "APP_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    cfg = Config.from_env()
    assert cfg.output_dir == tmp_path / "output"
    assert cfg.symbols_path == tmp_path / "input" / "symbols.csv"
    assert cfg.batch_parallelism == 3
    assert cfg.provider_max_retries == 5
    assert cfg.provider_retry_delay == 2.0
    assert cfg.debug is False


def test_config_env_overrides(monkeypatch, tmp_path):
    monkeypatch.delenv("DATABASE_PATH", raising=False)
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("BATCH_PARALLELISM", "0")
    monkeypatch.setenv("PROVIDER_RETRY_DELAY", "not-a-number")
    monkeypatch.setenv("SAVE_PAYLOADS", "yes")
    cfg = Config.from_env()
    assert cfg.database_path == tmp_path / "out" / "reports.db"
    assert cfg.batch_parallelism == 1
    assert cfg.provider_retry_delay == 2.0
    assert cfg.save_payloads is True
    cfg.ensure_directories()
    assert cfg.payload_dir.is_dir()


def test_workflow_stages():
    workflow = ReportWorkflow(Config(), provider=FakeProvider())
    stages = workflow.describe_stages()
    assert len(stages) == 8
    assert stages[0].startswith("load_summary")
    assert stages[-1].startswith("assemble_report")


def _cli_env(monkeypatch, tmp_path, provider):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "output"))
    monkeypatch.delenv("DATABASE_PATH", raising=False)
    real_workflow = ReportWorkflow
    monkeypatch.setattr(commands, "ReportWorkflow", lambda config: real_workflow(config, provider=provider))


def test_cli_plan(monkeypatch, tmp_path):
    _cli_env(monkeypatch, tmp_path, FakeProvider())
    result = CliRunner().invoke(commands.app, ["plan"])
    assert result.exit_code == 0
    assert "load_summary" in result.output


def test_cli_batch_writes_key_values(monkeypatch, tmp_path, equity_info, quarterly_statements, flat_prices):
    provider = FakeProvider(info=equity_info, prices={"GOOD": flat_prices}, quarterly=quarterly_statements)
    _cli_env(monkeypatch, tmp_path, provider)
    out = tmp_path / "report.csv"

    result = CliRunner().invoke(
        commands.app,
        ["batch", "GOOD", "EMPTY", "--output", str(out), "--no-shuffle", "--store"],
    )

    assert result.exit_code == 0, result.output
    text = out.read_text(encoding="utf-8")
    assert "GOOD,info.name,Test Corp" in text
    assert "EMPTY" not in text
    assert "Failed symbols" in result.output
    assert Path(tmp_path / "output" / "reports.db").exists()


def test_cli_report_writes_state(monkeypatch, tmp_path, equity_info, quarterly_statements, flat_prices):
    provider = FakeProvider(info=equity_info, prices={"TEST": flat_prices}, quarterly=quarterly_statements)
    _cli_env(monkeypatch, tmp_path, provider)
    target = tmp_path / "state" / "TEST.json"

    result = CliRunner().invoke(commands.app, ["report", "TEST", "--json", str(target)])

    assert result.exit_code == 0, result.output
    assert "Test Corp" in result.output
    state = json.loads(target.read_text(encoding="utf-8"))
    assert state["symbol"] == "TEST"
    assert state["report"]["this_period"]["pe"] == pytest.approx(50.0)


class _UnavailableProvider(FakeProvider):
    def fetch_summary(self, symbol):
        raise RuntimeError(f"{symbol} is not listed")


def test_cli_report_failure_exits_with_error(monkeypatch, tmp_path):
    _cli_env(monkeypatch, tmp_path, _UnavailableProvider())

    result = CliRunner().invoke(commands.app, ["report", "NOPE"])

    assert result.exit_code == 1
    assert "NOPE is not listed" in result.output


class _DumpingProvider(FakeProvider):
    def fetch_summary_all_modules(self, symbol):
        return {"info": {"symbol": symbol, "quoteType": "EQUITY"}, "calendar": None}


def test_cli_dump_writes_all_modules(monkeypatch, tmp_path):
    _cli_env(monkeypatch, tmp_path, _DumpingProvider())

    result = CliRunner().invoke(commands.app, ["dump", "TEST"])

    assert result.exit_code == 0, result.output
    payload = json.loads((tmp_path / "output" / "TEST-quoteSummaryAll.json").read_text(encoding="utf-8"))
    assert payload["info"]["quoteType"] == "EQUITY"
    assert payload["calendar"] is None


def test_cli_dump_requires_capable_provider(monkeypatch, tmp_path):
    _cli_env(monkeypatch, tmp_path, FakeProvider())

    result = CliRunner().invoke(commands.app, ["dump", "TEST"])

    assert result.exit_code == 1
    assert "cannot dump" in result.output
