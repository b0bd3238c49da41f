"""CLI command definitions for the valuation report generator."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from valuation_report.domain.models.financials import SymbolOutcome
from valuation_report.infrastructure.data_providers.yahoo_client import to_jsonable
from valuation_report.reports.export import read_symbols, write_key_values_csv, write_wide_csv
from valuation_report.settings.config import Config
from valuation_report.settings.loader import load_settings
from valuation_report.utils.logging import configure_logging
from valuation_report.workflows.batch import run_batch
from valuation_report.workflows.graph import ReportWorkflow
from valuation_report.workflows.state import ReportState

console = Console()
app = typer.Typer(help="Build valuation reports for listed securities from Yahoo Finance data.")


@dataclass
class AppContext:
    """Holds reusable process-wide objects for CLI commands."""

    config: Config
    workflow: ReportWorkflow


def _init_context(debug_override: Optional[bool] = None) -> AppContext:
    """Create a context with configuration, logging, and workflow wiring."""
    config = load_settings(debug_override)
    configure_logging(debug=config.debug)
    config.ensure_directories()
    workflow = ReportWorkflow(config=config)
    return AppContext(config=config, workflow=workflow)


@app.callback()
def main_callback(
    ctx: typer.Context,
    debug: Optional[bool] = typer.Option(
        None,
        "--debug/--no-debug",
        help="Temporarily toggle verbose logging without touching environment variables.",
    ),
) -> None:
    """Attach the lazily constructed application context to Typer."""
    ctx.obj = _init_context(debug_override=debug)


@app.command()
def report(
    ctx: typer.Context,
    symbol: str = typer.Argument(..., help="Yahoo Finance symbol, e.g. AAPL or 7203.T"),
    json_path: Optional[Path] = typer.Option(
        None,
        "--json",
        help="Persist the merged workflow state to this JSON file.",
    ),
) -> None:
    """Run the workflow for a single symbol and print the report."""
    if ctx.obj is None:
        raise typer.Exit(code=1)

    context: AppContext = ctx.obj
    console.rule(f"Valuation report for {symbol}")

    try:
        with console.status("[bold cyan]Running workflow..."):
            result: ReportState = context.workflow.run(symbol)
    except Exception as exc:  # pylint: disable=broad-except
        console.print(f"[bold red]Report for {symbol} failed:[/bold red] {type(exc).__name__}: {exc}")
        raise typer.Exit(code=1) from exc

    if result.get("errors"):
        console.print("[bold yellow]Workflow completed with warnings:[/bold yellow]")
        for issue in result["errors"]:
            console.print(f"- {issue}")

    console.print_json(json.dumps(to_jsonable(result.get("report") or {})))
    _print_run_summary(result)

    if json_path is not None:
        context.workflow.persist_state(result, json_path)
        console.print(f"State saved to {json_path}")


@app.command()
def batch(
    ctx: typer.Context,
    symbols: Optional[List[str]] = typer.Argument(None, help="Symbols to process; defaults to the symbols CSV."),
    input_path: Optional[Path] = typer.Option(None, "--input", help="CSV with a 'symbol' column."),
    output_path: Optional[Path] = typer.Option(
        None, "--output", help="Long-format (symbol, key, value) CSV; defaults to <output>/report.csv."
    ),
    wide_path: Optional[Path] = typer.Option(None, "--wide", help="Also write one row per symbol to this CSV."),
    parallelism: Optional[int] = typer.Option(None, "--parallelism", min=1, help="Symbols processed at once."),
    shuffle: bool = typer.Option(True, "--shuffle/--no-shuffle", help="Randomize processing order."),
    store: bool = typer.Option(False, "--store/--no-store", help="Also upsert report values into SQLite."),
) -> None:
    """Build reports for many symbols with bounded concurrency."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    context: AppContext = ctx.obj
    config = context.config

    targets = list(symbols or [])
    if not targets:
        source = input_path or config.symbols_path
        if not source.exists():
            console.print(f"[red]No symbols given and {source} does not exist[/red]")
            raise typer.Exit(code=1)
        targets = read_symbols(source)

    console.rule(f"Batch of {len(targets)} symbols")
    outcomes = run_batch(
        context.workflow,
        targets,
        parallelism=parallelism or config.batch_parallelism,
        shuffle=shuffle,
    )
    records = [o.report for o in outcomes if o.ok and o.report]

    target = output_path or config.output_dir / "report.csv"
    rows = write_key_values_csv(records, target)
    console.print(f"Wrote {rows} values for {len(records)} symbols to {target}")

    if wide_path is not None:
        write_wide_csv(records, wide_path)
        console.print(f"Wide report available at {wide_path}")

    if store and records:
        context.workflow.persist_key_values(records)

    failures = [o for o in outcomes if not o.ok]
    if failures:
        _print_failures(failures)


@app.command()
def dump(
    ctx: typer.Context,
    symbol: str = typer.Argument(..., help="Yahoo Finance symbol to dump."),
) -> None:
    """Write every data set the provider exposes for a symbol to JSON."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    context: AppContext = ctx.obj

    provider = context.workflow.context.provider
    if not hasattr(provider, "fetch_summary_all_modules"):
        console.print("[red]Configured provider cannot dump raw modules[/red]")
        raise typer.Exit(code=1)

    with console.status(f"[bold cyan]Fetching all modules for {symbol}..."):
        payload = provider.fetch_summary_all_modules(symbol)

    target = context.config.output_dir / f"{symbol}-quoteSummaryAll.json"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(to_jsonable(payload), indent=4, default=str), encoding="utf-8")
    console.print(f"Raw modules saved to {target}")


@app.command()
def plan(ctx: typer.Context) -> None:
    """Display the high-level workflow path for quick operator reference."""
    if ctx.obj is None:
        raise typer.Exit(code=1)

    context: AppContext = ctx.obj
    table = Table(title="Workflow Stages")
    table.add_column("Step", style="cyan")
    table.add_column("Description")

    for idx, step in enumerate(context.workflow.describe_stages(), start=1):
        table.add_row(str(idx), step)

    console.print(table)


def _print_run_summary(state: ReportState) -> None:
    """Pretty-print a short run summary for operators."""
    report_record = state.get("report") or {}
    info = report_record.get("info") or {}
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Key")
    table.add_column("Value")

    table.add_row("Symbol", state.get("symbol", "?"))
    table.add_row("Name", info.get("name") or "N/A")
    table.add_row("Quote Type", state.get("quote_type") or "N/A")
    table.add_row("Report Date", state.get("report_date") or "N/A")
    table.add_row("This Period", "yes" if state.get("this_period") is not None else "no")
    table.add_row("Previous Period", "yes" if state.get("previous_period") is not None else "no")
    table.add_row("Warnings", str(len(state.get("errors", []))))

    console.print(table)


def _print_failures(failures: List[SymbolOutcome]) -> None:
    table = Table(title="Failed symbols", header_style="bold red")
    table.add_column("Symbol")
    table.add_column("Error")
    for outcome in failures:
        table.add_row(outcome.symbol, outcome.error or "")
    console.print(table)
