"""CLI entry point for the Apex Log Analyzer."""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from apexlog_analyzer.analyzer import DEFAULT_TOP_N, analyze_log
from apexlog_analyzer.config import ParseLimits
from apexlog_analyzer.errors import LogParseError, ResourceLimitError
from apexlog_analyzer.stream import extract_settings

app = typer.Typer(
    help="Apex Log Analyzer - Rebuild call trees from Apex debug logs",
    no_args_is_help=True
)
console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True
    )


def _check_log_path(log: Path) -> None:
    if not log.exists():
        console.print(f"[red]Error:[/red] Log file not found: {log}")
        raise typer.Exit(code=1)

    if not log.is_file():
        console.print(f"[red]Error:[/red] Path is not a file: {log}")
        raise typer.Exit(code=1)


@app.command()
def parse(
    log: Path = typer.Option(..., "--log", help="Path to Apex debug log file"),
    out: Path = typer.Option("parse.json", "--out", help="Output JSON file path"),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", help="Maximum call nesting depth"),
    max_log_chars: Optional[int] = typer.Option(None, "--max-log-chars", help="Maximum log size in characters"),
    top_n: int = typer.Option(DEFAULT_TOP_N, "--top-n", help="Number of self-time hotspots to report"),
    indent: int = typer.Option(2, "--indent", help="JSON indentation"),
    verbose: bool = typer.Option(False, "--verbose", help="Log parsing progress"),
):
    """Parse an Apex debug log and write the call tree as JSON."""
    _configure_logging(verbose)
    _check_log_path(log)

    try:
        limits = ParseLimits.from_env()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    if max_depth is not None:
        limits = replace(limits, max_depth=max_depth)
    if max_log_chars is not None:
        limits = replace(limits, max_log_chars=max_log_chars)

    console.print(f"[blue]Parsing log:[/blue] {log}")
    console.print(f"[blue]Output file:[/blue] {out}")
    console.print(f"[blue]Max depth:[/blue] {limits.max_depth}")

    try:
        result = analyze_log(str(log), limits=limits, top_n=top_n)
    except (LogParseError, ResourceLimitError, UnicodeDecodeError) as e:
        console.print(f"[red]Error during parsing:[/red] {e}")
        raise typer.Exit(code=1)

    with open(out, "w") as f:
        json.dump(result, f, indent=indent)

    summary = result["summary"]
    console.print(f"[green]✓[/green] Parse complete: {out}")
    console.print(f"[blue]Frames:[/blue] {summary['frame_count']}  [blue]Records:[/blue] {summary['record_count']}")
    console.print(f"[blue]Peak CPU:[/blue] {summary['cpu_peak_ns'] / 1e6:.0f}ms")
    for event in result["truncated"]:
        console.print(
            f"[yellow]Truncated ({event['severity']}):[/yellow] {event['reason']} at {event['timestamp']}"
        )


@app.command()
def settings(
    log: Path = typer.Option(..., "--log", help="Path to Apex debug log file"),
):
    """Print the debug level settings header of a log."""
    _check_log_path(log)

    try:
        with open(log, "r", encoding="utf-8") as f:
            pairs = extract_settings(f.read())
    except UnicodeDecodeError as e:
        console.print(f"[red]Error reading log:[/red] {e}")
        raise typer.Exit(code=1)

    if not pairs:
        console.print("[yellow]No settings header found[/yellow]")
        return
    for key, value in pairs:
        console.print(f"[blue]{key}:[/blue] {value}")


if __name__ == "__main__":
    app()
