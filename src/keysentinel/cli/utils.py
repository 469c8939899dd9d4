"""
CLI utility helpers — settings, config loading and output formatting.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from keysentinel.core.config import SentinelConfig, load_config
from keysentinel.core.errors import InvalidConfigError
from keysentinel.core.logging import configure_logging
from keysentinel.core.settings import SentinelSettings, get_settings
from keysentinel.dispatch.result import DispatchReport

console = Console()
err_console = Console(stderr=True)


def load_settings(
    *,
    redis_url: str | None = None,
    namespace: str | None = None,
    log_level: str | None = None,
) -> SentinelSettings:
    """Environment settings with command-line overrides applied; configures logging."""
    overrides = {
        name: value
        for name, value in {
            "redis_url": redis_url,
            "namespace": namespace,
            "log_level": log_level.upper() if log_level else None,
        }.items()
        if value is not None
    }
    settings = get_settings().model_copy(update=overrides)
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return settings


def load_config_or_exit(path: Path | None, settings: SentinelSettings) -> SentinelConfig:
    """Load the YAML config, exiting with code 2 when missing or invalid."""
    path = path or settings.config_file
    if path is None:
        err_console.print("[bold red]Error[/bold red]: no config file (use --config or SENTINEL_CONFIG_FILE)")
        raise typer.Exit(code=2)
    try:
        return load_config(path)
    except InvalidConfigError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
        raise typer.Exit(code=2) from exc


def output_report(report: DispatchReport, *, as_json: bool = False, title: str = "") -> None:
    """Render a ``DispatchReport`` to the terminal."""
    if as_json:
        console.print_json(json.dumps(report.to_dict(), default=str))
        return

    table = Table(title=title or None)
    table.add_column("Executor", style="bold")
    table.add_column("Status")
    table.add_column("Duration (ms)", justify="right")
    table.add_column("Error", style="red")

    for name in report.unresolved:
        table.add_row(name, "[yellow]unknown[/yellow]", "-", "executor not found")
    for outcome in report.outcomes:
        status = "[green]ok[/green]" if outcome.ok else "[red]failed[/red]"
        table.add_row(
            outcome.executor,
            status,
            f"{outcome.duration_ms:.1f}",
            "" if outcome.error is None else str(outcome.error),
        )

    console.print(table)
