"""
Root Typer application for the keysentinel CLI.

Commands::

    keysentinel watch --config sentinel.yaml       # run the watch loop
    keysentinel exec nginx notify --config ...     # run executors by name
    keysentinel exec --all --config ...            # run every executor once
    keysentinel executors --config ...             # list configured executors
"""

from __future__ import annotations

import signal
import threading
from pathlib import Path
from typing import Any

import typer
from rich.table import Table
from typer import Typer

from keysentinel.cli.utils import (
    console,
    err_console,
    load_config_or_exit,
    load_settings,
    output_report,
)
from keysentinel.clients.memory import InMemoryClient
from keysentinel.clients.redis import RedisClient
from keysentinel.core.config import build_sentinel
from keysentinel.core.errors import ClientError, DispatchError

app = Typer(
    name="keysentinel",
    help="keysentinel — run executors when watched keys change.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

ConfigOption = typer.Option(None, "--config", "-c", help="YAML executor config file")
NamespaceOption = typer.Option(None, "--namespace", "-n", help="Top-level key namespace")
LogLevelOption = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR")


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from keysentinel import __version__

        typer.echo(f"keysentinel {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """keysentinel CLI — watch keys, run executors."""


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("watch")
def watch(
    config: Path | None = ConfigOption,
    redis_url: str | None = typer.Option(None, "--redis-url", help="Redis URL to watch"),
    namespace: str | None = NamespaceOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """Watch the store and dispatch every change until SIGINT/SIGTERM.

    Example::

        keysentinel watch --config /etc/keysentinel/sentinel.yaml
        keysentinel watch -c sentinel.yaml --redis-url redis://cache:6379/2
    """
    settings = load_settings(redis_url=redis_url, namespace=namespace, log_level=log_level)
    cfg = load_config_or_exit(config, settings)
    if namespace is None and cfg.namespace:
        settings = settings.model_copy(update={"namespace": cfg.namespace})
    cfg = cfg.model_copy(update={"namespace": settings.namespace})

    client = RedisClient.from_settings(settings)
    sentinel = build_sentinel(cfg, client, settings)
    stop = threading.Event()

    def _handle_signal(signum: int, frame: Any) -> None:
        stop.set()

    previous: dict[int, Any] = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[signum] = signal.signal(signum, _handle_signal)
        except (ValueError, OSError):
            pass  # not in main thread

    console.print(
        f"[bold green]Watching[/bold green] namespace [bold]{sentinel.namespace}[/bold] "
        f"({len(sentinel.registry)} executors, keys: {', '.join(sentinel.registry.keys()) or 'none'})"
    )

    try:
        client.start()
        sentinel.run(stop)
    except ClientError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
        raise typer.Exit(code=1) from exc
    finally:
        client.close()
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    console.print("[yellow]Stopped[/yellow]")


@app.command("exec")
def exec_(
    names: list[str] | None = typer.Argument(None, help="Executor names to run"),  # noqa: UP007
    run_all: bool = typer.Option(False, "--all", "-a", help="Run every configured executor"),
    config: Path | None = ConfigOption,
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    log_level: str | None = LogLevelOption,
) -> None:
    """Run executors once by name, without context.

    Exits 1 if any name is unknown or any executor fails.

    Example::

        keysentinel exec nginx -c sentinel.yaml
        keysentinel exec --all -c sentinel.yaml --json
    """
    if not names and not run_all:
        err_console.print("[bold red]Error[/bold red]: give executor names or --all")
        raise typer.Exit(code=2)

    settings = load_settings(log_level=log_level)
    cfg = load_config_or_exit(config, settings)
    # by-name runs never fetch context, so no store connection is needed
    client = InMemoryClient(namespace=cfg.namespace or settings.namespace)
    sentinel = build_sentinel(cfg, client, settings)

    try:
        report = sentinel.execute_all() if run_all else sentinel.execute(names or [])
    except DispatchError as exc:
        output_report(exc.report, as_json=as_json, title="Execution failed")
        raise typer.Exit(code=1) from exc
    finally:
        client.close()

    output_report(report, as_json=as_json, title="Executed")


@app.command("executors")
def list_executors(
    config: Path | None = ConfigOption,
) -> None:
    """List configured executors and the keys they watch."""
    settings = load_settings()
    cfg = load_config_or_exit(config, settings)

    if not cfg.executors:
        console.print("[yellow]No executors configured[/yellow]")
        return

    table = Table(title=f"Executors (namespace: {cfg.namespace or settings.namespace})")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Keys")
    for spec in cfg.executors:
        table.add_row(spec.name, spec.type, ", ".join(spec.keys) or "-")
    console.print(table)
