"""
CLI for ``tabular-db``: run SQL scripts and queries against the evaluator.

Commands:
    run FILE...   execute SQL script files in order
    query SQL     execute statements given on the command line
    shell         interactive prompt; statements end with ';'
    tables        list tables and their row counts
    serve         start the REST API (and the metrics endpoint)

Every command accepts ``--db PATH``: the catalog is loaded from that JSON
snapshot (if it exists) and saved back when the command finishes.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table as RichTable

from tabular_db.application.database_engine import DatabaseEngine
from tabular_db.application.executor import ExecutionResult
from tabular_db.domain.errors import QueryError
from tabular_db.infrastructure.config import Config, get_config
from tabular_db.infrastructure.logging import setup_logging
from tabular_db.ports.outbound.snapshot_store import SnapshotError

app = typer.Typer(
    name="tabular-db",
    help="Embedded tabular SQL query evaluator.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

_DB_HELP = "JSON snapshot file to load from and save to"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """Embedded tabular SQL query evaluator."""
    config = get_config()
    setup_logging(
        level="DEBUG" if verbose else "WARNING",
        log_format=config.observability.log_format,
    )


# ── Engine helper ─────────────────────────────────────────────────────────


def _config_for(database: Path | None) -> Config:
    config = get_config()
    if database is None:
        return config
    storage = config.storage.model_copy(update={"data_file": database, "autosave": True})
    return config.model_copy(update={"storage": storage})


def make_engine(database: Path | None = None) -> DatabaseEngine:
    """Build an engine, pointing its snapshot at ``database`` if given."""
    return DatabaseEngine(config=_config_for(database))


# ── Output helpers ────────────────────────────────────────────────────────


def _display(value: Any) -> str:
    if value is None:
        return "NULL"
    return str(value)


def output_result(result: ExecutionResult) -> None:
    """Render one statement result to the terminal."""
    if not result.success:
        err_console.print(
            f"[bold red]Error[/bold red] ({result.error.kind}): {result.error}",
            highlight=False,
        )
        return

    if result.columns:
        table = RichTable(show_lines=False)
        for name in result.columns:
            table.add_column(name)
        for row in result.rows:
            table.add_row(*(_display(v) for v in row.values))
        console.print(table)
        console.print(f"[dim]{len(result.rows)} row(s)[/dim]")
        return

    console.print(result.message, highlight=False)


def output_results(results: list[ExecutionResult], as_json: bool = False) -> bool:
    """Render results; returns True if every statement succeeded."""
    if as_json:
        typer.echo(json.dumps([r.to_dict() for r in results], indent=2, default=str))
    else:
        for result in results:
            output_result(result)
    return all(r.success for r in results)


# ── Commands ──────────────────────────────────────────────────────────────


@app.command()
def run(
    files: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help="SQL script files"),
    database: Path | None = typer.Option(None, "--db", help=_DB_HELP),
    stop_on_error: bool = typer.Option(False, "--stop-on-error", help="Stop at the first failure"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Execute SQL script files in order."""
    results: list[ExecutionResult] = []
    with make_engine(database) as db:
        for path in files:
            file_results = db.execute_file(path, stop_on_error=stop_on_error)
            results.extend(file_results)
            if stop_on_error and not all(r.success for r in file_results):
                break

    if not output_results(results, as_json=json_out):
        raise typer.Exit(code=1)


@app.command()
def query(
    sql: str = typer.Argument(..., help="SQL statement(s); separate several with ';'"),
    database: Path | None = typer.Option(None, "--db", help=_DB_HELP),
    stop_on_error: bool = typer.Option(False, "--stop-on-error", help="Stop at the first failure"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Execute statements given on the command line."""
    with make_engine(database) as db:
        results = db.execute_script(sql, stop_on_error=stop_on_error)

    if not output_results(results, as_json=json_out):
        raise typer.Exit(code=1)


@app.command()
def tables(
    database: Path | None = typer.Option(None, "--db", help=_DB_HELP),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List tables and their row counts."""
    with make_engine(database) as db:
        described = [db.describe(name) for name in db.table_names()]

    if json_out:
        typer.echo(json.dumps(described, indent=2, default=str))
        return

    table = RichTable(title="Tables")
    table.add_column("name")
    table.add_column("columns")
    table.add_column("rows", justify="right")
    for info in described:
        table.add_row(
            info["name"],
            ", ".join(f"{c['name']} {c['type']}" for c in info["columns"]),
            str(info["row_count"]),
        )
    console.print(table)


@app.command()
def shell(
    database: Path | None = typer.Option(None, "--db", help=_DB_HELP),
) -> None:
    """Interactive prompt. End statements with ';'. Type .help for commands."""
    with make_engine(database) as db:
        console.print("[bold]tabular-db[/bold] shell. Enter .help for help, .quit to exit.")
        buffer: list[str] = []
        while True:
            try:
                line = console.input("tabular> " if not buffer else "    ...> ")
            except (EOFError, KeyboardInterrupt):
                console.print()
                break

            if not buffer and line.strip().startswith("."):
                if not _dot_command(db, line.strip()):
                    break
                continue

            buffer.append(line)
            text = "\n".join(buffer).strip()
            if not text:
                buffer = []
                continue
            if text.endswith(";"):
                buffer = []
                for result in db.execute_script(text):
                    output_result(result)


def _dot_command(db: DatabaseEngine, command: str) -> bool:
    """Run a shell dot-command; returns False to leave the shell."""
    name, _, arg = command.partition(" ")
    arg = arg.strip()
    if name in (".quit", ".exit"):
        return False
    if name == ".tables":
        for table_name in db.table_names():
            console.print(table_name)
    elif name == ".schema":
        names = [arg] if arg else db.table_names()
        for table_name in names:
            try:
                info = db.describe(table_name)
            except QueryError as e:
                err_console.print(f"[bold red]Error[/bold red] ({e.kind}): {e}", highlight=False)
                continue
            columns = ", ".join(f"{c['name']} {c['type']}" for c in info["columns"])
            console.print(f"{info['name']}({columns})", highlight=False)
    elif name == ".save":
        try:
            count = db.save(arg or None)
        except (RuntimeError, SnapshotError) as e:
            err_console.print(f"[bold red]Error[/bold red]: {e}", highlight=False)
        else:
            console.print(f"saved {count} table(s)")
    elif name == ".help":
        console.print(".tables | .schema [TABLE] | .save [PATH] | .quit")
    else:
        err_console.print(f"Unknown command {name}; try .help")
    return True


@app.command()
def serve(
    database: Path | None = typer.Option(None, "--db", help=_DB_HELP),
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    metrics: bool = typer.Option(True, "--metrics/--no-metrics", help="Serve Prometheus metrics"),
) -> None:
    """Start the REST API server."""
    from tabular_db.adapters.inbound.rest_api import run_server
    from tabular_db.infrastructure.metrics import setup_metrics
    from tabular_db.infrastructure.tracing import setup_tracing

    config = _config_for(database)
    setup_logging(config.observability.log_level, config.observability.log_format)
    setup_tracing(
        service_name=config.observability.otel_service_name,
        otlp_endpoint=config.observability.otel_endpoint,
    )
    if metrics:
        setup_metrics(config.server.metrics_port)

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    console.print(f"[bold green]Starting tabular-db API[/bold green] on {bind_host}:{bind_port}")
    with DatabaseEngine(config=config) as db:
        run_server(db, host=bind_host, port=bind_port)


if __name__ == "__main__":
    app()
