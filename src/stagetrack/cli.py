"""Command-line interface for the stage tracker."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.table import Table

from .config import Settings, settings
from .errors import StagetrackError
from .schema import initialize
from .stages import StageRepository
from .stats import compute_stats
from .store import Store
from .transfer import EXPORT_FILENAME, export_all, import_all, reset_to_default

app = typer.Typer(help="Track project stages and tasks via CLI and web API")

DB_OPTION_HELP = "SQLite database path (defaults to $STAGETRACK_DB)"


def _connect(db: Optional[Path]) -> Store:
    try:
        return Store(db or settings.db_path)
    except StagetrackError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _open_store(db: Optional[Path]) -> Store:
    """Open the database, creating the schema and default stages if needed."""
    store = _connect(db)
    try:
        initialize(store)
    except StagetrackError as exc:
        store.close()
        raise typer.BadParameter(str(exc)) from exc
    return store


def _format_hours(value: float) -> str:
    return f"{value:.2f}h"


@app.command("serve")
def serve(
    host: str = typer.Option(settings.host, "--host", help="Host to bind"),
    port: int = typer.Option(settings.port, "--port", help="Port to bind"),
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
    public_dir: str = typer.Option(settings.public_dir, "--public-dir", help="Directory with static UI files"),
) -> None:
    """Run the web server."""
    from .server import run_server

    logging.basicConfig(level=settings.log_level)
    run_server(
        Settings(
            db_path=str(db or settings.db_path),
            host=host,
            port=port,
            public_dir=public_dir,
            log_level=settings.log_level,
        )
    )


@app.command("init")
def init_db(
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Create the tables and seed the default stages when the database is empty."""
    store = _connect(db)
    try:
        seeded = initialize(store)
    except StagetrackError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        store.close()
    if seeded:
        typer.echo(f"Initialized {store.db_path} with the default project stages.")
    else:
        typer.echo(f"{store.db_path} already contains stages; nothing seeded.")


@app.command("stages")
def list_stages(
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Show all stages with their task completion."""
    store = _open_store(db)
    try:
        stages = StageRepository(store).list_with_tasks()
    finally:
        store.close()

    if not stages:
        typer.echo("No stages found.")
        return

    table = Table(title="Project stages")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Stage")
    table.add_column("Weeks")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Tasks", justify="right")
    for stage in stages:
        done = sum(1 for task in stage["tasks"] if task["completed"])
        table.add_row(
            str(stage["number"]),
            f"{stage['icon'] or ''} {stage['name'] or ''}".strip(),
            str(stage["weeks"] or ""),
            str(stage["status"] or ""),
            f"{stage['progress'] or 0}%",
            f"{done}/{len(stage['tasks'])}",
        )
    rprint(table)


@app.command("stats")
def show_stats(
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Display project-wide statistics."""
    store = _open_store(db)
    try:
        stats = compute_stats(store)
    finally:
        store.close()

    typer.echo(
        f"Stages: {stats['total_stages']} "
        f"(complete {stats['completed']}, in progress {stats['in_progress']}, "
        f"testing {stats['testing']}, pending {stats['pending']})"
    )
    typer.echo(f"Average progress: {stats['avg_progress']:.1f}%")
    typer.echo(f"Hours: {_format_hours(stats['hours_worked'])} / {_format_hours(stats['total_hours'])}")
    typer.echo(f"Tasks: {stats['completed_tasks']} of {stats['total_tasks']} completed")


@app.command("export")
def export_stages(
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
    output: Path = typer.Option(Path(EXPORT_FILENAME), "--output", "-o", help="File to write"),
) -> None:
    """Write all stages and tasks to a JSON document."""
    store = _open_store(db)
    try:
        document = export_all(store)
    finally:
        store.close()
    output.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
    typer.echo(f"Exported {len(document)} stages to {output}")


@app.command("import")
def import_stages(
    path: Path = typer.Argument(..., help="JSON document produced by `stagetrack export`"),
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Replace all stages and tasks with the contents of a JSON document."""
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"Unable to read {path}: {exc}") from exc

    store = _open_store(db)
    try:
        imported = import_all(store, document)
    except StagetrackError as exc:
        raise typer.BadParameter(str(exc)) from exc
    finally:
        store.close()
    typer.echo(f"Imported {imported} stages from {path}")


@app.command("reset")
def reset_stages(
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Discard all data and restore the default project stages."""
    if not yes:
        typer.confirm("This deletes every stage and task. Continue?", abort=True)
    store = _open_store(db)
    try:
        seeded = reset_to_default(store)
    finally:
        store.close()
    typer.echo(f"Data reset to default ({seeded} stages).")


if __name__ == "__main__":
    app()
