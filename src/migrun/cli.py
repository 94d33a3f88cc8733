"""CLI interface for migrun."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import init_project, load_config
from .migrations import (
    Direction,
    DiscoveryError,
    ExecutionError,
    ExecutionReport,
    MigrationError,
    MigrationRecord,
    MigrationRunner,
    Outcome,
    RangeSelectors,
    RunOptions,
    TinyDBExecutor,
    discover_migrations,
    open_database,
    resolve_range,
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.command()
@click.version_option(version=__version__)
@click.option("--to", "to_name", help="The migration target")
@click.option("--from", "from_name", help="Set the migration to start from")
@click.option("--to-rev", type=int, help="The migration target, by revision number")
@click.option("--from-rev", type=int, help="Set the revision to start from")
@click.option("--rollback", "-b", is_flag=True, help="Rollback to specified revision")
@click.option(
    "--pos",
    "-p",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Run first migration at pos",
)
@click.option(
    "--no-transaction",
    is_flag=True,
    help="Run each change separately instead of all in a transaction",
)
@click.option(
    "--list", "-l", "list_only", is_flag=True, help="Show migration file list (without execution)"
)
@click.option(
    "--migrations-path",
    type=click.Path(file_okay=False, path_type=Path),
    help="The path to the migrations folder",
)
@click.option(
    "--models-path",
    type=click.Path(file_okay=False, path_type=Path),
    help="The path to the models folder (holds the database)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Custom config file path",
)
@click.option(
    "--working-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Project directory relative paths are resolved against (default: current directory)",
)
@click.option(
    "--init", is_flag=True, help="Create the migrations and models folders and a config file"
)
@click.option("-v", "--verbose", is_flag=True, help="Show log messages")
def cli(
    to_name: str | None,
    from_name: str | None,
    to_rev: int | None,
    from_rev: int | None,
    rollback: bool,
    pos: int,
    no_transaction: bool,
    list_only: bool,
    migrations_path: Path | None,
    models_path: Path | None,
    config_path: Path | None,
    working_dir: Path | None,
    init: bool,
    verbose: bool,
) -> None:
    """
    Apply or roll back migrations in revision order.

    Migration files are named <revision>-<description>.py and are run in
    ascending revision order (descending with --rollback). Applied migrations
    are recorded in the database so a rerun continues where the last one
    stopped.

    Examples:

        \b
        # Apply all pending migrations
        migrun

        \b
        # Apply up to and including revision 30
        migrun --to-rev 30

        \b
        # Roll back everything after 10-create-users
        migrun --rollback --to 20-add-email

        \b
        # Show executed and pending migrations
        migrun --list
    """
    _configure_logging(verbose)

    try:
        config = load_config(
            working_dir or Path.cwd(),
            config_path=config_path,
            migrations_path=migrations_path,
            models_path=models_path,
        )
    except (ValueError, OSError) as e:
        console.print(f"[red]Error:[/red] Configuration: {escape(str(e))}")
        sys.exit(1)

    if init:
        try:
            written = init_project(config, config_path)
        except OSError as e:
            console.print(f"[red]Error:[/red] Init: {escape(str(e))}")
            sys.exit(1)
        console.print(f"[green]✓[/green] Project initialized ({written})")
        return

    if not config.models_dir.is_dir():
        console.print(
            f"[red]Error:[/red] Can't find models directory {config.models_dir}. "
            "Use `migrun --init` to create it"
        )
        sys.exit(1)

    direction = Direction.DOWN if rollback else Direction.UP

    try:
        records = discover_migrations(config.migrations_dir, direction, config.script_suffixes)
    except DiscoveryError:
        console.print(
            f"[red]Error:[/red] Can't find migrations directory {config.migrations_dir}. "
            "Use `migrun --init` to create it"
        )
        sys.exit(1)
    except MigrationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    _display_found(records)

    selectors = RangeSelectors(
        to_name=to_name,
        from_name=from_name,
        to_rev=to_rev,
        from_rev=from_rev,
    )
    options = RunOptions(
        use_transaction=config.use_transaction and not no_transaction,
        start_position=pos,
    )

    try:
        with open_database(config.database_path) as db:
            runner = MigrationRunner(TinyDBExecutor(db, config.tracking_table))

            if list_only:
                executed, pending = runner.status(records)
                _display_status(executed, pending)
                return

            migration_range = resolve_range(
                records, selectors, direction, strict=config.strict_range
            )
            report = runner.run(records, migration_range, direction, options)
    except ExecutionError as e:
        _display_report(e.report)
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    except MigrationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    except (ValueError, OSError) as e:
        # Unreadable or corrupt database file
        console.print(f"[red]Error:[/red] Database {config.database_path}: {escape(str(e))}")
        sys.exit(1)

    console.print(f"Executed {len(report.entries)} migrations")
    _display_report(report)


def _display_found(records: list[MigrationRecord]) -> None:
    """Display discovered migration files."""
    console.print("Migrations found:")
    for record in records:
        console.print(f"\t{record.file_name}")


def _display_status(executed: list[str], pending: list[str]) -> None:
    """Display executed and pending migrations."""
    table = Table(title="Migration Status")
    table.add_column("Migration", style="cyan")
    table.add_column("Status")

    for name in executed:
        table.add_row(name, "[green]✓ Executed[/green]")
    for name in pending:
        table.add_row(name, "[yellow]Pending[/yellow]")

    console.print(table)
    console.print(f"{len(executed)} executed, {len(pending)} pending")


def _display_report(report: ExecutionReport) -> None:
    """Display the migrations attempted in a run."""
    if not report.entries:
        return

    title = "Rollback Results" if report.direction is Direction.DOWN else "Migration Results"
    table = Table(title=title)
    table.add_column("Migration", style="cyan")
    table.add_column("Status")

    for entry in report.entries:
        if entry.outcome is Outcome.APPLIED:
            status_text = "[green]✓ Applied[/green]"
        elif entry.outcome is Outcome.REVERTED:
            status_text = "[blue]✓ Reverted[/blue]"
        else:
            status_text = f"[red]✗ {escape(entry.error or '')}[/red]"

        table.add_row(entry.name, status_text)

    console.print(table)


if __name__ == "__main__":
    cli()
