"""Migration runner: applies or rolls back a resolved range of migrations."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from rich.console import Console

from .base import Direction, Migration, MigrationError, MigrationRecord
from .catalog import load_script, order_records
from .executor import Executor
from .resolver import MigrationRange, RangeError

logger = logging.getLogger(__name__)

console = Console()


class ExecutionError(MigrationError):
    """Raised when a migration script fails while being applied or reverted.

    ``report`` holds every migration attempted in the run, the failed one last.
    """

    def __init__(self, message: str, report: "ExecutionReport"):
        super().__init__(message)
        self.report = report


class RunnerState(str, Enum):
    IDLE = "idle"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class Outcome(str, Enum):
    APPLIED = "applied"
    REVERTED = "reverted"
    ERRORED = "errored"


@dataclass(frozen=True)
class RunOptions:
    """Per-run options.

    ``start_position`` only applies to the first migration executed.
    """

    use_transaction: bool = True
    start_position: int = 0

    def __post_init__(self) -> None:
        if self.start_position < 0:
            raise ValueError("start_position must be >= 0")


@dataclass(frozen=True)
class ReportEntry:
    name: str
    direction: Direction
    outcome: Outcome
    error: str | None = None


@dataclass
class ExecutionReport:
    """Migrations attempted during one run, in execution order."""

    direction: Direction
    state: RunnerState = RunnerState.IDLE
    entries: list[ReportEntry] = field(default_factory=list)

    def add(self, name: str, outcome: Outcome, error: str | None = None) -> None:
        self.entries.append(ReportEntry(name, self.direction, outcome, error))

    @property
    def failed(self) -> ReportEntry | None:
        for entry in self.entries:
            if entry.outcome is Outcome.ERRORED:
                return entry
        return None


class MigrationRunner:
    """Runs migrations against an executor, one at a time."""

    def __init__(self, executor: Executor):
        """
        Initialize migration runner.

        Args:
            executor: Store the migrations are executed against
        """
        self.executor = executor
        self.state = RunnerState.IDLE

    def status(self, records: Sequence[MigrationRecord]) -> tuple[list[str], list[str]]:
        """
        Split the catalog into executed and pending migration names.

        Read-only. Names in the tracking table that no longer have a file are
        reported as a warning and left out.

        Args:
            records: Migration catalog

        Returns:
            (executed, pending), both in ascending revision order
        """
        ordered = order_records(records, Direction.UP)
        known = [r.name for r in ordered]
        applied = self.executor.list_applied()
        not_applied = self.executor.list_pending(known)

        orphans = sorted(applied - set(known))
        if orphans:
            logger.warning("Applied migrations without a file: %s", ", ".join(orphans))

        executed = [name for name in known if name not in not_applied]
        pending = [name for name in known if name in not_applied]
        return executed, pending

    def select(
        self,
        records: Sequence[MigrationRecord],
        migration_range: MigrationRange,
        direction: Direction,
    ) -> list[MigrationRecord]:
        """
        Pick the migrations a run will execute.

        Takes the records after ``from`` (exclusive) up to ``to`` (inclusive)
        in the direction's order, then keeps the pending ones going up and the
        applied ones going down.

        Args:
            records: Catalog ordered for ``direction``
            migration_range: Resolved endpoints
            direction: Run direction

        Returns:
            Records to execute, in execution order

        Raises:
            RangeError: If an endpoint names an unknown migration
        """
        start = 0
        end = len(records)
        if migration_range.from_name is not None:
            start = self._index_of(records, migration_range.from_name) + 1
        if migration_range.to_name is not None:
            end = self._index_of(records, migration_range.to_name) + 1

        window = records[start:end]
        applied = self.executor.list_applied()
        if direction is Direction.UP:
            return [r for r in window if r.name not in applied]
        return [r for r in window if r.name in applied]

    def run(
        self,
        records: Sequence[MigrationRecord],
        migration_range: MigrationRange,
        direction: Direction,
        options: RunOptions | None = None,
    ) -> ExecutionReport:
        """
        Apply or roll back the selected migrations.

        Every script in the catalog is loaded before anything runs, so a
        broken file blocks the whole run. Each migration is tracked as soon as
        it succeeds; the first failure stops the run and earlier migrations
        stay applied.

        Args:
            records: Catalog ordered for ``direction``
            migration_range: Resolved endpoints
            direction: Run direction
            options: Transaction and start position options

        Returns:
            ExecutionReport in the ``completed`` state

        Raises:
            LoadError: If a script cannot be loaded (nothing is executed)
            RangeError: If an endpoint names an unknown migration
            ExecutionError: If a migration fails (report attached)
        """
        if self.state is RunnerState.EXECUTING:
            raise MigrationError("Runner is already executing migrations")

        options = options or RunOptions()
        scripts = {r.name: load_script(r) for r in records}
        selected = self.select(records, migration_range, direction)

        report = ExecutionReport(direction=direction)
        self.state = report.state = RunnerState.EXECUTING

        for index, record in enumerate(selected):
            script = scripts[record.name]
            position = record.position
            if index == 0 and options.start_position > 0:
                console.print(f"Set position to {options.start_position}")
                position = options.start_position

            use_transaction = (
                options.use_transaction and record.use_transaction and script.use_transaction
            )
            verb = "Applying" if direction is Direction.UP else "Reverting"
            console.print(f"  {verb} {record.name}: {script.description()}")

            try:
                self._execute(record, script, direction, position, use_transaction)
            except Exception as e:
                report.add(record.name, Outcome.ERRORED, error=str(e))
                self.state = report.state = RunnerState.FAILED
                logger.error("Migration %s failed: %s", record.name, e)
                if not use_transaction:
                    console.print(
                        "[yellow]Hint:[/yellow] Migration ran without a transaction and may be "
                        "partially applied."
                    )
                raise ExecutionError(f"Migration {record.name} failed: {e}", report) from e

            outcome = Outcome.APPLIED if direction is Direction.UP else Outcome.REVERTED
            report.add(record.name, outcome)

        self.state = report.state = RunnerState.COMPLETED
        return report

    def _execute(
        self,
        record: MigrationRecord,
        script: Migration,
        direction: Direction,
        position: int,
        use_transaction: bool,
    ) -> None:
        if use_transaction:
            with self.executor.transaction():
                self._step(record, script, direction, position)
        else:
            self._step(record, script, direction, position)

    def _step(
        self,
        record: MigrationRecord,
        script: Migration,
        direction: Direction,
        position: int,
    ) -> None:
        # Tracking is updated before the runner advances to the next record
        if direction is Direction.UP:
            self.executor.apply_script(script, position)
            self.executor.mark_applied(record.name)
        else:
            self.executor.revert_script(script, position)
            self.executor.mark_reverted(record.name)

    @staticmethod
    def _index_of(records: Sequence[MigrationRecord], reference: str) -> int:
        for index, record in enumerate(records):
            if record.matches(reference):
                return index
        raise RangeError(f"Unable to find migration: {reference}")
