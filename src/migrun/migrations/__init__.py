"""Revision-ordered migration engine."""

from .base import Direction, Migration, MigrationError, MigrationRecord
from .catalog import (
    DiscoveryError,
    LoadError,
    ParseError,
    discover_migrations,
    load_script,
    order_records,
    parse_revision,
)
from .executor import Executor, TinyDBExecutor, open_database
from .resolver import MigrationRange, RangeError, RangeSelectors, resolve_range
from .runner import (
    ExecutionError,
    ExecutionReport,
    MigrationRunner,
    Outcome,
    ReportEntry,
    RunnerState,
    RunOptions,
)

__all__ = [
    "Direction",
    "DiscoveryError",
    "ExecutionError",
    "ExecutionReport",
    "Executor",
    "LoadError",
    "Migration",
    "MigrationError",
    "MigrationRange",
    "MigrationRecord",
    "MigrationRunner",
    "Outcome",
    "ParseError",
    "RangeError",
    "RangeSelectors",
    "ReportEntry",
    "RunOptions",
    "RunnerState",
    "TinyDBExecutor",
    "discover_migrations",
    "load_script",
    "open_database",
    "order_records",
    "parse_revision",
    "resolve_range",
]
