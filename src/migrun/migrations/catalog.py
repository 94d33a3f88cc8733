"""Migration discovery, ordering and script loading."""

import importlib.machinery
import importlib.util
import inspect
import logging
import re
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path

from .base import Direction, Migration, MigrationError, MigrationRecord

logger = logging.getLogger(__name__)


class DiscoveryError(MigrationError):
    """Raised when the migrations directory cannot be scanned."""

    pass


class ParseError(MigrationError):
    """Raised when a migration file name does not start with a numeric revision."""

    pass


class LoadError(MigrationError):
    """
    Raised when a migration script cannot be turned into a Migration handle.

    This covers import failures (syntax errors, exceptions at import time)
    and modules that define no usable Migration.
    """

    pass


def parse_revision(file_name: str) -> int:
    """
    Parse the revision number of a migration file name.

    The revision is everything before the first ``-``, e.g. ``"10"`` in
    ``"10-create-users.py"``.

    Args:
        file_name: Base name of the migration file

    Returns:
        Revision number

    Raises:
        ParseError: If the leading token is not a non-negative integer
    """
    token = file_name.split("-", 1)[0] if "-" in file_name else Path(file_name).stem

    if not token.isascii() or not token.isdigit():
        raise ParseError(f"Cannot parse revision from migration file name: {file_name}")

    return int(token)


def order_records(
    records: Iterable[MigrationRecord], direction: Direction
) -> list[MigrationRecord]:
    """
    Order records for a run.

    Ascending by revision for ``up``, descending for ``down``. Equal revisions
    are ordered by file name, so ``down`` is always the exact reverse of ``up``.
    """
    ordered = sorted(records, key=lambda r: (r.revision, r.file_name))
    if direction is Direction.DOWN:
        ordered.reverse()
    return ordered


def _is_eligible(path: Path, suffixes: Sequence[str]) -> bool:
    # Hidden files and Python package markers such as __init__.py
    if path.name.startswith((".", "_")):
        return False
    return path.is_file() and path.suffix in suffixes


def discover_migrations(
    directory: Path,
    direction: Direction = Direction.UP,
    suffixes: Sequence[str] = (".py",),
) -> list[MigrationRecord]:
    """
    Scan a directory for migration files.

    Script bodies are not loaded here; a broken script surfaces as a
    LoadError when the runner loads it, so it blocks the run instead of
    being skipped.

    Args:
        directory: Migrations directory
        direction: Run direction, decides the ordering
        suffixes: File suffixes recognized as migration scripts

    Returns:
        Ordered list of MigrationRecord

    Raises:
        DiscoveryError: If the directory is missing
        ParseError: If an eligible file has no numeric revision
    """
    if not directory.is_dir():
        raise DiscoveryError(f"Migrations directory not found: {directory}")

    records = []
    for path in directory.iterdir():
        if not _is_eligible(path, suffixes):
            continue

        records.append(
            MigrationRecord(
                revision=parse_revision(path.name),
                name=path.stem,
                path=path,
            )
        )

    logger.debug("Discovered %d migration(s) in %s", len(records), directory)
    return order_records(records, direction)


def _module_name(record: MigrationRecord) -> str:
    return "migrun_script_" + re.sub(r"\W", "_", record.name)


def load_script(record: MigrationRecord) -> Migration:
    """
    Import a migration script and return its Migration handle.

    The module either exposes a ``migration`` attribute holding a Migration
    instance, or defines exactly one Migration subclass, which is instantiated
    without arguments.

    Args:
        record: Migration to load

    Returns:
        Migration instance

    Raises:
        LoadError: If the module cannot be imported or defines no usable Migration
    """
    module_name = _module_name(record)
    # Explicit loader so suffixes other than .py are importable too
    loader = importlib.machinery.SourceFileLoader(module_name, str(record.path))
    spec = importlib.util.spec_from_file_location(module_name, record.path, loader=loader)
    if spec is None or spec.loader is None:
        raise LoadError(f"Unable to load migration from {record.path}")

    module = importlib.util.module_from_spec(spec)
    # dataclasses and postponed annotations look the module up in sys.modules
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise LoadError(f"Unable to load migration from {record.path}: {e}") from e

    handle = getattr(module, "migration", None)
    if isinstance(handle, Migration):
        return handle

    candidates = [
        obj
        for obj in vars(module).values()
        if inspect.isclass(obj)
        and issubclass(obj, Migration)
        and not inspect.isabstract(obj)
        and obj.__module__ == module.__name__
    ]
    if len(candidates) != 1:
        raise LoadError(
            f"Migration {record.file_name} must define exactly one Migration subclass "
            f"(found {len(candidates)})"
        )

    try:
        return candidates[0]()
    except Exception as e:
        raise LoadError(f"Unable to instantiate migration {record.file_name}: {e}") from e
