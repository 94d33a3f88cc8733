"""Executors run migration scripts against a store and track applied names."""

import copy
import logging
from collections.abc import Iterable, Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import Protocol

from tinydb import Query, TinyDB

from ..utils import ensure_dir
from .base import Migration

logger = logging.getLogger(__name__)

DEFAULT_TRACKING_TABLE = "migration_meta"


class Executor(Protocol):
    """Store-side operations the runner relies on."""

    def apply_script(self, script: Migration, position: int) -> None: ...

    def revert_script(self, script: Migration, position: int) -> None: ...

    def mark_applied(self, name: str) -> None: ...

    def mark_reverted(self, name: str) -> None: ...

    def list_applied(self) -> set[str]: ...

    def list_pending(self, names: Iterable[str]) -> set[str]: ...

    def transaction(self) -> AbstractContextManager[None]: ...


def open_database(path: Path) -> TinyDB:
    """
    Open the JSON-backed TinyDB store, creating its directory if needed.

    Args:
        path: Path to the database file

    Returns:
        TinyDB instance
    """
    ensure_dir(path.parent)
    return TinyDB(path, indent=2)


class TinyDBExecutor:
    """Runs migrations against a TinyDB database.

    Applied migrations are tracked as ``{"name": ...}`` documents in a
    dedicated table.
    """

    def __init__(self, db: TinyDB, tracking_table: str = DEFAULT_TRACKING_TABLE):
        """
        Initialize executor.

        Args:
            db: TinyDB database instance
            tracking_table: Name of the table recording applied migrations
        """
        self.db = db
        self.tracking_table = tracking_table

    @property
    def _tracking(self):
        # Looked up on every access; cached Table objects go stale after a rollback.
        return self.db.table(self.tracking_table)

    def apply_script(self, script: Migration, position: int) -> None:
        script.apply(self.db, position)

    def revert_script(self, script: Migration, position: int) -> None:
        script.revert(self.db, position)

    def mark_applied(self, name: str) -> None:
        """Record a migration as applied. Marking twice keeps a single entry."""
        self._tracking.upsert({"name": name}, Query().name == name)

    def mark_reverted(self, name: str) -> None:
        """Remove a migration from the tracking table."""
        self._tracking.remove(Query().name == name)

    def list_applied(self) -> set[str]:
        return {doc["name"] for doc in self._tracking.all()}

    def list_pending(self, names: Iterable[str]) -> set[str]:
        return set(names) - self.list_applied()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Run the enclosed block atomically.

        TinyDB has no native transactions, so the whole storage content is
        snapshotted on entry and written back if the block raises.
        """
        snapshot = copy.deepcopy(self.db.storage.read() or {})
        try:
            yield
        except BaseException:
            logger.debug("Restoring database snapshot after failure")
            self._restore(snapshot)
            raise

    def _restore(self, snapshot: dict) -> None:
        # drop_tables() also discards cached Table objects and their ID counters
        self.db.drop_tables()
        self.db.storage.write(snapshot)
