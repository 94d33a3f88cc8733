"""Base types shared by the migration catalog, resolver and runner."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


class MigrationError(Exception):
    """Base class for every error raised while sequencing migrations."""

    pass


class Direction(str, Enum):
    """Direction of a migration run."""

    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class MigrationRecord:
    """Identity and metadata of one migration file.

    Records are immutable once parsed. ``name`` is the key written to the
    tracking table when the migration is applied.
    """

    revision: int
    name: str
    path: Path
    position: int = 0
    use_transaction: bool = True

    @property
    def file_name(self) -> str:
        return self.path.name

    def matches(self, reference: str) -> bool:
        """Return True if reference names this migration (with or without suffix)."""
        return reference in (self.name, self.path.name)


class Migration(ABC):
    """Base class for migration scripts.

    A migration script defines one subclass (or a module-level ``migration``
    instance). ``position`` is the step to start at, so a script that was
    partially applied can be resumed.
    """

    use_transaction: bool = True

    @abstractmethod
    def apply(self, db: Any, position: int = 0) -> None:
        """
        Apply the migration.

        Args:
            db: Store handle supplied by the executor
            position: Step within the script to start from
        """
        pass

    @abstractmethod
    def revert(self, db: Any, position: int = 0) -> None:
        """
        Undo the migration.

        Args:
            db: Store handle supplied by the executor
            position: Step within the script to start from
        """
        pass

    def description(self) -> str:
        """Return a human-readable description of this migration."""
        doc = (type(self).__doc__ or "").strip()
        return doc.splitlines()[0] if doc else type(self).__name__
