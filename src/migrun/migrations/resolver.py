"""Resolution of to/from selectors into a concrete migration range."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .base import Direction, MigrationError, MigrationRecord

logger = logging.getLogger(__name__)


class RangeError(MigrationError):
    """Raised when range endpoints are inconsistent or reference unknown migrations."""

    pass


@dataclass(frozen=True)
class RangeSelectors:
    """Endpoints requested by the user, by name or by revision."""

    to_name: str | None = None
    from_name: str | None = None
    to_rev: int | None = None
    from_rev: int | None = None


@dataclass(frozen=True)
class MigrationRange:
    """Resolved endpoints. None means no boundary on that side.

    ``from_name`` is exclusive (the last migration already handled) and
    ``to_name`` is inclusive.
    """

    from_name: str | None = None
    to_name: str | None = None

    @property
    def unbounded(self) -> bool:
        return self.from_name is None and self.to_name is None


def _find_by_revision(
    records: Sequence[MigrationRecord],
    revision: int,
    endpoint: str,
    strict: bool,
) -> str | None:
    for record in records:
        if record.revision == revision:
            return record.name

    if strict:
        raise RangeError(f"No migration with revision {revision} for '{endpoint}'")
    logger.warning("No migration with revision %d, '%s' left unbounded", revision, endpoint)
    return None


def _is_consistent(to_rev: int, from_rev: int, direction: Direction) -> bool:
    if direction is Direction.UP:
        return to_rev > from_rev
    return to_rev < from_rev


def resolve_range(
    records: Sequence[MigrationRecord],
    selectors: RangeSelectors,
    direction: Direction,
    strict: bool = False,
) -> MigrationRange:
    """
    Resolve selectors against the ordered catalog.

    Name selectors always win over revision selectors for the same endpoint.
    When both revisions are given without names they must point in the run's
    direction (``to > from`` going up, ``to < from`` going down). An
    inconsistent pair leaves both endpoints open unless ``strict`` is set.

    Args:
        records: Catalog ordered for ``direction``
        selectors: Requested endpoints
        direction: Run direction
        strict: Raise instead of dropping unusable revision endpoints

    Returns:
        MigrationRange with names or None per endpoint

    Raises:
        RangeError: In strict mode, for an inconsistent pair or unmatched revision
    """
    to_name = selectors.to_name
    from_name = selectors.from_name
    to_rev = selectors.to_rev
    from_rev = selectors.from_rev

    if to_rev is not None and from_rev is not None and to_name is None and from_name is None:
        if not _is_consistent(to_rev, from_rev, direction):
            message = (
                f"Revision range {from_rev} -> {to_rev} does not match direction "
                f"'{direction.value}'"
            )
            if strict:
                raise RangeError(message)
            logger.warning("%s, running without boundaries", message)
            return MigrationRange()

        return MigrationRange(
            from_name=_find_by_revision(records, from_rev, "from", strict),
            to_name=_find_by_revision(records, to_rev, "to", strict),
        )

    if to_name is None and to_rev is not None:
        to_name = _find_by_revision(records, to_rev, "to", strict)
    if from_name is None and from_rev is not None:
        from_name = _find_by_revision(records, from_rev, "from", strict)

    return MigrationRange(from_name=from_name, to_name=to_name)
