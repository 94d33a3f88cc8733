"""Shared fixtures for migrun tests."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from migrun.migrations import TinyDBExecutor

SCRIPT_TEMPLATE = '''
from migrun.migrations import Migration


class Script(Migration):
    """{description}"""

    use_transaction = {use_transaction}

    def apply(self, db, position=0):
        db.table("positions").insert({{"name": "{table}", "position": position}})
        db.table("{table}").insert({{"created": True}})
        if {fail_apply}:
            raise RuntimeError("apply failed in {table}")

    def revert(self, db, position=0):
        db.drop_table("{table}")
        if {fail_revert}:
            raise RuntimeError("revert failed in {table}")
'''

WriteMigration = Callable[..., Path]


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MIGRUN_CONFIG", raising=False)


@pytest.fixture
def db() -> Iterator[TinyDB]:
    """In-memory TinyDB database."""
    database = TinyDB(storage=MemoryStorage)
    yield database
    database.close()


@pytest.fixture
def executor(db: TinyDB) -> TinyDBExecutor:
    return TinyDBExecutor(db)


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def write_migration(migrations_dir: Path) -> WriteMigration:
    """Return a helper writing a migration script that creates one table."""

    def _write(
        file_name: str,
        table: str | None = None,
        fail_apply: bool = False,
        fail_revert: bool = False,
        use_transaction: bool = True,
        description: str = "Test migration",
    ) -> Path:
        path = migrations_dir / file_name
        path.write_text(
            SCRIPT_TEMPLATE.format(
                description=description,
                table=table or Path(file_name).stem,
                fail_apply=fail_apply,
                fail_revert=fail_revert,
                use_transaction=use_transaction,
            ),
            encoding="utf-8",
        )
        return path

    return _write
