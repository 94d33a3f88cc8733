"""Configuration management for migrun."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .utils import ensure_dir, expand_path, resolve_path

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "migrun.toml"
DEFAULT_MIGRATIONS_DIR = "migrations"
DEFAULT_MODELS_DIR = "models"


class Config(BaseModel):
    """Configuration for migrun.

    Pydantic model that validates configuration values. Relative directories
    are anchored at ``working_dir``, which is always passed explicitly rather
    than read from the process environment.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    working_dir: Path
    migrations_dir: Path = Path(DEFAULT_MIGRATIONS_DIR)
    models_dir: Path = Path(DEFAULT_MODELS_DIR)
    database_file: str = Field(default="db.json", min_length=1)
    tracking_table: str = Field(
        default="migration_meta", min_length=1, description="Table holding applied migration names"
    )
    script_suffixes: list[str] = Field(default_factory=lambda: [".py"])
    use_transaction: bool = True
    strict_range: bool = False

    @field_validator("working_dir", mode="before")
    @classmethod
    def expand_working_dir(cls, v: str | Path) -> Path:
        """Expand ~ and environment variables in the working directory."""
        return expand_path(v).resolve()

    @field_validator("script_suffixes")
    @classmethod
    def normalize_suffixes(cls, v: list[str]) -> list[str]:
        """Ensure every suffix starts with a dot."""
        if not v:
            raise ValueError("script_suffixes must not be empty")
        return [s if s.startswith(".") else f".{s}" for s in v]

    @model_validator(mode="after")
    def anchor_paths(self) -> "Config":
        """Resolve migration and model directories against the working directory."""
        self.migrations_dir = resolve_path(self.migrations_dir, self.working_dir)
        self.models_dir = resolve_path(self.models_dir, self.working_dir)
        return self

    @property
    def database_path(self) -> Path:
        """Location of the TinyDB store inside the models directory."""
        return self.models_dir / self.database_file

    def save(self, path: Path) -> None:
        """
        Save configuration to TOML file.

        Directories inside the working directory are written relative to it,
        so the file stays valid if the project is moved.

        Args:
            path: Path to save config file
        """
        ensure_dir(path.parent)

        data = {
            "paths": {
                "migrations_dir": self._relative(self.migrations_dir),
                "models_dir": self._relative(self.models_dir),
            },
            "database": {
                "file": self.database_file,
                "tracking_table": self.tracking_table,
            },
            "run": {
                "script_suffixes": list(self.script_suffixes),
                "use_transaction": self.use_transaction,
                "strict_range": self.strict_range,
            },
        }

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def _relative(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.working_dir))
        except ValueError:
            return str(path)


def get_config_path(working_dir: Path) -> Path:
    """
    Get configuration file path.

    Priority:
    1. MIGRUN_CONFIG environment variable
    2. Default: <working_dir>/migrun.toml

    Args:
        working_dir: Project directory

    Returns:
        Path to config file
    """
    env_config = os.environ.get("MIGRUN_CONFIG")
    if env_config:
        return resolve_path(env_config, working_dir)

    return working_dir / CONFIG_FILE_NAME


def load_config(
    working_dir: Path,
    config_path: Path | None = None,
    migrations_path: Path | None = None,
    models_path: Path | None = None,
) -> Config:
    """
    Load configuration from TOML file using Pydantic validation.

    A missing file yields the default configuration. Explicit
    ``migrations_path``/``models_path`` arguments override the file.

    Args:
        working_dir: Directory relative paths are resolved against
        config_path: Optional custom config path
        migrations_path: Optional override for the migrations directory
        models_path: Optional override for the models directory

    Returns:
        Config instance with validated values

    Raises:
        ValueError: If the TOML is malformed or config validation fails
        OSError: If the config file cannot be read
    """
    working_dir = expand_path(working_dir).resolve()
    if config_path is None:
        config_path = get_config_path(working_dir)

    data: dict[str, Any] = {}
    if config_path.exists():
        logger.info("Loading configuration from %s", config_path)
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    else:
        logger.debug("No configuration file at %s, using defaults", config_path)

    paths = data.get("paths", {})
    database = data.get("database", {})
    run = data.get("run", {})

    # Flatten TOML structure to match Config model fields
    flat_data: dict[str, Any] = {
        "working_dir": working_dir,
        "migrations_dir": paths.get("migrations_dir", DEFAULT_MIGRATIONS_DIR),
        "models_dir": paths.get("models_dir", DEFAULT_MODELS_DIR),
        "database_file": database.get("file", "db.json"),
        "tracking_table": database.get("tracking_table", "migration_meta"),
        "script_suffixes": run.get("script_suffixes", [".py"]),
        "use_transaction": run.get("use_transaction", True),
        "strict_range": run.get("strict_range", False),
    }
    if migrations_path is not None:
        flat_data["migrations_dir"] = migrations_path
    if models_path is not None:
        flat_data["models_dir"] = models_path

    return Config.model_validate(flat_data)


def init_project(config: Config, config_path: Path | None = None) -> Path:
    """
    Create the migrations and models directories and write a config file.

    An existing config file is left untouched.

    Args:
        config: Configuration describing the layout
        config_path: Optional custom config path

    Returns:
        Path to the config file
    """
    ensure_dir(config.migrations_dir)
    ensure_dir(config.models_dir)

    if config_path is None:
        config_path = get_config_path(config.working_dir)

    if config_path.exists():
        logger.info("Keeping existing configuration at %s", config_path)
    else:
        config.save(config_path)
        logger.info("Wrote default configuration to %s", config_path)

    return config_path
