"""Tests for config module."""

from pathlib import Path

import pytest

from migrun.config import Config, get_config_path, init_project, load_config


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults(self, tmp_path: Path) -> None:
        """Test defaults when no config file exists."""
        config = load_config(tmp_path)

        assert config.working_dir == tmp_path.resolve()
        assert config.migrations_dir == tmp_path.resolve() / "migrations"
        assert config.models_dir == tmp_path.resolve() / "models"
        assert config.database_path == tmp_path.resolve() / "models" / "db.json"
        assert config.tracking_table == "migration_meta"
        assert config.script_suffixes == [".py"]
        assert config.use_transaction is True
        assert config.strict_range is False

    def test_does_not_write_file(self, tmp_path: Path) -> None:
        """Test that loading defaults leaves the project untouched."""
        load_config(tmp_path)

        assert list(tmp_path.iterdir()) == []

    def test_reads_toml(self, tmp_path: Path) -> None:
        """Test values from migrun.toml."""
        (tmp_path / "migrun.toml").write_text(
            "[paths]\n"
            'migrations_dir = "db/migrations"\n'
            'models_dir = "db"\n'
            "\n"
            "[database]\n"
            'file = "store.json"\n'
            'tracking_table = "applied"\n'
            "\n"
            "[run]\n"
            'script_suffixes = ["py", ".mig"]\n'
            "use_transaction = false\n"
            "strict_range = true\n",
            encoding="utf-8",
        )

        config = load_config(tmp_path)

        assert config.migrations_dir == tmp_path.resolve() / "db" / "migrations"
        assert config.database_path == tmp_path.resolve() / "db" / "store.json"
        assert config.tracking_table == "applied"
        assert config.script_suffixes == [".py", ".mig"]
        assert config.use_transaction is False
        assert config.strict_range is True

    def test_overrides_win(self, tmp_path: Path) -> None:
        """Test that explicit paths override the file."""
        (tmp_path / "migrun.toml").write_text(
            '[paths]\nmigrations_dir = "from-file"\n', encoding="utf-8"
        )
        absolute = tmp_path / "elsewhere" / "models"

        config = load_config(tmp_path, migrations_path=Path("cli"), models_path=absolute)

        assert config.migrations_dir == tmp_path.resolve() / "cli"
        assert config.models_dir == absolute.resolve()

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        """Test loading a config file outside the working directory."""
        config_file = tmp_path / "conf" / "custom.toml"
        config_file.parent.mkdir()
        config_file.write_text('[database]\ntracking_table = "custom"\n', encoding="utf-8")
        project = tmp_path / "project"
        project.mkdir()

        config = load_config(project, config_path=config_file)

        assert config.tracking_table == "custom"
        assert config.migrations_dir == project.resolve() / "migrations"

    def test_env_config_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test MIGRUN_CONFIG selecting the config file."""
        monkeypatch.setenv("MIGRUN_CONFIG", "settings/migrun.toml")

        assert get_config_path(tmp_path) == (tmp_path / "settings" / "migrun.toml").resolve()

    def test_invalid_value(self, tmp_path: Path) -> None:
        """Test that validation errors surface as ValueError."""
        (tmp_path / "migrun.toml").write_text(
            '[database]\ntracking_table = ""\n', encoding="utf-8"
        )

        with pytest.raises(ValueError):
            load_config(tmp_path)

    def test_malformed_toml(self, tmp_path: Path) -> None:
        """Test that a broken TOML file surfaces as ValueError."""
        (tmp_path / "migrun.toml").write_text("[paths\n", encoding="utf-8")

        with pytest.raises(ValueError):
            load_config(tmp_path)


class TestInitProject:
    """Tests for init_project function."""

    def test_creates_layout(self, tmp_path: Path) -> None:
        """Test creating directories and a config file that loads back."""
        config = Config(working_dir=tmp_path, tracking_table="applied")

        path = init_project(config)

        assert path == tmp_path.resolve() / "migrun.toml"
        assert (tmp_path / "migrations").is_dir()
        assert (tmp_path / "models").is_dir()
        assert 'migrations_dir = "migrations"' in path.read_text(encoding="utf-8")
        assert load_config(tmp_path).tracking_table == "applied"

    def test_keeps_existing_config(self, tmp_path: Path) -> None:
        """Test that an existing config file is not overwritten."""
        existing = tmp_path / "migrun.toml"
        existing.write_text('[database]\ntracking_table = "mine"\n', encoding="utf-8")

        init_project(Config(working_dir=tmp_path))

        assert load_config(tmp_path).tracking_table == "mine"
