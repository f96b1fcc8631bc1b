"""Tests for the YAML store configuration loader."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from reentry.config import DATA_DIR_ENV, DEFAULT_DATA_DIR, StoreConfig, load_config


@pytest.fixture(autouse=True)
def _no_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(DATA_DIR_ENV, raising=False)


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yml"
    path.write_text(textwrap.dedent(content))
    return path


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "nope.yml")
        assert config == StoreConfig()
        assert config.data_dir == DEFAULT_DATA_DIR
        assert config.backup_count == 3
        assert config.autosave_interval == 30.0
        assert config.consult_backups_when_missing is False

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(_write(tmp_path, "")) == StoreConfig()

    def test_all_keys(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            f"""
            data_dir: {tmp_path / "data"}
            backup_count: 5
            autosave_interval: 2.5
            consult_backups_when_missing: true
            """,
        )
        config = load_config(path)
        assert config.data_dir == tmp_path / "data"
        assert config.backup_count == 5
        assert config.autosave_interval == 2.5
        assert config.consult_backups_when_missing is True

    def test_integer_interval_becomes_float(self, tmp_path: Path) -> None:
        config = load_config(_write(tmp_path, "autosave_interval: 10\n"))
        assert config.autosave_interval == 10.0
        assert isinstance(config.autosave_interval, float)

    def test_tilde_expanded(self, tmp_path: Path) -> None:
        config = load_config(_write(tmp_path, "data_dir: ~/notes\n"))
        assert config.data_dir == Path.home() / "notes"

    def test_env_overrides_data_dir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path / "from-env"))
        path = _write(tmp_path, "data_dir: /somewhere/else\nbackup_count: 1\n")
        config = load_config(path)
        assert config.data_dir == tmp_path / "from-env"
        assert config.backup_count == 1


class TestInvalidConfig:
    @pytest.mark.parametrize(
        "content, key",
        [
            ("backup_count: -1\n", "backup_count"),
            ("backup_count: three\n", "backup_count"),
            ("backup_count: true\n", "backup_count"),
            ("autosave_interval: 0\n", "autosave_interval"),
            ("autosave_interval: soon\n", "autosave_interval"),
            ("data_dir: [a, b]\n", "data_dir"),
        ],
    )
    def test_bad_value_raises(self, tmp_path: Path, content: str, key: str) -> None:
        with pytest.raises(ValueError, match=key):
            load_config(_write(tmp_path, content))

    def test_non_mapping_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="mapping"):
            load_config(_write(tmp_path, "- just\n- a list\n"))
