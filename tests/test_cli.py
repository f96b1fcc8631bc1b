"""Tests for the reentry CLI."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from reentry.cli.main import cli
from reentry.cli.sessions import _format_duration, _relative_time
from reentry.config import StoreConfig
from reentry.domain.models import Session
from reentry.storage.data_store import DataStore


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


def _run(data_dir: Path, *args: str) -> Result:
    runner = CliRunner()
    return runner.invoke(
        cli,
        ["--data-dir", str(data_dir), "--config", str(data_dir.parent / "none.yml"), *args],
    )


def _load(data_dir: Path) -> DataStore:
    store = DataStore(StoreConfig(data_dir=data_dir))
    store.load()
    return store


def _only_session(data_dir: Path, project_id: str = "proj") -> Session:
    sessions = _load(data_dir).get_sessions_by_project(project_id)
    assert len(sessions) == 1
    return sessions[0]


class TestStart:
    def test_creates_and_saves_session(self, data_dir: Path) -> None:
        result = _run(data_dir, "start", "proj")
        assert result.exit_code == 0
        assert "Started session" in result.output
        assert (data_dir / "data.json").exists()
        assert _only_session(data_dir).is_open

    def test_hints_at_previous_note(self, data_dir: Path) -> None:
        _run(data_dir, "start", "proj")
        session = _only_session(data_dir)
        _run(data_dir, "capture", session.id, "halfway through the migration")

        result = _run(data_dir, "start", "proj")
        assert result.exit_code == 0
        assert "Last time you left a note" in result.output


class TestCapture:
    def test_capture_by_prefix(self, data_dir: Path) -> None:
        _run(data_dir, "start", "proj")
        session = _only_session(data_dir)

        result = _run(data_dir, "capture", session.id[:8], "writing the rotation test")
        assert result.exit_code == 0
        assert "quick capture" in result.output

        stored = _only_session(data_dir)
        assert stored.capture_id is not None
        assert stored.exit_time is not None
        capture = _load(data_dir).get_capture(stored.capture_id)
        assert capture.original_input == "writing the rotation test"

    def test_interrupt_flag(self, data_dir: Path) -> None:
        _run(data_dir, "start", "proj")
        session = _only_session(data_dir)
        result = _run(data_dir, "capture", "--interrupt", session.id, "phone call")
        assert result.exit_code == 0
        assert "interrupt capture" in result.output

    def test_unknown_session(self, data_dir: Path) -> None:
        result = _run(data_dir, "capture", "zzz999", "text")
        assert result.exit_code == 0
        assert "No session found" in result.output

    def test_empty_text_fails(self, data_dir: Path) -> None:
        _run(data_dir, "start", "proj")
        session = _only_session(data_dir)
        result = _run(data_dir, "capture", session.id, "   ")
        assert result.exit_code == 1
        assert "Capture failed" in result.output


class TestFeedback:
    def test_records_rating(self, data_dir: Path) -> None:
        _run(data_dir, "start", "proj")
        session = _only_session(data_dir)
        result = _run(data_dir, "feedback", session.id, "4")
        assert result.exit_code == 0
        assert _only_session(data_dir).feedback_rating == 4

    def test_rating_out_of_range(self, data_dir: Path) -> None:
        _run(data_dir, "start", "proj")
        session = _only_session(data_dir)
        result = _run(data_dir, "feedback", session.id, "9")
        assert result.exit_code == 2

    def test_unknown_session(self, data_dir: Path) -> None:
        result = _run(data_dir, "feedback", "nope", "3")
        assert result.exit_code == 0
        assert "No session found" in result.output


class TestSessionsAndShow:
    def test_no_sessions(self, data_dir: Path) -> None:
        result = _run(data_dir, "sessions")
        assert result.exit_code == 0
        assert "No sessions found" in result.output

    def test_lists_every_project(self, data_dir: Path) -> None:
        _run(data_dir, "start", "alpha")
        _run(data_dir, "start", "beta")
        result = _run(data_dir, "sessions")
        assert result.exit_code == 0
        assert "alpha" in result.output
        assert "beta" in result.output

    def test_single_project(self, data_dir: Path) -> None:
        _run(data_dir, "start", "alpha")
        _run(data_dir, "start", "beta")
        result = _run(data_dir, "sessions", "alpha")
        assert "alpha" in result.output
        assert "beta" not in result.output

    def test_show_includes_capture(self, data_dir: Path) -> None:
        _run(data_dir, "start", "proj")
        session = _only_session(data_dir)
        _run(data_dir, "capture", session.id, "stuck on flaky test")

        result = _run(data_dir, "show", session.id[:8])
        assert result.exit_code == 0
        assert session.id in result.output
        assert "stuck on flaky test" in result.output

    def test_show_unknown(self, data_dir: Path) -> None:
        result = _run(data_dir, "show", "abc")
        assert "No session found" in result.output

    def test_read_commands_do_not_write(self, data_dir: Path) -> None:
        _run(data_dir, "start", "proj")
        before = (data_dir / "data.json").read_bytes()
        _run(data_dir, "sessions")
        _run(data_dir, "show", _only_session(data_dir).id)
        assert (data_dir / "data.json").read_bytes() == before
        assert not (data_dir / "data.backup.1.json").exists()


class TestStatus:
    def test_reports_files(self, data_dir: Path) -> None:
        _run(data_dir, "start", "proj")
        _run(data_dir, "start", "proj")
        (data_dir / "data.backup.1.json").write_text("garbage")

        result = _run(data_dir, "status")
        assert result.exit_code == 0
        assert "data.json" in result.output
        assert "CORRUPT" in result.output
        assert "missing" in result.output


class TestErrors:
    def test_save_failure_exits_1(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        result = _run(blocker / "data", "start", "proj")
        assert result.exit_code == 1
        assert "Could not save data" in result.output

    def test_invalid_config_is_usage_error(self, tmp_path: Path) -> None:
        config = tmp_path / "bad.yml"
        config.write_text("backup_count: -4\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "status"])
        assert result.exit_code == 2
        assert "backup_count" in result.output


class TestFormatting:
    def test_relative_time(self) -> None:
        assert "m ago" in _relative_time(datetime.now(tz=UTC) - timedelta(minutes=5))
        assert "d ago" in _relative_time(datetime.now(tz=UTC) - timedelta(days=3))

    def test_format_duration(self) -> None:
        start = datetime(2026, 1, 1, 10, tzinfo=UTC)
        assert _format_duration(start, start + timedelta(seconds=45)) == "45s"
        assert _format_duration(start, start + timedelta(minutes=5, seconds=23)) == "5m 23s"
        assert _format_duration(start, start + timedelta(hours=2, minutes=30)) == "2h 30m"
