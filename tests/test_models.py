"""Tests for the domain models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from reentry.domain.models import (
    CURRENT_SCHEMA_VERSION,
    Capture,
    CaptureType,
    ContextElements,
    Session,
    StorageSchema,
    create_empty_schema,
)

T0 = datetime(2026, 1, 1, 10, 0, 0, tzinfo=UTC)


def _session(session_id: str = "s1", project_id: str = "p1", hours: int = 0) -> Session:
    return Session(id=session_id, project_id=project_id, entry_time=T0 + timedelta(hours=hours))


class TestSession:
    def test_new_session_is_open(self) -> None:
        session = _session()
        assert session.is_open
        assert session.duration is None

    def test_duration(self) -> None:
        session = _session()
        session.exit_time = T0 + timedelta(minutes=45)
        assert not session.is_open
        assert session.duration == timedelta(minutes=45)

    def test_valid_session_passes(self) -> None:
        session = _session()
        session.exit_time = T0 + timedelta(hours=1)
        session.feedback_rating = 5
        session.feedback_time = T0 + timedelta(hours=2)
        session.validate()

    def test_exit_before_entry_rejected(self) -> None:
        session = _session()
        session.exit_time = T0 - timedelta(seconds=1)
        with pytest.raises(ValueError, match="exit time"):
            session.validate()

    def test_feedback_time_without_rating_rejected(self) -> None:
        session = _session()
        session.feedback_time = T0
        with pytest.raises(ValueError, match="without a rating"):
            session.validate()

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range_rejected(self, rating: int) -> None:
        session = _session()
        session.feedback_rating = rating
        with pytest.raises(ValueError, match="outside"):
            session.validate()


    @pytest.mark.parametrize("field_name", ["entry_time", "exit_time", "feedback_time"])
    def test_naive_timestamps_rejected(self, field_name: str) -> None:
        session = _session()
        session.exit_time = T0 + timedelta(hours=1)
        session.feedback_rating = 3
        session.feedback_time = T0 + timedelta(hours=2)
        setattr(session, field_name, getattr(session, field_name).replace(tzinfo=None))
        with pytest.raises(ValueError, match="timezone-aware"):
            session.validate()


class TestContextElements:
    def test_from_lists_normalises_empty_lists(self) -> None:
        ctx = ContextElements.from_lists("text", intent=[], next_action=["ship it"])
        assert ctx.intent is None
        assert ctx.next_action == ["ship it"]
        assert not ctx.is_empty

    def test_only_original_input_is_empty(self) -> None:
        assert ContextElements(original_input="hello").is_empty


class TestCapture:
    def test_empty_input_rejected(self) -> None:
        capture = Capture(
            id="c1",
            session_id="s1",
            type=CaptureType.QUICK,
            original_input="",
            context_elements=ContextElements(original_input=""),
            timestamp=T0,
        )
        with pytest.raises(ValueError, match="empty original input"):
            capture.validate()

    def test_naive_timestamp_rejected(self) -> None:
        capture = Capture(
            id="c1",
            session_id="s1",
            type=CaptureType.QUICK,
            original_input="note",
            context_elements=ContextElements(original_input="note"),
            timestamp=datetime(2026, 1, 1, 10, 0, 0),
        )
        with pytest.raises(ValueError, match="timezone-aware"):
            capture.validate()


class TestRebuildProjectIndex:
    def test_empty_schema(self) -> None:
        schema = create_empty_schema()
        assert schema.version == CURRENT_SCHEMA_VERSION
        assert schema.sessions == {}
        assert schema.sessions_by_project == {}
        assert schema.captures == {}

    def test_keeps_existing_order(self) -> None:
        s1, s2 = _session("s1", hours=1), _session("s2", hours=0)
        schema = StorageSchema(
            sessions={"s1": s1, "s2": s2},
            sessions_by_project={"p1": ["s1", "s2"]},
        )
        schema.rebuild_project_index()
        assert schema.sessions_by_project == {"p1": ["s1", "s2"]}

    def test_drops_dangling_and_duplicate_ids(self) -> None:
        schema = StorageSchema(
            sessions={"s1": _session("s1")},
            sessions_by_project={"p1": ["s1", "ghost", "s1"]},
        )
        schema.rebuild_project_index()
        assert schema.sessions_by_project == {"p1": ["s1"]}

    def test_moves_id_to_its_real_project(self) -> None:
        schema = StorageSchema(
            sessions={"s1": _session("s1", project_id="p2")},
            sessions_by_project={"p1": ["s1"]},
        )
        schema.rebuild_project_index()
        assert schema.sessions_by_project == {"p2": ["s1"]}

    def test_appends_missing_sessions_by_entry_time(self) -> None:
        schema = StorageSchema(
            sessions={
                "late": _session("late", hours=5),
                "early": _session("early", hours=1),
            },
        )
        schema.rebuild_project_index()
        assert schema.sessions_by_project == {"p1": ["early", "late"]}
