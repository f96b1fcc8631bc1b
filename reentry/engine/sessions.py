"""Session lifecycle on top of a SessionStore.

Creates sessions, closes them, and answers "how long was I away?".
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from reentry.domain.interfaces import SessionStore
from reentry.domain.models import Session, require_aware


@dataclass(frozen=True)
class TimeAway:
    """Time elapsed since a session ended, rounded down to one unit."""

    value: int
    unit: str
    """'minutes', 'hours', 'days' or 'unknown'."""

    formatted: str


UNKNOWN_TIME_AWAY = TimeAway(value=0, unit="unknown", formatted="unknown")


class SessionManager:
    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def create_session(self, project_id: str, now: datetime | None = None) -> Session:
        session = Session(
            id=str(uuid.uuid4()),
            project_id=project_id,
            entry_time=now or datetime.now(tz=UTC),
        )
        self._store.save_session(session)
        return session

    def close_session(self, session_id: str, exit_time: datetime) -> None:
        """Set the exit time and persist immediately.

        Unknown sessions and exit times before the entry time are ignored.
        """
        require_aware(exit_time, "Exit time")
        session = self._store.get_session(session_id)
        if session is None or exit_time < session.entry_time:
            return
        session.exit_time = exit_time
        self._store.save_session(session)
        self._store.immediate_save()

    def record_feedback(self, session_id: str, rating: int, now: datetime | None = None) -> None:
        self._store.save_feedback(session_id, rating, now or datetime.now(tz=UTC))
        self._store.immediate_save()

    def get_most_recent_session(self, project_id: str) -> Session | None:
        sessions = self._store.get_sessions_by_project(project_id)
        if not sessions:
            return None
        return max(sessions, key=lambda s: s.entry_time)

    def get_session_history(self, project_id: str) -> list[Session]:
        """Return a project's sessions, newest first."""
        sessions = self._store.get_sessions_by_project(project_id)
        return sorted(sessions, key=lambda s: s.entry_time, reverse=True)

    def calculate_time_away(self, session_id: str, now: datetime | None = None) -> TimeAway:
        session = self._store.get_session(session_id)
        if session is None or session.exit_time is None:
            return UNKNOWN_TIME_AWAY
        return compute_time_away(session.exit_time, now or datetime.now(tz=UTC))


def compute_time_away(exit_time: datetime, now: datetime) -> TimeAway:
    """Minutes under an hour, hours under two days, days beyond that."""
    seconds = int((now - exit_time).total_seconds())
    if seconds < 0:
        return UNKNOWN_TIME_AWAY

    minutes = seconds // 60
    hours = seconds // 3600
    if minutes < 60:
        return _time_away(minutes, "minute")
    if hours < 48:
        return _time_away(hours, "hour")
    return _time_away(seconds // 86400, "day")


def _time_away(value: int, unit: str) -> TimeAway:
    return TimeAway(
        value=value,
        unit=f"{unit}s",
        formatted=f"{value} {unit}{'s' if value != 1 else ''}",
    )
