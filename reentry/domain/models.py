"""Core domain models for Reentry.

These models have ZERO dependencies on storage, CLI, or any framework.
The vocabulary is Session, Capture, ContextElements and StorageSchema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

CURRENT_SCHEMA_VERSION = 1

MIN_FEEDBACK_RATING = 1
MAX_FEEDBACK_RATING = 5


def require_aware(dt: datetime, what: str) -> None:
    """Raise ValueError if dt carries no UTC offset."""
    if dt.tzinfo is None or dt.utcoffset() is None:
        raise ValueError(f"{what} must be timezone-aware, got naive {dt.isoformat()}")


class CaptureType(Enum):
    """How a capture was taken."""

    QUICK = "quick"
    INTERRUPT = "interrupt"


@dataclass
class Session:
    """A bounded period of work on one project.

    Mutated in place as it progresses: exit time, capture reference and
    feedback are filled in after creation. Sessions are never deleted.
    """

    id: str
    project_id: str
    entry_time: datetime
    exit_time: datetime | None = None
    capture_id: str | None = None
    """Capture taken when the session was left, if any."""

    feedback_rating: int | None = None
    """1–5 rating of how useful the restart briefing was."""

    feedback_time: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.exit_time is None

    @property
    def duration(self) -> timedelta | None:
        if self.exit_time is None:
            return None
        return self.exit_time - self.entry_time

    def validate(self) -> None:
        """Raise ValueError if the session breaks one of its invariants."""
        if not self.id:
            raise ValueError("Session id must not be empty")
        require_aware(self.entry_time, f"Session '{self.id}' entry time")
        if self.exit_time is not None:
            require_aware(self.exit_time, f"Session '{self.id}' exit time")
        if self.feedback_time is not None:
            require_aware(self.feedback_time, f"Session '{self.id}' feedback time")
        if self.exit_time is not None and self.exit_time < self.entry_time:
            raise ValueError(f"Session '{self.id}' exit time is before entry time")
        if self.feedback_rating is not None and not (
            MIN_FEEDBACK_RATING <= self.feedback_rating <= MAX_FEEDBACK_RATING
        ):
            raise ValueError(
                f"Session '{self.id}' feedback rating {self.feedback_rating} "
                f"is outside {MIN_FEEDBACK_RATING}-{MAX_FEEDBACK_RATING}"
            )
        if self.feedback_time is not None and self.feedback_rating is None:
            raise ValueError(f"Session '{self.id}' has feedback time without a rating")


@dataclass(frozen=True)
class ContextElements:
    """Structured context pulled out of a capture's free-form input.

    A field of None means nothing of that kind was found. Empty lists are
    not used to signal absence.
    """

    original_input: str
    intent: list[str] | None = None
    last_action: list[str] | None = None
    open_loops: list[str] | None = None
    next_action: list[str] | None = None

    @classmethod
    def from_lists(
        cls,
        original_input: str,
        intent: list[str] | None = None,
        last_action: list[str] | None = None,
        open_loops: list[str] | None = None,
        next_action: list[str] | None = None,
    ) -> ContextElements:
        """Build context elements, normalising empty lists to None."""
        return cls(
            original_input=original_input,
            intent=intent or None,
            last_action=last_action or None,
            open_loops=open_loops or None,
            next_action=next_action or None,
        )

    @property
    def is_empty(self) -> bool:
        return not any((self.intent, self.last_action, self.open_loops, self.next_action))


@dataclass(frozen=True)
class Capture:
    """An immutable snapshot of what the user was doing when they left.

    original_input is kept verbatim — never trimmed, truncated or rewritten.
    """

    id: str
    session_id: str
    type: CaptureType
    original_input: str
    context_elements: ContextElements
    timestamp: datetime

    def validate(self) -> None:
        if not self.id:
            raise ValueError("Capture id must not be empty")
        if not self.original_input:
            raise ValueError(f"Capture '{self.id}' has empty original input")
        require_aware(self.timestamp, f"Capture '{self.id}' timestamp")


@dataclass
class StorageSchema:
    """The single aggregate persisted to disk.

    sessions_by_project is a derived index over sessions; it is kept in
    sync on every write and rebuilt on load.
    """

    sessions: dict[str, Session] = field(default_factory=dict)
    sessions_by_project: dict[str, list[str]] = field(default_factory=dict)
    captures: dict[str, Capture] = field(default_factory=dict)
    version: int = CURRENT_SCHEMA_VERSION

    def rebuild_project_index(self) -> None:
        """Make sessions_by_project agree with sessions.

        Ids already in the index keep their order; ids that point at a
        missing session or the wrong project are dropped; sessions missing
        from the index are appended by entry time.
        """
        index: dict[str, list[str]] = {}
        seen: set[str] = set()
        for project_id, ids in self.sessions_by_project.items():
            for session_id in ids:
                session = self.sessions.get(session_id)
                if session is None or session.project_id != project_id:
                    continue
                if session_id in seen:
                    continue
                index.setdefault(project_id, []).append(session_id)
                seen.add(session_id)

        missing = [s for s in self.sessions.values() if s.id not in seen]
        for session in sorted(missing, key=lambda s: s.entry_time):
            index.setdefault(session.project_id, []).append(session.id)

        self.sessions_by_project = index


def create_empty_schema() -> StorageSchema:
    """Return a fresh, empty schema at the current version."""
    return StorageSchema(version=CURRENT_SCHEMA_VERSION)
