"""Domain store interfaces.

These are pure protocols — no storage implementation details leak into domain.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from reentry.domain.models import Capture, ContextElements, Session

FailureListener = Callable[[Exception], None]


class SessionStore(Protocol):
    """Read/write contract that session and capture logic depends on."""

    def save_session(self, session: Session) -> None:
        """Upsert a session in memory. Idempotent on session id."""
        ...

    def get_session(self, session_id: str) -> Session | None:
        """Return a session by ID. None if not found."""
        ...

    def get_sessions_by_project(self, project_id: str) -> list[Session]:
        """Return a project's sessions in index order. Empty if unknown."""
        ...

    def save_capture(self, capture: Capture) -> None:
        ...

    def get_capture(self, capture_id: str) -> Capture | None:
        ...

    def save_feedback(self, session_id: str, rating: int, timestamp: datetime) -> None:
        """Record feedback on a session. No-op if the session is unknown."""
        ...

    def save(self) -> None:
        """Persist the current snapshot to disk."""
        ...

    def immediate_save(self) -> None:
        """Persist now, for writes that must be durable before continuing."""
        ...

    def on_failure(self, listener: FailureListener) -> None:
        ...


class ContextExtractor(Protocol):
    """Turns free-form capture text into structured context elements."""

    def extract(self, text: str) -> ContextElements:
        ...
