"""Capture recording — turn "what was I doing?" into a stored Capture.

A capture window is opened when the user leaves (quick) or is pulled away
(interrupt). Submitting text stores the Capture verbatim, links it to the
session, stamps the session's exit time and forces a save.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from reentry.domain.interfaces import ContextExtractor, SessionStore
from reentry.domain.models import Capture, CaptureType, ContextElements, require_aware
from reentry.storage.errors import PersistenceError

logger = logging.getLogger(__name__)

QUICK_CAPTURE_TIMEOUT = timedelta(seconds=30)
INTERRUPT_CAPTURE_TIMEOUT = timedelta(seconds=2)


@dataclass(frozen=True)
class CaptureWindow:
    """An open capture prompt for one session."""

    id: str
    session_id: str
    type: CaptureType
    started_at: datetime
    timeout: timedelta


@dataclass(frozen=True)
class CaptureResult:
    success: bool
    capture_id: str | None
    context_elements: ContextElements
    original_input: str
    timestamp: datetime
    error: str | None = None


class NullExtractor:
    """Extractor that finds nothing and keeps only the original input."""

    def extract(self, text: str) -> ContextElements:
        return ContextElements(original_input=text)


class CaptureRecorder:
    def __init__(self, store: SessionStore, extractor: ContextExtractor | None = None) -> None:
        self._store = store
        self._extractor = extractor or NullExtractor()

    def start_quick_capture(self, session_id: str, now: datetime | None = None) -> CaptureWindow:
        return self._open(session_id, CaptureType.QUICK, QUICK_CAPTURE_TIMEOUT, now)

    def start_interrupt_capture(
        self, session_id: str, now: datetime | None = None
    ) -> CaptureWindow:
        return self._open(session_id, CaptureType.INTERRUPT, INTERRUPT_CAPTURE_TIMEOUT, now)

    def _open(
        self,
        session_id: str,
        capture_type: CaptureType,
        timeout: timedelta,
        now: datetime | None,
    ) -> CaptureWindow:
        return CaptureWindow(
            id=str(uuid.uuid4()),
            session_id=session_id,
            type=capture_type,
            started_at=now or datetime.now(tz=UTC),
            timeout=timeout,
        )

    @staticmethod
    def is_timed_out(window: CaptureWindow, now: datetime | None = None) -> bool:
        return CaptureRecorder.remaining(window, now) == timedelta(0)

    @staticmethod
    def remaining(window: CaptureWindow, now: datetime | None = None) -> timedelta:
        elapsed = (now or datetime.now(tz=UTC)) - window.started_at
        return max(timedelta(0), window.timeout - elapsed)

    def submit_text(
        self, window: CaptureWindow, text: str, now: datetime | None = None
    ) -> CaptureResult:
        """Store text as a capture for the window's session.

        Returns a failed result for empty text or a failed save. Only a
        naive now raises (ValueError), before anything is stored.
        """
        timestamp = now or datetime.now(tz=UTC)
        require_aware(timestamp, "Capture time")
        if not text or not text.strip():
            return CaptureResult(
                success=False,
                capture_id=None,
                context_elements=ContextElements(original_input=text),
                original_input=text,
                timestamp=timestamp,
                error="Capture text is empty",
            )

        context = self._extractor.extract(text)
        capture = Capture(
            id=str(uuid.uuid4()),
            session_id=window.session_id,
            type=window.type,
            original_input=text,
            context_elements=context,
            timestamp=timestamp,
        )
        self._store.save_capture(capture)

        session = self._store.get_session(window.session_id)
        if session is not None:
            session.capture_id = capture.id
            if timestamp >= session.entry_time:
                session.exit_time = timestamp
            self._store.save_session(session)
        else:
            logger.warning("Capture %s refers to unknown session %s", capture.id, window.session_id)

        try:
            self._store.immediate_save()
        except PersistenceError as err:
            return CaptureResult(
                success=False,
                capture_id=capture.id,
                context_elements=context,
                original_input=text,
                timestamp=timestamp,
                error=str(err),
            )

        return CaptureResult(
            success=True,
            capture_id=capture.id,
            context_elements=context,
            original_input=text,
            timestamp=timestamp,
        )
