"""In-memory data store backed by a JSON file.

All reads and writes hit the cached StorageSchema. Nothing reaches disk
until save() / immediate_save() runs, either explicitly or from the
autosave thread, which only saves when there are unsaved changes.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from types import TracebackType

from reentry.config import StoreConfig
from reentry.domain.interfaces import FailureListener
from reentry.domain.models import (
    MAX_FEEDBACK_RATING,
    MIN_FEEDBACK_RATING,
    Capture,
    Session,
    create_empty_schema,
    require_aware,
)
from reentry.storage.errors import PersistenceError
from reentry.storage.json_file import JsonFilePersistence
from reentry.storage.serializer import serialize

logger = logging.getLogger(__name__)


class DataStore:
    """Cached StorageSchema with dirty tracking and periodic persistence.

    Implements the SessionStore protocol.
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        persistence: JsonFilePersistence | None = None,
    ) -> None:
        self._config = config or StoreConfig()
        self._persistence = persistence or JsonFilePersistence(
            self._config.data_dir,
            backup_count=self._config.backup_count,
            consult_backups_when_missing=self._config.consult_backups_when_missing,
        )
        self._data = create_empty_schema()
        self._dirty = False
        self._generation = 0
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._failure_listeners: list[FailureListener] = []
        self._autosave_thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def persistence(self) -> JsonFilePersistence:
        return self._persistence

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def _mark_dirty(self) -> None:
        self._dirty = True
        self._generation += 1

    # ── Lifecycle ──────────────────────────────────────────────

    def load(self) -> None:
        """Replace the in-memory data with the newest valid snapshot on disk."""
        schema = self._persistence.load()
        schema.rebuild_project_index()
        with self._lock:
            self._data = schema
            self._dirty = False
            self._generation += 1
        logger.debug(
            "Loaded %d session(s) and %d capture(s) from %s",
            len(schema.sessions),
            len(schema.captures),
            self._persistence.directory,
        )

    def reset(self) -> None:
        """Drop all in-memory data without touching disk."""
        with self._lock:
            self._data = create_empty_schema()
            self._dirty = False
            self._generation += 1

    def start_auto_save(self) -> None:
        """Start the autosave thread. Does nothing if it is already running."""
        if self._autosave_thread is not None and self._autosave_thread.is_alive():
            return
        self._stop_event.clear()
        self._autosave_thread = threading.Thread(
            target=self._auto_save_loop,
            name="reentry-autosave",
            daemon=True,
        )
        self._autosave_thread.start()
        logger.debug("Autosave started, interval=%ss", self._config.autosave_interval)

    def stop_auto_save(self) -> None:
        """Stop future autosave ticks. A save already running is allowed to finish."""
        thread = self._autosave_thread
        if thread is None:
            return
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join()
        self._autosave_thread = None
        logger.debug("Autosave stopped")

    @property
    def auto_save_running(self) -> bool:
        return self._autosave_thread is not None and self._autosave_thread.is_alive()

    def _auto_save_loop(self) -> None:
        while not self._stop_event.wait(self._config.autosave_interval):
            if not self._dirty:
                continue
            try:
                self.save()
            except PersistenceError:
                # Listeners have been told; still dirty, so the next tick retries.
                logger.warning("Autosave failed, retrying in %ss", self._config.autosave_interval)

    def on_failure(self, listener: FailureListener) -> None:
        self._failure_listeners.append(listener)

    def _notify_failure(self, error: PersistenceError) -> None:
        for listener in list(self._failure_listeners):
            try:
                listener(error)
            except Exception:
                logger.exception("Failure listener %r raised", listener)

    # ── Session operations ─────────────────────────────────────

    def save_session(self, session: Session) -> None:
        """Upsert a session and keep the project index in step.

        Raises:
            ValueError: if the session breaks one of its invariants.
        """
        session.validate()
        with self._lock:
            self._data.sessions[session.id] = session

            index = self._data.sessions_by_project
            for project_id, ids in list(index.items()):
                if project_id != session.project_id and session.id in ids:
                    ids.remove(session.id)
                    if not ids:
                        del index[project_id]

            project_sessions = index.setdefault(session.project_id, [])
            if session.id not in project_sessions:
                project_sessions.append(session.id)

            self._mark_dirty()

    def get_session(self, session_id: str) -> Session | None:
        return self._data.sessions.get(session_id)

    def get_sessions_by_project(self, project_id: str) -> list[Session]:
        with self._lock:
            ids = self._data.sessions_by_project.get(project_id, [])
            return [self._data.sessions[i] for i in ids if i in self._data.sessions]

    def list_projects(self) -> list[str]:
        with self._lock:
            return sorted(self._data.sessions_by_project)

    # ── Capture operations ─────────────────────────────────────

    def save_capture(self, capture: Capture) -> None:
        capture.validate()
        with self._lock:
            self._data.captures[capture.id] = capture
            self._mark_dirty()

    def get_capture(self, capture_id: str) -> Capture | None:
        return self._data.captures.get(capture_id)

    # ── Feedback operations ────────────────────────────────────

    def save_feedback(self, session_id: str, rating: int, timestamp: datetime) -> None:
        """Attach a rating to a session. Unknown sessions are ignored.

        Raises:
            ValueError: if rating is outside 1–5 or timestamp is naive.
        """
        if not MIN_FEEDBACK_RATING <= rating <= MAX_FEEDBACK_RATING:
            raise ValueError(
                f"Feedback rating must be {MIN_FEEDBACK_RATING}-{MAX_FEEDBACK_RATING}, got {rating}"
            )
        require_aware(timestamp, "Feedback time")
        with self._lock:
            session = self._data.sessions.get(session_id)
            if session is None:
                return
            session.feedback_rating = rating
            session.feedback_time = timestamp
            self._mark_dirty()

    # ── Persistence ────────────────────────────────────────────

    def save(self) -> None:
        """Write the current snapshot to disk.

        The snapshot is taken under the record lock; the file write happens
        outside it, so record operations carry on while the disk catches up.

        Raises:
            PersistenceError: after every failure listener has been called.
        """
        with self._save_lock:
            with self._lock:
                payload = serialize(self._data)
                generation = self._generation
            try:
                self._persistence.write(payload)
            except PersistenceError as err:
                logger.error("Save to %s failed: %s", self._persistence.directory, err)
                self._notify_failure(err)
                raise
            with self._lock:
                # Records changed during the write are still unsaved.
                if self._generation == generation:
                    self._dirty = False

    def immediate_save(self) -> None:
        """Persist now (used right after critical writes such as a capture)."""
        self.save()

    # ── Context manager ────────────────────────────────────────

    def __enter__(self) -> DataStore:
        self.load()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop_auto_save()
        if not self._dirty:
            return
        if exc_type is None:
            self.save()
            return
        try:
            self.save()
        except PersistenceError:
            logger.warning("Save on exit failed after an earlier error", exc_info=True)
