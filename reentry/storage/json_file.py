"""Single-file JSON persistence with atomic writes and rotated backups.

Layout (one directory, fixed names):
  data.json           current snapshot
  data.temp.json      staging file, only left behind by a crash mid-save
  data.backup.N.json  N snapshots back (N = 1..backup_count)

Save order: stage to the temp file, rotate backups by copying, then
os.replace() the temp file over data.json. Anything that fails before the
replace leaves data.json untouched.

Load order: data.json, then data.backup.1..N, first one that decodes wins;
an empty schema if none do. Loading never writes.
"""

from __future__ import annotations

import logging
import os
import shutil
import threading
from contextlib import suppress
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from reentry.domain.models import StorageSchema, create_empty_schema
from reentry.storage.errors import InvalidSchemaError, PersistenceError
from reentry.storage.serializer import deserialize, serialize

logger = logging.getLogger(__name__)

PRIMARY_NAME = "data.json"
TEMP_NAME = "data.temp.json"
DEFAULT_BACKUP_COUNT = 3

_locks: dict[Path, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(directory: Path) -> threading.Lock:
    """Return the save lock shared by every engine writing to directory."""
    key = directory.expanduser().resolve()
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.Lock()
        return lock


@dataclass(frozen=True)
class SnapshotInfo:
    """What is on disk in one snapshot slot."""

    path: Path
    exists: bool
    size: int | None = None
    modified: datetime | None = None
    valid: bool = False
    sessions: int = 0
    captures: int = 0


class JsonFilePersistence:
    """Commits StorageSchema snapshots to a directory and reads them back."""

    def __init__(
        self,
        directory: Path,
        backup_count: int = DEFAULT_BACKUP_COUNT,
        consult_backups_when_missing: bool = False,
    ) -> None:
        if backup_count < 0:
            raise ValueError(f"backup_count must be >= 0, got {backup_count}")
        self._directory = Path(directory).expanduser()
        self._backup_count = backup_count
        self._consult_backups_when_missing = consult_backups_when_missing
        self._lock = _lock_for(self._directory)

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def backup_count(self) -> int:
        return self._backup_count

    @property
    def primary_path(self) -> Path:
        return self._directory / PRIMARY_NAME

    @property
    def temp_path(self) -> Path:
        return self._directory / TEMP_NAME

    def backup_path(self, n: int) -> Path:
        return self._directory / f"data.backup.{n}.json"

    def snapshot_paths(self) -> list[Path]:
        """Primary first, then backups from newest to oldest."""
        return [self.primary_path] + [
            self.backup_path(n) for n in range(1, self._backup_count + 1)
        ]

    # ── Save ───────────────────────────────────────────────────

    def save(self, schema: StorageSchema) -> None:
        """Atomically replace data.json with a snapshot of schema.

        Raises:
            PersistenceError: if any filesystem step fails.
        """
        self.write(serialize(schema))

    def write(self, payload: bytes) -> None:
        """Atomically replace data.json with an already serialized snapshot.

        A failed save removes the staging file again.
        """
        with self._lock:
            self._ensure_directory()
            self._write_temp(payload)
            try:
                if self.primary_path.exists():
                    self._rotate_backups()
                self._commit()
            except PersistenceError:
                with suppress(OSError):
                    self.temp_path.unlink()
                raise
        logger.debug("Saved %d bytes to %s", len(payload), self.primary_path)

    def _ensure_directory(self) -> None:
        try:
            self._directory.mkdir(parents=True, exist_ok=True, mode=0o700)
        except OSError as err:
            raise PersistenceError("create directory", self._directory, err) from err

    def _write_temp(self, payload: bytes) -> None:
        try:
            with open(self.temp_path, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
        except OSError as err:
            with suppress(OSError):
                self.temp_path.unlink()
            raise PersistenceError("write", self.temp_path, err) from err
        with suppress(OSError):
            os.chmod(self.temp_path, 0o600)

    def _rotate_backups(self) -> None:
        # Full copies. backup.N and backup.N-1 may be identical after a
        # crash mid-rotation.
        for n in range(self._backup_count, 1, -1):
            older = self.backup_path(n - 1)
            if older.exists():
                self._copy(older, self.backup_path(n))
        if self._backup_count:
            self._copy(self.primary_path, self.backup_path(1))

    def _copy(self, src: Path, dst: Path) -> None:
        try:
            shutil.copyfile(src, dst)
        except OSError as err:
            raise PersistenceError("copy backup to", dst, err) from err
        with suppress(OSError):
            os.chmod(dst, 0o600)

    def _commit(self) -> None:
        try:
            os.replace(self.temp_path, self.primary_path)
        except OSError as err:
            raise PersistenceError("rename staging file to", self.primary_path, err) from err

    # ── Load ───────────────────────────────────────────────────

    def load(self) -> StorageSchema:
        """Return the newest snapshot that decodes, or an empty schema."""
        primary = self.primary_path
        if not primary.exists() and not self._consult_backups_when_missing:
            logger.debug("No data file at %s, starting empty", primary)
            return create_empty_schema()

        for path in self.snapshot_paths():
            schema = self._try_load(path)
            if schema is not None:
                if path != primary:
                    logger.warning("Recovered data from backup %s", path)
                return schema

        logger.warning("No readable snapshot in %s, starting empty", self._directory)
        return create_empty_schema()

    def _try_load(self, path: Path) -> StorageSchema | None:
        if not path.exists():
            return None
        try:
            return deserialize(path.read_bytes())
        except InvalidSchemaError as err:
            logger.warning("Ignoring invalid snapshot %s: %s", path, err)
        except OSError as err:
            logger.warning("Could not read snapshot %s: %s", path, err)
        return None

    # ── Inspection ─────────────────────────────────────────────

    def describe(self) -> list[SnapshotInfo]:
        """Report the state of the primary file and each backup slot."""
        infos = []
        for path in self.snapshot_paths():
            if not path.exists():
                infos.append(SnapshotInfo(path=path, exists=False))
                continue
            stat = path.stat()
            schema = self._try_load(path)
            infos.append(
                SnapshotInfo(
                    path=path,
                    exists=True,
                    size=stat.st_size,
                    modified=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
                    valid=schema is not None,
                    sessions=len(schema.sessions) if schema else 0,
                    captures=len(schema.captures) if schema else 0,
                )
            )
        return infos
