"""Storage exceptions for Reentry."""

from __future__ import annotations

from pathlib import Path


class StorageError(Exception):
    """Base class for data store failures."""


class InvalidSchemaError(StorageError):
    """Raised when bytes cannot be turned into a valid StorageSchema."""


class PersistenceError(StorageError):
    """Raised when a snapshot could not be committed to disk."""

    def __init__(self, step: str, path: Path, cause: OSError | None = None):
        self.step = step
        self.path = path
        self.cause = cause
        message = f"Failed to {step} {path}"
        if cause is not None:
            message += f": {cause.strerror or cause}"
        super().__init__(message)
