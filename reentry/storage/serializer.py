"""JSON serializer for the storage schema.

Wire format (camelCase, pretty-printed):
  version            int (required, known versions only)
  sessions           {id: session}
  sessionsByProject  {projectId: [sessionId, ...]}
  captures           {id: capture}

Timestamps are ISO 8601 strings with a UTC offset. serialize() refuses
naive datetimes with ValueError; decoding reads a missing offset as UTC.
Optional fields with no value are omitted rather than written as null.
Every decoding problem surfaces as InvalidSchemaError so the loader can
fall back to a backup.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from reentry.domain.models import (
    CURRENT_SCHEMA_VERSION,
    Capture,
    CaptureType,
    ContextElements,
    Session,
    StorageSchema,
    require_aware,
)
from reentry.storage.errors import InvalidSchemaError

KNOWN_VERSIONS = frozenset({CURRENT_SCHEMA_VERSION})

_CONTEXT_LISTS = (
    ("intent", "intent"),
    ("last_action", "lastAction"),
    ("open_loops", "openLoops"),
    ("next_action", "nextAction"),
)


def serialize(schema: StorageSchema) -> bytes:
    """Encode a schema as pretty-printed UTF-8 JSON."""
    doc = {
        "version": schema.version,
        "sessions": {sid: _session_to_dict(s) for sid, s in schema.sessions.items()},
        "sessionsByProject": {pid: list(ids) for pid, ids in schema.sessions_by_project.items()},
        "captures": {cid: _capture_to_dict(c) for cid, c in schema.captures.items()},
    }
    return json.dumps(doc, indent=2, ensure_ascii=False).encode("utf-8")


def deserialize(data: bytes | str) -> StorageSchema:
    """Decode bytes produced by serialize().

    Raises:
        InvalidSchemaError: on malformed JSON, a missing or unknown version,
            or any record that cannot be rebuilt, breaks a record invariant, or is stored
            under a key other than its id.
    """
    try:
        doc = json.loads(data)
    except (ValueError, TypeError) as err:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise InvalidSchemaError(f"Malformed JSON: {err}") from err

    if not isinstance(doc, dict):
        raise InvalidSchemaError("Root document is not an object")

    version = doc.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        raise InvalidSchemaError(f"Missing or non-integer version: {version!r}")
    if version not in KNOWN_VERSIONS:
        raise InvalidSchemaError(f"Unknown schema version {version}")

    try:
        sessions = {
            sid: _dict_to_session(sid, raw) for sid, raw in _mapping(doc, "sessions").items()
        }
        captures = {
            cid: _dict_to_capture(cid, raw) for cid, raw in _mapping(doc, "captures").items()
        }
        index = {
            pid: [_require_str(i, "sessionsByProject") for i in ids]
            for pid, ids in _mapping(doc, "sessionsByProject").items()
        }
    except InvalidSchemaError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as err:
        raise InvalidSchemaError(f"Invalid record: {err!r}") from err

    return StorageSchema(
        sessions=sessions,
        sessions_by_project=index,
        captures=captures,
        version=version,
    )


def _dt_to_str(dt: datetime) -> str:
    require_aware(dt, "Timestamp")
    return dt.isoformat()


def _str_to_dt(s: Any) -> datetime:
    if not isinstance(s, str):
        raise InvalidSchemaError(f"Timestamp is not a string: {s!r}")
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError as err:
        raise InvalidSchemaError(f"Invalid timestamp {s!r}") from err
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def _opt_str_to_dt(s: Any) -> datetime | None:
    if s is None:
        return None
    return _str_to_dt(s)


def _mapping(doc: dict[str, Any], key: str) -> dict[str, Any]:
    value = doc.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidSchemaError(f"'{key}' is not an object")
    return value


def _require_str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise InvalidSchemaError(f"Expected string in {what}, got {value!r}")
    return value


def _session_to_dict(session: Session) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": session.id,
        "projectId": session.project_id,
        "entryTime": _dt_to_str(session.entry_time),
    }
    if session.exit_time is not None:
        d["exitTime"] = _dt_to_str(session.exit_time)
    if session.capture_id is not None:
        d["captureId"] = session.capture_id
    if session.feedback_rating is not None:
        d["feedbackRating"] = session.feedback_rating
    if session.feedback_time is not None:
        d["feedbackTime"] = _dt_to_str(session.feedback_time)
    return d


def _dict_to_session(key: str, raw: dict[str, Any]) -> Session:
    rating = raw.get("feedbackRating")
    if rating is not None and (isinstance(rating, bool) or not isinstance(rating, int)):
        raise InvalidSchemaError(f"feedbackRating is not an integer: {rating!r}")
    session = Session(
        id=_require_str(raw["id"], "session id"),
        project_id=_require_str(raw["projectId"], "session projectId"),
        entry_time=_str_to_dt(raw["entryTime"]),
        exit_time=_opt_str_to_dt(raw.get("exitTime")),
        capture_id=raw.get("captureId"),
        feedback_rating=rating,
        feedback_time=_opt_str_to_dt(raw.get("feedbackTime")),
    )
    if session.id != key:
        raise InvalidSchemaError(f"Session stored under '{key}' has id '{session.id}'")
    session.validate()
    return session


def _context_to_dict(ctx: ContextElements) -> dict[str, Any]:
    d: dict[str, Any] = {}
    for attr, key in _CONTEXT_LISTS:
        value = getattr(ctx, attr)
        if value is not None:
            d[key] = list(value)
    d["originalInput"] = ctx.original_input
    return d


def _dict_to_context(raw: dict[str, Any]) -> ContextElements:
    lists: dict[str, list[str] | None] = {}
    for attr, key in _CONTEXT_LISTS:
        value = raw.get(key)
        if value is None:
            lists[attr] = None
        elif isinstance(value, list):
            lists[attr] = [_require_str(v, f"contextElements.{key}") for v in value]
        else:
            raise InvalidSchemaError(f"contextElements.{key} is not a list")
    return ContextElements(
        original_input=_require_str(raw["originalInput"], "contextElements.originalInput"),
        **lists,
    )


def _capture_to_dict(capture: Capture) -> dict[str, Any]:
    return {
        "id": capture.id,
        "sessionId": capture.session_id,
        "type": capture.type.value,
        "originalInput": capture.original_input,
        "contextElements": _context_to_dict(capture.context_elements),
        "timestamp": _dt_to_str(capture.timestamp),
    }


def _dict_to_capture(key: str, raw: dict[str, Any]) -> Capture:
    try:
        capture_type = CaptureType(raw["type"])
    except ValueError as err:
        raise InvalidSchemaError(f"Unknown capture type {raw['type']!r}") from err
    capture = Capture(
        id=_require_str(raw["id"], "capture id"),
        session_id=_require_str(raw["sessionId"], "capture sessionId"),
        type=capture_type,
        original_input=_require_str(raw["originalInput"], "capture originalInput"),
        context_elements=_dict_to_context(raw["contextElements"]),
        timestamp=_str_to_dt(raw["timestamp"]),
    )
    if capture.id != key:
        raise InvalidSchemaError(f"Capture stored under '{key}' has id '{capture.id}'")
    capture.validate()
    return capture
