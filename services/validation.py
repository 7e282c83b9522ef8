# Payload validation
"""
Checks for the plain dicts that arrive from the CLI, import files and the
HTTP API. Every failure is a ValidationError naming the offending field.
"""
import datetime as dt
from dataclasses import dataclass
from typing import Optional

from core import SOURCES, Rating, ValidationError
from core.timeutil import parse_timestamp


@dataclass(frozen=True)
class EntryPayload:
    text: str
    source_title: str
    captured_at: dt.datetime
    author: str = ""
    location: str = ""
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class ImportPayload:
    source: str
    entries: tuple[EntryPayload, ...]


@dataclass(frozen=True)
class NotePayload:
    text: str
    source_title: str
    author: str = ""
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReviewPayload:
    highlight_id: int
    rating: Rating


def _require_mapping(data, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValidationError(f"{what} must be an object")
    return data


def _required_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{key}' is required")
    return value.strip()


def _optional_str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"'{key}' must be a string")
    return value.strip()


def _timestamp(data: dict, key: str) -> dt.datetime:
    raw = data.get(key)
    if isinstance(raw, str):
        raw = raw.strip()
    if not raw:
        raise ValidationError(f"'{key}' is required")
    try:
        return parse_timestamp(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"'{key}' is not an ISO-8601 timestamp: {raw!r}") from exc


def parse_tags(value) -> tuple[str, ...]:
    """Tags arrive as a list of strings or a comma-separated string."""
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)) or not all(isinstance(t, str) for t in value):
        raise ValidationError("'tags' must be a list of strings")
    return tuple(t.strip() for t in value if t.strip())


def parse_entry(data) -> EntryPayload:
    data = _require_mapping(data, "entry")
    return EntryPayload(
        text=_required_str(data, "text"),
        source_title=_required_str(data, "source_title"),
        captured_at=_timestamp(data, "captured_at"),
        author=_optional_str(data, "author"),
        location=_optional_str(data, "location"),
        tags=parse_tags(data.get("tags")),
    )


def parse_import_payload(data) -> ImportPayload:
    data = _require_mapping(data, "import payload")
    source = data.get("source")
    if source not in SOURCES:
        raise ValidationError(f"'source' must be one of {', '.join(SOURCES)}")
    entries = data.get("entries")
    if not isinstance(entries, list) or not entries:
        raise ValidationError("'entries' must be a non-empty list")
    return ImportPayload(source=source, entries=tuple(parse_entry(e) for e in entries))


def parse_note_payload(data) -> NotePayload:
    data = _require_mapping(data, "note payload")
    return NotePayload(
        text=_required_str(data, "text"),
        source_title=_required_str(data, "source_title"),
        author=_optional_str(data, "author"),
        tags=parse_tags(data.get("tags")),
    )


def parse_review_payload(data) -> ReviewPayload:
    """Rating errors surface as InvalidRatingError, not ValidationError."""
    data = _require_mapping(data, "review payload")
    raw_id = data.get("highlight_id")
    if isinstance(raw_id, bool):
        raw_id = None
    try:
        highlight_id = int(raw_id)
    except (TypeError, ValueError) as exc:
        raise ValidationError("'highlight_id' must be an integer") from exc
    return ReviewPayload(highlight_id=highlight_id, rating=Rating.parse(data.get("rating")))


def parse_digest_payload(data) -> dt.datetime:
    data = _require_mapping(data, "digest payload")
    return _timestamp(data, "scheduled_for")


def optional_limit(value) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        limit = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("'limit' must be an integer") from exc
    if limit < 1:
        raise ValidationError("'limit' must be positive")
    return limit
