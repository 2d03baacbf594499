"""Utility functions for the application."""

from __future__ import annotations

import datetime
import re
import uuid
from typing import Any

UUID_REGEX = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def new_id() -> str:
    """Return a new document id."""
    return str(uuid.uuid4())


def is_uuid(value: Any) -> bool:
    """Check that a value is a UUID string (versions 1-5)."""
    return isinstance(value, str) and bool(UUID_REGEX.match(value))


def doc_to_dict(doc: Any) -> dict[str, Any] | None:
    """Convert a snapshot to a dict carrying its id, or None if missing."""
    if doc is None or not doc.exists:
        return None
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def docs_to_list(docs: Any) -> list[dict[str, Any]]:
    """Convert a stream of snapshots to a list of dicts."""
    result = []
    for doc in docs:
        data = doc.to_dict() or {}
        data["id"] = doc.id
        result.append(data)
    return result


def parse_iso_date(value: str) -> datetime.date:
    """Parse a YYYY-MM-DD string."""
    return datetime.date.fromisoformat(value)


def day_bounds(start: str, end: str) -> tuple[datetime.datetime, datetime.datetime]:
    """Return the UTC datetimes covering two ISO dates inclusively."""
    tz = datetime.timezone.utc
    start_dt = datetime.datetime.combine(
        parse_iso_date(start), datetime.time.min, tzinfo=tz
    )
    end_dt = datetime.datetime.combine(
        parse_iso_date(end), datetime.time.max, tzinfo=tz
    )
    return start_dt, end_dt
