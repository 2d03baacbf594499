"""Route window helpers: next occurrence and short labels."""

from __future__ import annotations

import datetime
from typing import Any

DAY_LABELS = ("Dom", "Seg", "Ter", "Qua", "Qui", "Sex", "Sab")


def parse_time(value: str | None) -> tuple[int, int]:
    """Parse ``HH:MM[:SS]``; unparsable parts count as zero."""
    parts = (value or "").split(":")
    result = []
    for raw in (parts + ["0", "0"])[:2]:
        try:
            result.append(int(raw or 0))
        except ValueError:
            result.append(0)
    return result[0], result[1]


def js_weekday(date: datetime.date) -> int:
    """Weekday with 0 = Sunday, as stored on route windows."""
    return (date.weekday() + 1) % 7


def next_window_occurrence(
    window: dict[str, Any], base: datetime.datetime
) -> datetime.datetime:
    """The next start of a weekly window at or after ``base``."""
    day_diff = (int(window.get("weekday", 0)) - js_weekday(base.date()) + 7) % 7
    hour, minute = parse_time(window.get("start_time"))
    candidate = (base + datetime.timedelta(days=day_diff)).replace(
        hour=hour, minute=minute, second=0, microsecond=0
    )
    if day_diff == 0 and candidate <= base:
        candidate += datetime.timedelta(days=7)
    return candidate


def format_window_label(window: dict[str, Any]) -> str:
    weekday = int(window.get("weekday", 0))
    day_label = DAY_LABELS[weekday] if 0 <= weekday < 7 else f"Dia {weekday}"
    start = (window.get("start_time") or "")[:5]
    end = (window.get("end_time") or "")[:5]
    return f"{day_label} {start}-{end}"


def pick_next_window(
    windows: list[dict[str, Any]], base: datetime.datetime
) -> dict[str, Any] | None:
    """The active window that opens soonest after ``base``, with its date."""
    active = [w for w in windows if w.get("active", True)]
    if not active:
        return None
    best = min(active, key=lambda w: next_window_occurrence(w, base))
    return {
        **best,
        "label": format_window_label(best),
        "next_at": next_window_occurrence(best, base),
    }
