"""Normalize untrusted task lists into canonical `Task` records.

Every field degrades to a default instead of failing, and elements that are not
objects or have no usable `id` are dropped. The function never raises for
malformed input.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime, timedelta

from tasksync.core.time import now_ms
from tasksync.models.tasks import (
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    DESC_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Task,
    TaskMode,
)

HEX_COLOR_PATTERN = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_INTEGER_PREFIX_PATTERN = re.compile(r"^\s*([+-]?\d+)")
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _safe_color(value: object, fallback: str) -> str:
    if isinstance(value, str):
        candidate = value.strip()
        if HEX_COLOR_PATTERN.match(candidate):
            return candidate
    return fallback


def _coerce_text(value: object, limit: int) -> str:
    if value is None or value is False or value == "" or value == 0:
        return ""
    if isinstance(value, str):
        text = value
    elif value is True:
        text = "true"
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)
    return text[:limit]


def _parse_percent(value: object) -> int:
    parsed = 0
    if isinstance(value, bool):
        parsed = 0
    elif isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        parsed = int(value) if math.isfinite(value) else 0
    elif isinstance(value, str):
        match = _INTEGER_PREFIX_PATTERN.match(value)
        parsed = int(match.group(1)) if match else 0
    return max(0, min(100, parsed))


def _parse_datetime(value: object) -> datetime | None:
    if not value or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            return _EPOCH + timedelta(milliseconds=value)
        if isinstance(value, str):
            normalized = value.strip()
            if normalized.endswith(("Z", "z")):
                normalized = f"{normalized[:-1]}+00:00"
            parsed = datetime.fromisoformat(normalized)
            if parsed.tzinfo is None:
                return parsed.replace(tzinfo=UTC)
            return parsed.astimezone(UTC)
    except (ValueError, OverflowError, OSError):
        return None
    return None


def _format_iso(value: datetime) -> str:
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _time_window(raw_start: object, raw_end: object) -> tuple[str | None, str | None]:
    start = _parse_datetime(raw_start)
    end = _parse_datetime(raw_end)
    # An inverted window would render as instantly complete.
    if start is not None and end is not None and end < start:
        start, end = end, start
    return (
        _format_iso(start) if start is not None else None,
        _format_iso(end) if end is not None else None,
    )


def _created_at(value: object, now: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return now
    if not math.isfinite(value) or value <= 0:
        return now
    return max(1, int(value))


def sanitize_task(raw: object, *, now: int) -> Task | None:
    """Return the canonical form of one element, or None when it must be dropped."""
    if not isinstance(raw, dict):
        return None
    task_id = raw.get("id")
    if not isinstance(task_id, str) or not task_id:
        return None

    mode: TaskMode = "time" if raw.get("mode") == "time" else "manual"
    if mode == "time":
        percent = 0
        start, end = _time_window(raw.get("start"), raw.get("end"))
    else:
        percent = _parse_percent(raw.get("percent"))
        start = end = None

    return Task(
        id=task_id,
        title=_coerce_text(raw.get("title"), TITLE_MAX_LENGTH),
        desc=_coerce_text(raw.get("desc"), DESC_MAX_LENGTH),
        mode=mode,
        percent=percent,
        start=start,
        end=end,
        c1=_safe_color(raw.get("c1"), DEFAULT_PRIMARY_COLOR),
        c2=_safe_color(raw.get("c2"), DEFAULT_SECONDARY_COLOR),
        focused=bool(raw.get("focused")),
        created_at=_created_at(raw.get("createdAt"), now),
        updated_at=now,
    )


def sanitize_tasks(raw_list: object, *, now: int | None = None) -> list[Task]:
    """Sanitize a client- or disk-supplied task list, preserving order."""
    if not isinstance(raw_list, list):
        return []
    timestamp = now if now is not None else now_ms()
    sanitized = (sanitize_task(item, now=timestamp) for item in raw_list)
    return [task for task in sanitized if task is not None]
