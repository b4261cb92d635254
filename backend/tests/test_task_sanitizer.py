# ruff: noqa: INP001
"""Task sanitizer normalization rules."""

from __future__ import annotations

import pytest

from tasksync.models.tasks import DEFAULT_PRIMARY_COLOR, DEFAULT_SECONDARY_COLOR
from tasksync.services.sanitizer import HEX_COLOR_PATTERN, sanitize_task, sanitize_tasks

NOW = 1_700_000_000_000
_CONTENT_FIELDS = ("id", "title", "desc", "mode", "percent", "start", "end", "c1", "c2")


def _one(raw: dict[str, object]) -> dict[str, object]:
    tasks = sanitize_tasks([raw], now=NOW)
    assert len(tasks) == 1
    return tasks[0].to_wire()


@pytest.mark.parametrize("raw", [None, "tasks", 42, {"id": "1"}, ("a",)])
def test_non_list_input_yields_empty_list(raw: object) -> None:
    assert sanitize_tasks(raw, now=NOW) == []


def test_drops_elements_without_usable_id_and_keeps_order() -> None:
    raw = [
        {"id": "b", "title": "second"},
        None,
        "not-an-object",
        {"title": "no id"},
        {"id": 7},
        {"id": ""},
        {"id": "a", "title": "first"},
        {"id": "b", "title": "duplicate id"},
    ]

    tasks = sanitize_tasks(raw, now=NOW)

    assert [task.id for task in tasks] == ["b", "a", "b"]
    assert [task.title for task in tasks] == ["second", "first", "duplicate id"]
    assert len(tasks) <= len(raw)


def test_defaults_for_bare_task() -> None:
    task = _one({"id": "x"})

    assert task == {
        "id": "x",
        "title": "",
        "desc": "",
        "mode": "manual",
        "percent": 0,
        "start": None,
        "end": None,
        "c1": DEFAULT_PRIMARY_COLOR,
        "c2": DEFAULT_SECONDARY_COLOR,
        "focused": False,
        "createdAt": NOW,
        "updatedAt": NOW,
    }


@pytest.mark.parametrize(
    ("raw_percent", "expected"),
    [
        (150, 100),
        (-5, 0),
        (42, 42),
        (99.9, 99),
        ("37", 37),
        ("42abc", 42),
        ("  8", 8),
        ("3.9", 3),
        ("abc", 0),
        ("", 0),
        (None, 0),
        (True, 0),
        (float("nan"), 0),
        (float("inf"), 0),
        ([50], 0),
    ],
)
def test_manual_percent_is_parsed_and_clamped(raw_percent: object, expected: int) -> None:
    assert _one({"id": "p", "mode": "manual", "percent": raw_percent})["percent"] == expected


@pytest.mark.parametrize("mode", ["Time", "TIME", "", None, 1, "other"])
def test_anything_but_exact_time_is_manual(mode: object) -> None:
    assert _one({"id": "m", "mode": mode})["mode"] == "manual"


def test_time_mode_forces_percent_to_zero() -> None:
    task = _one({"id": "t", "mode": "time", "percent": 80})

    assert task["mode"] == "time"
    assert task["percent"] == 0


def test_time_mode_swaps_inverted_window() -> None:
    task = _one({"id": "2", "mode": "time", "start": "2024-01-10", "end": "2024-01-01"})

    assert task["start"] == "2024-01-01T00:00:00.000Z"
    assert task["end"] == "2024-01-10T00:00:00.000Z"


def test_time_mode_normalizes_offsets_and_epoch_millis() -> None:
    task = _one(
        {
            "id": "t",
            "mode": "time",
            "start": "2024-03-01T10:30:00+02:00",
            "end": 1_709_300_000_123,
        },
    )

    assert task["start"] == "2024-03-01T08:30:00.000Z"
    assert task["end"] == "2024-03-01T13:33:20.123Z"


@pytest.mark.parametrize("bad", ["", "not a date", "2024-13-45", None, 0, False, float("nan")])
def test_unparseable_dates_become_null(bad: object) -> None:
    task = _one({"id": "t", "mode": "time", "start": bad, "end": "2024-05-01T00:00:00Z"})

    assert task["start"] is None
    assert task["end"] == "2024-05-01T00:00:00.000Z"


def test_manual_mode_discards_time_window() -> None:
    task = _one({"id": "m", "start": "2024-01-01", "end": "2024-01-02"})

    assert task["start"] is None
    assert task["end"] is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("#abc", "#abc"),
        ("#A1B2C3", "#A1B2C3"),
        ("  #fff  ", "#fff"),
        ("#abcd", DEFAULT_PRIMARY_COLOR),
        ("abc", DEFAULT_PRIMARY_COLOR),
        ("#ggg", DEFAULT_PRIMARY_COLOR),
        ("", DEFAULT_PRIMARY_COLOR),
        (None, DEFAULT_PRIMARY_COLOR),
        (123, DEFAULT_PRIMARY_COLOR),
    ],
)
def test_colors_fall_back_to_defaults(value: object, expected: str) -> None:
    task = _one({"id": "c", "c1": value, "c2": value})

    assert task["c1"] == expected
    expected_c2 = DEFAULT_SECONDARY_COLOR if expected == DEFAULT_PRIMARY_COLOR else expected
    assert task["c2"] == expected_c2
    assert HEX_COLOR_PATTERN.match(str(task["c1"]))
    assert HEX_COLOR_PATTERN.match(str(task["c2"]))


def test_title_and_desc_are_truncated_by_characters() -> None:
    task = _one({"id": "t", "title": "é" * 250, "desc": "x" * 2500})

    assert task["title"] == "é" * 200
    assert len(str(task["desc"])) == 2000


def test_non_string_text_is_stringified() -> None:
    task = _one({"id": "t", "title": 12, "desc": True})

    assert task["title"] == "12"
    assert task["desc"] == "true"


@pytest.mark.parametrize(
    ("created_at", "expected"),
    [
        (1_600_000_000_000, 1_600_000_000_000),
        (0, NOW),
        (-1, NOW),
        ("1600000000000", NOW),
        (True, NOW),
        (None, NOW),
    ],
)
def test_created_at_is_preserved_only_when_positive_number(
    created_at: object,
    expected: int,
) -> None:
    task = _one({"id": "t", "createdAt": created_at, "updatedAt": 5})

    assert task["createdAt"] == expected
    assert task["updatedAt"] == NOW


def test_focused_is_coerced_to_bool() -> None:
    assert _one({"id": "f", "focused": 1})["focused"] is True
    assert _one({"id": "f", "focused": ""})["focused"] is False


def test_sanitize_task_returns_none_for_dropped_element() -> None:
    assert sanitize_task({"id": None}, now=NOW) is None


def test_sanitizing_canonical_output_only_advances_updated_at() -> None:
    raw = [
        {"id": "1", "title": "x" * 300, "percent": "250", "c1": "#zzz"},
        {"id": "2", "mode": "time", "start": "2024-02-02", "end": "2024-01-01T12:00:00+01:00"},
        {"id": "3", "mode": "time", "start": "0999-01-01", "end": "0999-06-30T08:15:00Z"},
    ]
    first = [task.to_wire() for task in sanitize_tasks(raw, now=NOW)]

    second = [task.to_wire() for task in sanitize_tasks(first, now=NOW + 5_000)]

    for before, after in zip(first, second, strict=True):
        assert {key: before[key] for key in _CONTENT_FIELDS} == {
            key: after[key] for key in _CONTENT_FIELDS
        }
        assert after["createdAt"] == before["createdAt"]
        assert after["updatedAt"] == NOW + 5_000
    assert str(second[1]["end"]) >= str(second[1]["start"])


def test_years_before_1000_are_zero_padded() -> None:
    task = _one({"id": "old", "mode": "time", "start": "0999-01-01", "end": "1970-01-02"})

    assert task["start"] == "0999-01-01T00:00:00.000Z"
    assert task["end"] == "1970-01-02T00:00:00.000Z"
