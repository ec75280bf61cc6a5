"""
Day-of-week convention adapter.

Inside the planner, day 0 is Monday and day 6 is Sunday.
Host calendar APIs usually count from Sunday (JavaScript getDay(), cron,
many calendar widgets). Every translation between the two goes through this
module instead of being inlined at call sites.

Python's own date.weekday() already uses Monday = 0, so from_date() needs no
shifting.
"""

from __future__ import annotations

from datetime import date, timedelta

from myplanner.errors import ValidationError

DAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _check(day: int, what: str) -> int:
    if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
        raise ValidationError(f"invalid {what}: {day!r} (expected 0..6)")
    return day


def from_native_weekday(native_day: int) -> int:
    """
    Sunday-first index (0 = Sunday) -> planner index (0 = Monday).
    """
    return (_check(native_day, "native weekday") + 6) % 7


def to_native_weekday(day: int) -> int:
    """
    Planner index (0 = Monday) -> Sunday-first index (0 = Sunday).
    """
    return (_check(day, "day_of_week") + 1) % 7


def from_date(d: date) -> int:
    """
    Planner day index of a calendar date.
    """
    return d.weekday()


def day_label(day: int) -> str:
    """
    Short label ("Mon"), or "?" for an out-of-range index.
    """
    if isinstance(day, int) and 0 <= day <= 6:
        return DAY_LABELS[day]
    return "?"


def parse_day(text: str) -> int:
    """
    Parse a day given as index ("0") or English name/prefix ("mon", "Monday").
    """
    t = text.strip().lower()
    if t.isdigit():
        return _check(int(t), "day_of_week")
    for i, name in enumerate(DAY_NAMES):
        if len(t) >= 3 and name.lower().startswith(t):
            return i
    raise ValidationError(f"unknown day: {text!r}")


def first_occurrence(day: int, on_or_after: date) -> date:
    """
    First date on or after `on_or_after` that falls on planner day `day`.
    """
    _check(day, "day_of_week")
    delta = (day - from_date(on_or_after)) % 7
    return on_or_after + timedelta(days=delta)
