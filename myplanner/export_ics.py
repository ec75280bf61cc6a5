"""
iCalendar (.ics) export.

Each weekly slot of a course becomes one recurring event
(RRULE:FREQ=WEEKLY) that can be imported into:
- Google Calendar
- Outlook
- Apple Calendar

The first occurrence is the first date on or after term_start that falls on
the slot's day.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable

from myplanner.days import first_occurrence
from myplanner.model import Course


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(day: date, time_hh_mm: str) -> str:
    """
    Convert date + time to ICS local datetime string 'YYYYMMDDTHHMM00'.
    """
    dt = datetime.strptime(f"{day.isoformat()} {time_hh_mm}", "%Y-%m-%d %H:%M")
    return dt.strftime("%Y%m%dT%H%M00")


def export_courses_to_ics(
    courses: Iterable[Course],
    out_path: str | Path,
    term_start: date,
    weeks: int = 16,
) -> int:
    """
    Export weekly course slots to an .ics file. Returns number of exported events.
    """
    if weeks < 1:
        raise ValueError("weeks must be >= 1")

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//MyPlanner//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    count = 0
    for course in courses:
        for idx, slot in enumerate(course.schedule):
            try:
                first = first_occurrence(slot.day_of_week, term_start)
                dtstart = _dt_local(first, slot.start_time)
                dtend = _dt_local(first, slot.end_time)
            except ValueError:
                # malformed slot in the cache; skip it rather than the whole file
                continue

            summary = course.name or "MyPlanner Course"
            location = slot.location or course.classroom

            lines.append("BEGIN:VEVENT")
            lines.append(f"UID:{_ics_escape(f'{course.id}-{idx}')}@myplanner")
            lines.append(f"DTSTAMP:{dtstamp}")
            lines.append(f"DTSTART:{dtstart}")
            lines.append(f"DTEND:{dtend}")
            lines.append(f"RRULE:FREQ=WEEKLY;COUNT={weeks}")
            lines.append(f"SUMMARY:{_ics_escape(summary)}")
            if location:
                lines.append(f"LOCATION:{_ics_escape(location)}")
            if course.instructor:
                lines.append(f"DESCRIPTION:{_ics_escape(course.instructor)}")
            lines.append("END:VEVENT")
            count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
