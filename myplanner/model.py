"""
Central data model definitions used across the project.

Two kinds of records carry weekly schedules:
- Course: a course that already exists in the backend (has an id)
- OcrCandidateCourse: a course recognized from a timetable image (no id yet)

Both are normalized into ScheduledEntity by to_scheduled_entity() before they
reach the conflict detection code, so conflicts.py never has to guess which
shape it was given.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

from myplanner.errors import ValidationError

STATUSES = ("pending", "completed", "overdue")
TODO_KINDS = ("assignment", "exam", "custom_todo")

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


@dataclass(frozen=True)
class WeeklySlot:
    """
    One recurring weekly time interval.

    day_of_week: 0 = Monday ... 6 = Sunday
    start_time / end_time: zero-padded 24h "HH:MM"

    Because the format is fixed-width, plain string comparison orders times
    correctly.
    """

    day_of_week: int
    start_time: str
    end_time: str
    location: Optional[str] = field(default=None, compare=False)

    def to_backend(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "day_of_week": self.day_of_week,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }
        if self.location:
            out["location"] = self.location
        return out


@dataclass(frozen=True)
class ConflictRecord:
    """
    One overlapping pair: `slot` of the candidate vs `conflicting_slot` of another entity.

    Computed on demand, never persisted.
    """

    slot: WeeklySlot
    conflicting_entity_id: Optional[str]
    conflicting_entity_label: str
    conflicting_slot: WeeklySlot


@dataclass
class ScheduledEntity:
    """
    Anything that owns weekly slots and can conflict with others.

    `id` is None for candidates that do not exist in the backend yet.
    `source` points back at the Course / OcrCandidateCourse it was built from.
    """

    id: Optional[str]
    label: str
    slots: list[WeeklySlot]
    conflicts: list[ConflictRecord] = field(default_factory=list)
    source: Any = field(default=None, compare=False, repr=False)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


@dataclass
class Course:
    """
    Represents one course as stored in the backend.
    """

    id: str
    name: str
    schedule: list[WeeklySlot]
    course_code: str = ""
    instructor: str = ""
    classroom: str = ""
    color: str = "#3B82F6"
    source: Literal["manual", "google_classroom"] = "manual"

    def to_backend(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.name,
            "description": self.course_code,
            "instructor": self.instructor,
            "classroom": self.classroom,
            "color": self.color,
            "is_google_classroom": self.source == "google_classroom",
            "schedules": [s.to_backend() for s in self.schedule],
        }


@dataclass
class OcrCandidateCourse:
    """
    A course recognized by the OCR pipeline. Untrusted until validated.
    """

    title: str
    schedule: list[WeeklySlot]
    instructor: str = ""
    classroom: str = ""

    def to_backend(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "instructor": self.instructor,
            "classroom": self.classroom,
            "schedule": [
                {"day_of_week": s.day_of_week, "start": s.start_time, "end": s.end_time} for s in self.schedule
            ],
        }


@dataclass
class TodoItem:
    """
    Local projection of an assignment, exam or custom to-do.

    This is what the status updater changes optimistically; the backend stays
    the source of truth.
    """

    id: str
    title: str
    status: str = "pending"
    kind: str = "assignment"


# Tagged union of everything that can be turned into a ScheduledEntity
Schedulable = Union[Course, OcrCandidateCourse]


def normalize_time(value: Any) -> str:
    """
    Normalize backend/OCR time strings to "HH:MM".

    Accepts "9:05", "09:05" and "09:05:00". Anything else is returned stripped
    and unchanged so that validation can reject it with a clear message.
    """
    text = "" if value is None else str(value).strip()
    m = _TIME_RE.match(text)
    if not m:
        return text
    return f"{int(m.group(1)):02d}:{m.group(2)}"


def _require(record: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    raise ValidationError(f"missing required field: {keys[0]!r}")


def _parse_day(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"invalid day_of_week: {value!r}") from None


def slot_from_record(record: dict[str, Any]) -> WeeklySlot:
    """
    Build a WeeklySlot from either wire shape:
    backend {day_of_week, start_time, end_time} or OCR {day_of_week, start, end}.
    """
    if not isinstance(record, dict):
        raise ValidationError(f"schedule entry must be an object, got {type(record).__name__}")
    day = _parse_day(_require(record, "day_of_week", "dayOfWeek"))
    start = normalize_time(_require(record, "start_time", "start", "startTime"))
    end = normalize_time(_require(record, "end_time", "end", "endTime"))
    location = record.get("location") or None
    return WeeklySlot(day_of_week=day, start_time=start, end_time=end, location=location)


def _slots_from_list(raw: Any) -> list[WeeklySlot]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("schedule must be a list")
    return [slot_from_record(x) for x in raw]


def course_from_backend(record: dict[str, Any]) -> Course:
    """
    Convert a backend course record into a Course.

    The backend is not consistent about the id field name, so several are tried.
    A record without any id gets a random one so it can still be displayed.
    """
    raw_id = None
    for key in ("id", "pk", "uuid", "course_id"):
        if record.get(key) is not None:
            raw_id = record[key]
            break
    cid = str(raw_id) if raw_id is not None else str(uuid.uuid4())

    return Course(
        id=cid,
        name=str(record.get("title") or record.get("name") or ""),
        course_code=str(record.get("section") or record.get("description") or ""),
        instructor=str(record.get("instructor") or ""),
        classroom=str(record.get("classroom") or ""),
        color=str(record.get("color") or "#3B82F6"),
        source="google_classroom" if record.get("is_google_classroom") else "manual",
        schedule=_slots_from_list(record.get("schedules", record.get("schedule"))),
    )


def candidate_from_ocr(record: dict[str, Any]) -> OcrCandidateCourse:
    """
    Convert one OCR-recognized course into an OcrCandidateCourse.
    """
    if not isinstance(record, dict):
        raise ValidationError("OCR item must be an object")
    return OcrCandidateCourse(
        title=str(record.get("title") or "").strip(),
        instructor=str(record.get("instructor") or "").strip(),
        classroom=str(record.get("classroom") or "").strip(),
        schedule=_slots_from_list(record.get("schedule")),
    )


def parse_ocr_payload(data: Any) -> list[OcrCandidateCourse]:
    """
    Accept the OCR preview payload ({"items": [...]}) or a bare list of items.
    """
    items = data.get("items") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ValidationError("OCR payload must contain a list of items")
    return [candidate_from_ocr(x) for x in items]


def to_scheduled_entity(item: Schedulable) -> ScheduledEntity:
    """
    Normalize a Course or OcrCandidateCourse into a ScheduledEntity.
    """
    if isinstance(item, Course):
        return ScheduledEntity(id=item.id, label=item.name, slots=list(item.schedule), source=item)
    if isinstance(item, OcrCandidateCourse):
        return ScheduledEntity(id=None, label=item.title or "(untitled)", slots=list(item.schedule), source=item)
    raise TypeError(f"cannot schedule {type(item).__name__}")
