"""
Local course cache.

This module manages the file:

    <data_dir>/courses.json      (data_dir from PlannerConfig)

It holds the user's courses in the backend wire format so that conflict
checks can run synchronously, without a network round trip.

Schema:
    {"courses": [ {id, title, instructor, classroom, color, schedules: [...]}, ... ]}
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from myplanner.config import get_config
from myplanner.errors import ValidationError
from myplanner.logging import get_logger
from myplanner.model import Course, course_from_backend

logger = get_logger(__name__)


def _default_courses_path() -> Path:
    """
    Return the configured path of courses.json.

    A function instead of a constant so tests can pass their own path.
    """
    return get_config().courses_path


def load_courses(path: str | Path | None = None) -> list[Course]:
    """
    Load cached courses.

    Returns an empty list if the file does not exist or is invalid.
    Records that cannot be parsed are skipped, the rest is kept.
    """
    courses_path = Path(path) if path is not None else _default_courses_path()

    # First run: nothing cached yet
    if not courses_path.exists():
        return []

    try:
        data = json.loads(courses_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("course_cache_unreadable", path=str(courses_path), error=str(exc))
        return []

    raw = data.get("courses", []) if isinstance(data, dict) else []
    if not isinstance(raw, list):
        return []

    out: list[Course] = []
    for record in raw:
        if not isinstance(record, dict):
            continue
        try:
            out.append(course_from_backend(record))
        except ValidationError as exc:
            logger.warning("course_record_skipped", record_id=record.get("id"), error=str(exc))
    return out


def save_courses(courses: Iterable[Course], path: str | Path | None = None) -> None:
    """
    Save courses to the cache, creating parent directories if needed.
    """
    courses_path = Path(path) if path is not None else _default_courses_path()
    courses_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {"courses": [c.to_backend() for c in courses]}
    courses_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
