"""
Tests for weekly iCalendar export.

Each course slot becomes one VEVENT recurring weekly, starting on the first
matching weekday on or after the term start.
"""

import tempfile
import unittest
from datetime import date
from pathlib import Path

from myplanner.export_ics import export_courses_to_ics
from myplanner.model import Course, WeeklySlot


class TestExportICS(unittest.TestCase):
    def test_export_weekly_events(self) -> None:
        courses = [
            Course(
                id="1",
                name="Algebra, Linear",
                classroom="R101",
                schedule=[WeeklySlot(0, "09:00", "10:30"), WeeklySlot(2, "13:00", "14:00", location="Lab")],
            )
        ]
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "out.ics"
            # 2026-09-16 is a Wednesday
            n = export_courses_to_ics(courses, out, term_start=date(2026, 9, 16), weeks=12)
            self.assertEqual(n, 2)

            txt = out.read_text(encoding="utf-8")
            self.assertIn("BEGIN:VCALENDAR", txt)
            self.assertIn("DTSTART:20260921T090000", txt)
            self.assertIn("DTEND:20260921T103000", txt)
            self.assertIn("DTSTART:20260916T130000", txt)
            self.assertIn("RRULE:FREQ=WEEKLY;COUNT=12", txt)
            self.assertIn("SUMMARY:Algebra\\, Linear", txt)
            self.assertIn("LOCATION:R101", txt)
            self.assertIn("LOCATION:Lab", txt)
            self.assertIn("\r\n", txt)

    def test_malformed_slot_is_skipped(self) -> None:
        courses = [Course(id="1", name="X", schedule=[WeeklySlot(0, "9am", "10am"), WeeklySlot(1, "08:00", "09:00")])]
        with tempfile.TemporaryDirectory() as d:
            n = export_courses_to_ics(courses, Path(d) / "out.ics", term_start=date(2026, 9, 14))
            self.assertEqual(n, 1)

    def test_weeks_must_be_positive(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(ValueError):
                export_courses_to_ics([], Path(d) / "out.ics", term_start=date(2026, 9, 14), weeks=0)


if __name__ == "__main__":
    unittest.main()
