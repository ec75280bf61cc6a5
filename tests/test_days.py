"""
Unit tests for the day-of-week adapter.

Planner convention: 0 = Monday ... 6 = Sunday.
Native (host calendar) convention: 0 = Sunday ... 6 = Saturday.
"""

import unittest
from datetime import date

from myplanner import days
from myplanner.errors import ValidationError


class TestDays(unittest.TestCase):
    def test_from_native_weekday(self) -> None:
        self.assertEqual(days.from_native_weekday(0), 6)  # Sunday
        self.assertEqual(days.from_native_weekday(1), 0)  # Monday
        self.assertEqual(days.from_native_weekday(6), 5)  # Saturday

    def test_roundtrip_all_days(self) -> None:
        for native in range(7):
            self.assertEqual(days.to_native_weekday(days.from_native_weekday(native)), native)

    def test_invalid_index(self) -> None:
        for bad in (-1, 7, True, "1"):
            with self.assertRaises(ValidationError):
                days.from_native_weekday(bad)

    def test_from_date(self) -> None:
        self.assertEqual(days.from_date(date(2026, 9, 21)), 0)  # Monday
        self.assertEqual(days.from_date(date(2026, 9, 20)), 6)  # Sunday

    def test_parse_day(self) -> None:
        self.assertEqual(days.parse_day("mon"), 0)
        self.assertEqual(days.parse_day("Sunday"), 6)
        self.assertEqual(days.parse_day(" 3 "), 3)
        with self.assertRaises(ValidationError):
            days.parse_day("xx")
        with self.assertRaises(ValidationError):
            days.parse_day("9")

    def test_labels(self) -> None:
        self.assertEqual(days.day_label(0), "Mon")
        self.assertEqual(days.day_label(6), "Sun")
        self.assertEqual(days.day_label(9), "?")

    def test_first_occurrence(self) -> None:
        wednesday = date(2026, 9, 16)
        self.assertEqual(days.first_occurrence(2, wednesday), wednesday)
        self.assertEqual(days.first_occurrence(0, wednesday), date(2026, 9, 21))
        self.assertEqual(days.first_occurrence(6, wednesday), date(2026, 9, 20))


if __name__ == "__main__":
    unittest.main()
