"""
Unit tests for batch conflict partitioning (OCR import).

Contract:
- every candidate is checked against existing courses AND the other candidates
- clean / conflicting keep the input order
- conflicting items are not auto-selected but can be force-included
"""

import unittest

from myplanner.conflicts import partition
from myplanner.errors import ValidationError
from myplanner.model import ScheduledEntity, WeeklySlot


def slot(day: int, start: str, end: str) -> WeeklySlot:
    return WeeklySlot(day_of_week=day, start_time=start, end_time=end)


def candidate(label: str, *slots: WeeklySlot) -> ScheduledEntity:
    return ScheduledEntity(id=None, label=label, slots=list(slots))


class TestPartition(unittest.TestCase):
    def setUp(self) -> None:
        self.existing = [ScheduledEntity(id="7", label="Chemistry", slots=[slot(2, "13:00", "15:00")])]

    def test_stable_partition(self) -> None:
        a = candidate("A", slot(0, "09:00", "10:00"))
        b = candidate("B", slot(2, "14:00", "16:00"))
        c = candidate("C", slot(4, "09:00", "10:00"))

        result = partition([a, b, c], self.existing)

        self.assertEqual([e.label for e in result.clean], ["A", "C"])
        self.assertEqual([e.label for e in result.conflicting], ["B"])
        self.assertEqual([e.label for e in result.default_selected], ["A", "C"])
        self.assertEqual(result.total, 3)
        self.assertEqual(result.with_conflicts, 1)

        conflict = result.conflicting[0].conflicts[0]
        self.assertEqual(conflict.conflicting_entity_id, "7")
        self.assertEqual(conflict.conflicting_entity_label, "Chemistry")

    def test_colliding_candidates_are_both_flagged(self) -> None:
        a = candidate("A", slot(1, "09:00", "11:00"))
        b = candidate("B", slot(1, "10:00", "12:00"))
        result = partition([a, b], [])

        self.assertEqual(result.clean, [])
        self.assertEqual([e.label for e in result.conflicting], ["A", "B"])
        self.assertEqual(result.conflicting[0].conflicts[0].conflicting_entity_label, "B")
        self.assertIsNone(result.conflicting[0].conflicts[0].conflicting_entity_id)
        self.assertEqual(result.conflicting[1].conflicts[0].conflicting_entity_label, "A")

    def test_identical_candidates_collide(self) -> None:
        # no id to exclude by: two equal recognized rows are still two courses
        s = slot(3, "08:00", "09:00")
        result = partition([candidate("X", s), candidate("X", s)], [])
        self.assertEqual(result.with_conflicts, 2)

    def test_candidate_is_not_compared_with_itself(self) -> None:
        result = partition([candidate("Solo", slot(0, "09:00", "10:00"), slot(0, "11:00", "12:00"))], [])
        self.assertEqual(len(result.clean), 1)

    def test_inputs_are_not_mutated(self) -> None:
        b = candidate("B", slot(2, "14:00", "16:00"))
        result = partition([b], self.existing)
        self.assertEqual(b.conflicts, [])
        self.assertIsNot(result.items[0].slots, b.slots)

    def test_confirm_force_include(self) -> None:
        a = candidate("A", slot(0, "09:00", "10:00"))
        b = candidate("B", slot(2, "14:00", "16:00"))
        c = candidate("C", slot(4, "09:00", "10:00"))
        result = partition([a, b, c], self.existing)

        self.assertEqual([e.label for e in result.confirm()], ["A", "C"])
        self.assertEqual([e.label for e in result.confirm([1])], ["A", "B", "C"])

        with self.assertRaises(ValidationError):
            result.confirm([5])

    def test_invalid_candidate_rejects_batch(self) -> None:
        with self.assertRaises(ValidationError):
            partition([candidate("A", slot(0, "09:00", "10:00")), candidate("Bad", slot(0, "12:00", "11:00"))], [])

    def test_empty_batch(self) -> None:
        result = partition([], self.existing)
        self.assertEqual((result.clean, result.conflicting, result.total), ([], [], 0))


if __name__ == "__main__":
    unittest.main()
