"""
Conflict detection.

Given weekly slots of a candidate course, detect overlaps with existing courses.
Overlap rule:
    same day_of_week AND start < other_end AND other_start < end

Touching endpoints (end == other_start) are NOT a conflict: back-to-back
classes are allowed.

Three levels:
- overlaps()  two slots
- scan()      one candidate vs existing entities (manual edits)
- partition() a batch of candidates, e.g. an OCR import
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Sequence

from myplanner.errors import ValidationError
from myplanner.logging import get_logger
from myplanner.model import ConflictRecord, ScheduledEntity, WeeklySlot

logger = get_logger(__name__)

_HHMM_RE = re.compile(r"^\d{2}:\d{2}$")


def _check_time(hhmm: str) -> None:
    """
    Check strict zero-padded 'HH:MM'. Raises ValidationError otherwise.
    """
    if not isinstance(hhmm, str) or not _HHMM_RE.match(hhmm):
        raise ValidationError(f"Invalid time format: {hhmm!r}")
    h, m = int(hhmm[:2]), int(hhmm[3:])
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValidationError(f"Invalid time value: {hhmm!r}")


def validate_slot(slot: WeeklySlot) -> None:
    """
    Reject slots the overlap math cannot handle.
    """
    if not slot.start_time or not slot.end_time:
        raise ValidationError("missing start or end time")
    if isinstance(slot.day_of_week, bool) or not isinstance(slot.day_of_week, int) or not 0 <= slot.day_of_week <= 6:
        raise ValidationError(f"invalid day_of_week: {slot.day_of_week!r}")
    _check_time(slot.start_time)
    _check_time(slot.end_time)
    if slot.start_time >= slot.end_time:
        raise ValidationError(f"invalid time range: {slot.start_time}-{slot.end_time}")


def validate_slots(slots: Iterable[WeeklySlot]) -> None:
    for slot in slots:
        validate_slot(slot)


def overlaps(a: WeeklySlot, b: WeeklySlot) -> bool:
    # Strict comparison: touching intervals do not overlap
    return a.day_of_week == b.day_of_week and a.start_time < b.end_time and b.start_time < a.end_time


def _collect(
    candidate_slots: Sequence[WeeklySlot],
    entities: Iterable[ScheduledEntity],
    self_id: Optional[str] = None,
) -> list[ConflictRecord]:
    # Materialize once, candidate slots are the outer loop
    others = [e for e in entities if self_id is None or e.id != self_id]
    out: list[ConflictRecord] = []
    for slot in candidate_slots:
        for entity in others:
            for other_slot in entity.slots:
                if overlaps(slot, other_slot):
                    out.append(
                        ConflictRecord(
                            slot=slot,
                            conflicting_entity_id=entity.id,
                            conflicting_entity_label=entity.label,
                            conflicting_slot=other_slot,
                        )
                    )
    return out


def scan(
    candidate_slots: Sequence[WeeklySlot],
    existing_entities: Iterable[ScheduledEntity],
    self_id: Optional[str] = None,
) -> list[ConflictRecord]:
    """
    Find every (candidate slot, existing slot) overlap.

    The entity with id == self_id is skipped, so editing a course does not
    report conflicts with its own stored version.

    All candidate slots are validated before existing_entities is touched:
    one bad slot raises ValidationError and nothing is compared.

    Order: candidate slots as supplied, then existing entities as iterated.
    """
    candidate_slots = list(candidate_slots)
    validate_slots(candidate_slots)
    return _collect(candidate_slots, existing_entities, self_id)


def find_internal_overlaps(slots: Sequence[WeeklySlot]) -> list[tuple[int, int]]:
    """
    Index pairs (i, j), i < j, of slots in one schedule that overlap each other.

    Used by the schedule editor: a course cannot meet twice at the same time.
    """
    slots = list(slots)
    validate_slots(slots)
    pairs: list[tuple[int, int]] = []
    # O(n^2) is fine: a course has a handful of slots
    for i in range(len(slots)):
        for j in range(i + 1, len(slots)):
            if overlaps(slots[i], slots[j]):
                pairs.append((i, j))
    return pairs


@dataclass
class PartitionResult:
    """
    Outcome of a batch conflict check.

    items:       all annotated candidates in input order
    clean:       candidates without conflicts (input order kept)
    conflicting: candidates with at least one conflict (input order kept)
    """

    items: list[ScheduledEntity] = field(default_factory=list)
    clean: list[ScheduledEntity] = field(default_factory=list)
    conflicting: list[ScheduledEntity] = field(default_factory=list)

    @property
    def default_selected(self) -> list[ScheduledEntity]:
        # Conflicting items are only ever added by the user
        return list(self.clean)

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def with_conflicts(self) -> int:
        return len(self.conflicting)

    def confirm(self, force_include: Iterable[int] = ()) -> list[ScheduledEntity]:
        """
        Selection to submit: the clean items plus the force-included ones.

        force_include holds positions in the original batch. The result keeps
        the original batch order.
        """
        forced = set()
        for idx in force_include:
            if not isinstance(idx, int) or not 0 <= idx < len(self.items):
                raise ValidationError(f"no candidate at position {idx!r}")
            forced.add(idx)
        return [item for i, item in enumerate(self.items) if not item.has_conflicts or i in forced]


def partition(
    candidates: Sequence[ScheduledEntity],
    existing_entities: Iterable[ScheduledEntity],
) -> PartitionResult:
    """
    Check each candidate against existing entities AND against the other candidates.

    Candidates have no identity yet, so cross-candidate pairs are never
    excluded by id; a candidate is only skipped when compared with itself.
    Two candidates that collide are therefore both flagged.

    Returns copies of the candidates with `conflicts` filled in.
    """
    candidates = list(candidates)
    existing = list(existing_entities)

    # Untrusted input: validate the whole batch before any comparison
    for cand in candidates:
        validate_slots(cand.slots)

    result = PartitionResult()
    for i, cand in enumerate(candidates):
        conflicts = _collect(cand.slots, existing, self_id=cand.id)
        peers = [other for j, other in enumerate(candidates) if j != i]
        conflicts.extend(_collect(cand.slots, peers))

        annotated = replace(cand, slots=list(cand.slots), conflicts=conflicts)
        result.items.append(annotated)
        if conflicts:
            result.conflicting.append(annotated)
        else:
            result.clean.append(annotated)

    logger.debug(
        "partition_completed",
        total=result.total,
        clean=len(result.clean),
        conflicting=result.with_conflicts,
    )
    return result
