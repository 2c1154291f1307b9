from __future__ import annotations

import logging
from dataclasses import dataclass

from bellforge.models.room import Room
from bellforge.models.section import Section
from bellforge.models.teacher import Teacher
from bellforge.models.time_slot import Term, TimeSlot

logger = logging.getLogger(__name__)

LUNCH = "LUNCH"
PLC = "PLC"
PLAN = "PLAN"
BLOCKED = "BLOCKED"
RESERVATION_TAGS: frozenset[str] = frozenset({LUNCH, PLC, PLAN, BLOCKED})


@dataclass(frozen=True)
class Placement:
    section_id: str
    slot: TimeSlot
    teacher_id: str | None
    co_teacher_id: str | None
    room_id: str | None
    term: Term
    cohort_id: str | None = None


class ResourceLedger:
    """Occupancy of teachers, rooms and cohorts per time slot.

    Strategies read and write placement state only through this class so the
    per-teacher term loads always agree with the occupancy maps.
    """

    def __init__(self, teachers: list[Teacher], rooms: list[Room], max_load: int) -> None:
        self.max_load = max_load
        self.teacher_schedule: dict[str, dict[TimeSlot, str]] = {item.id: {} for item in teachers}
        self.room_schedule: dict[str, dict[TimeSlot, str]] = {item.id: {} for item in rooms}
        self.teacher_load: dict[str, dict[Term, int]] = {
            item.id: {term: 0 for term in Term} for item in teachers
        }
        self.cohort_schedule: dict[str, dict[TimeSlot, str]] = {}
        self.room_owners: dict[str, str] = {}
        self.placements: dict[str, Placement] = {}

    def set_room_owner(self, room_id: str, teacher_id: str) -> None:
        self.room_owners[room_id] = teacher_id

    def owned_room(self, teacher_id: str | None) -> str | None:
        if not teacher_id:
            return None
        for room_id, owner_id in self.room_owners.items():
            if owner_id == teacher_id:
                return room_id
        return None

    def block_teacher(self, teacher_id: str, slot: TimeSlot, reason: str = BLOCKED) -> None:
        schedule = self.teacher_schedule.get(teacher_id)
        if schedule is None:
            logger.debug("Ignoring %s reservation for unknown teacher %s", reason, teacher_id)
            return
        schedule[slot] = reason

    def is_teacher_available(self, teacher_id: str | None, slot: TimeSlot) -> bool:
        if not teacher_id or teacher_id not in self.teacher_schedule:
            return False
        return slot not in self.teacher_schedule[teacher_id]

    def is_room_available(self, room_id: str | None, slot: TimeSlot) -> bool:
        if not room_id or room_id not in self.room_schedule:
            return False
        return slot not in self.room_schedule[room_id]

    def is_cohort_available(self, cohort_id: str | None, slot: TimeSlot) -> bool:
        if not cohort_id:
            return True
        return slot not in self.cohort_schedule.get(cohort_id, {})

    def get_blocker(self, teacher_id: str | None, slot: TimeSlot) -> str | None:
        if not teacher_id or teacher_id not in self.teacher_schedule:
            return None
        return self.teacher_schedule[teacher_id].get(slot)

    def get_teacher_load(self, teacher_id: str | None, term: Term = Term.FY) -> int:
        if not teacher_id or teacher_id not in self.teacher_load:
            return 0
        return self.teacher_load[teacher_id][term]

    def placement_of(self, section_id: str) -> Placement | None:
        return self.placements.get(section_id)

    def teaching_slots(self, teacher_id: str) -> list[TimeSlot]:
        schedule = self.teacher_schedule.get(teacher_id, {})
        return [slot for slot, occupant in schedule.items() if occupant not in RESERVATION_TAGS]

    def assign_placement(
        self,
        section: Section,
        slot: TimeSlot,
        teacher_id: str | None,
        co_teacher_id: str | None = None,
        room_id: str | None = None,
        term: Term | None = None,
    ) -> Placement:
        term = term or slot.load_term
        placement = Placement(
            section_id=section.id,
            slot=slot,
            teacher_id=teacher_id,
            co_teacher_id=co_teacher_id,
            room_id=room_id,
            term=term,
            cohort_id=section.cohort_id,
        )

        for resource_id in (teacher_id, co_teacher_id):
            if resource_id and resource_id in self.teacher_schedule:
                self.teacher_schedule[resource_id][slot] = section.id
                self.teacher_load[resource_id][term] += 1

        if room_id and room_id in self.room_schedule:
            self.room_schedule[room_id][slot] = section.id

        if section.cohort_id:
            self.cohort_schedule.setdefault(section.cohort_id, {})[slot] = section.id

        self.placements[section.id] = placement
        section.slot = slot
        section.term = term
        section.room = room_id
        return placement

    def remove_placement(self, placement: Placement) -> None:
        slot = placement.slot
        section_id = placement.section_id

        for resource_id in (placement.teacher_id, placement.co_teacher_id):
            schedule = self.teacher_schedule.get(resource_id or "")
            if schedule is not None and schedule.get(slot) == section_id:
                del schedule[slot]
                load = self.teacher_load[resource_id]
                load[placement.term] = max(0, load[placement.term] - 1)

        room_schedule = self.room_schedule.get(placement.room_id or "")
        if room_schedule is not None and room_schedule.get(slot) == section_id:
            del room_schedule[slot]

        cohort_schedule = self.cohort_schedule.get(placement.cohort_id or "")
        if cohort_schedule is not None and cohort_schedule.get(slot) == section_id:
            del cohort_schedule[slot]
            if not cohort_schedule:
                self.cohort_schedule.pop(placement.cohort_id, None)

        if self.placements.get(section_id) == placement:
            del self.placements[section_id]
