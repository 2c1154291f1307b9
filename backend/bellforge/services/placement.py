from __future__ import annotations

import logging
import math
import random
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Protocol

from bellforge.core.exceptions import ConfigurationError
from bellforge.models.period import Period
from bellforge.models.room import Room
from bellforge.models.section import Section
from bellforge.models.teacher import Teacher
from bellforge.models.time_slot import Term, TimeSlot
from bellforge.schemas.conflict import ScheduleConflict
from bellforge.schemas.constraints import CourseRelationship
from bellforge.schemas.generator import SlotEvaluation
from bellforge.services.resource_ledger import RESERVATION_TAGS, Placement, ResourceLedger
from bellforge.services.run_log import RunLog

logger = logging.getLogger(__name__)

LOAD_PENALTY = 500
ROOM_PENALTY = 100
ELECTIVE_OVERLAP_PENALTY = 200
TERM_BALANCE_PENALTY = 150
SINGLETON_DEPARTMENT_PENALTY = 1000
SINGLETON_SPREAD_PENALTY = 50
CROWDING_PENALTY = 10
RELATIONSHIP_PENALTY = 1000
BACKTRACK_COST = 999


@dataclass(frozen=True)
class ScheduleShape:
    name: str
    terms: tuple[Term, ...]
    gridlock_reason: str
    balances_terms: bool = False


SCHEDULE_SHAPES: dict[str, ScheduleShape] = {
    "standard": ScheduleShape("Standard", (Term.FY,), "Scheduling Gridlock"),
    "ab_block": ScheduleShape("A/B Block", (Term.A, Term.B), "A/B Scheduling Gridlock"),
    "4x4_block": ScheduleShape(
        "4x4 Semester Block", (Term.S1, Term.S2), "Semester Block Gridlock", balances_terms=True
    ),
    "trimester": ScheduleShape(
        "Trimester", (Term.T1, Term.T2, Term.T3), "Trimester Gridlock", balances_terms=True
    ),
}


@dataclass
class PlacementContext:
    """Everything a strategy needs for one run; nothing here is shared across runs."""

    ledger: ResourceLedger
    run_log: RunLog
    rng: random.Random
    rooms: list[Room]
    periods: list[Period]
    teachers_by_id: dict[str, Teacher] = field(default_factory=dict)
    relationships: list[CourseRelationship] = field(default_factory=list)
    passing_time: int = 5

    def __post_init__(self) -> None:
        self.rooms_by_id = {room.id: room for room in self.rooms}
        self.room_types = {room.type for room in self.rooms}

    def needs_room(self, section: Section) -> bool:
        return section.room is not None or section.room_type in self.room_types


class PlacementStrategy(Protocol):
    shape: ScheduleShape

    def generate_slots(self, periods: list[Period]) -> list[TimeSlot]:
        ...

    def execute(
        self,
        sections: list[Section],
        periods: list[Period],
        context: PlacementContext,
    ) -> list[ScheduleConflict]:
        ...


def resolve_room(section: Section, slot: TimeSlot, context: PlacementContext) -> str | None:
    ledger = context.ledger
    preferred = context.rooms_by_id.get(section.room or "")
    if preferred is not None and ledger.is_room_available(preferred.id, slot) and preferred.seats(section.enrollment):
        return preferred.id

    candidates = [
        room
        for room in context.rooms
        if room.type == section.room_type
        and ledger.is_room_available(room.id, slot)
        and room.seats(section.enrollment)
    ]
    # Owned rooms are free here because their owner is teaching elsewhere.
    candidates.sort(key=lambda room: 0 if room.id in ledger.room_owners else 1)
    return candidates[0].id if candidates else None


def _travel_time_ok(section: Section, slot: TimeSlot, context: PlacementContext) -> bool:
    teacher = context.teachers_by_id.get(section.teacher or "")
    if teacher is None or not teacher.travel_time or teacher.travel_time <= context.passing_time:
        return True

    period_ids = [period.id for period in context.periods]
    if slot.period_id not in period_ids:
        return True
    index = period_ids.index(slot.period_id)
    for neighbour in (index - 1, index + 1):
        if 0 <= neighbour < len(period_ids):
            occupant = context.ledger.get_blocker(teacher.id, slot.with_period(period_ids[neighbour]))
            if occupant and occupant not in RESERVATION_TAGS and occupant != section.id:
                return False
    return True


def hard_rejections(section: Section, slot: TimeSlot, context: PlacementContext) -> list[str]:
    ledger = context.ledger
    fails: list[str] = []
    if not ledger.is_teacher_available(section.teacher, slot):
        fails.append("Teacher booked")
    if section.co_teacher and not ledger.is_teacher_available(section.co_teacher, slot):
        fails.append("Co-Teacher booked")
    if not _travel_time_ok(section, slot, context):
        fails.append("Travel time violation")
    if not ledger.is_cohort_available(section.cohort_id, slot):
        fails.append("Cohort booked")
    if context.needs_room(section) and resolve_room(section, slot, context) is None:
        fails.append("No room fits")
    return fails


def commit_placement(
    section: Section,
    slot: TimeSlot,
    context: PlacementContext,
    *,
    room_id: str | None = None,
    term: Term | None = None,
) -> Placement:
    placement = context.ledger.assign_placement(
        section,
        slot,
        section.teacher,
        section.co_teacher,
        room_id,
        term,
    )
    room = context.rooms_by_id.get(room_id or "")
    section.room_name = room.name if room else None
    return placement


def _bump(
    section: Section,
    victim: Section,
    current: Placement,
    target: TimeSlot,
    context: PlacementContext,
) -> bool:
    if hard_rejections(victim, target, context):
        return False

    ledger = context.ledger
    freed = current.slot
    ledger.remove_placement(current)
    moved = commit_placement(victim, target, context, room_id=resolve_room(victim, target, context))

    if hard_rejections(section, freed, context):
        ledger.remove_placement(moved)
        commit_placement(victim, freed, context, room_id=current.room_id, term=current.term)
        return False

    commit_placement(section, freed, context, room_id=resolve_room(section, freed, context))
    context.run_log.info(f"Backtracking: Bumping {victim.label} from {freed} to {target}")
    context.run_log.log_placement(
        section,
        freed,
        BACKTRACK_COST,
        [SlotEvaluation(period=freed.display_id, cost=0, reasons=["Backtracked"])],
    )
    return True


def attempt_backtrack(
    section: Section,
    candidate_slots: list[TimeSlot],
    sections: list[Section],
    context: PlacementContext,
) -> bool:
    """Free a slot for ``section`` by moving one unlocked occupant elsewhere.

    Only a single displacement is tried per candidate slot; reservations and
    locked sections are never moved.
    """
    by_id = {item.id: item for item in sections}
    slots = list(candidate_slots)
    context.rng.shuffle(slots)

    for slot in slots:
        blocker = context.ledger.get_blocker(section.teacher, slot)
        if not blocker and section.co_teacher:
            blocker = context.ledger.get_blocker(section.co_teacher, slot)
        if not blocker or blocker in RESERVATION_TAGS:
            continue

        victim = by_id.get(blocker)
        if victim is None or victim.locked:
            continue
        current = context.ledger.placement_of(victim.id)
        if current is None or current.slot != slot:
            continue

        for target in slots:
            if target == slot:
                continue
            if _bump(section, victim, current, target, context):
                return True
    return False


class SlotSearchStrategy:
    """Greedy cost-based placement over the term tracks of one schedule shape."""

    def __init__(self, shape: ScheduleShape) -> None:
        self.shape = shape

    def generate_slots(self, periods: list[Period]) -> list[TimeSlot]:
        return [
            TimeSlot(term=term, period_id=period.id)
            for period in periods
            if period.is_teaching
            for term in self.shape.terms
        ]

    def _term_counts(self, section: Section, sections: list[Section]) -> dict[Term, int]:
        counts = {term: 0 for term in self.shape.terms}
        for other in sections:
            if other.id == section.id or other.course_id != section.course_id or other.slot is None:
                continue
            if other.slot.term in counts:
                counts[other.slot.term] += 1
        return counts

    def _soft_cost(
        self,
        section: Section,
        slot: TimeSlot,
        occupants: list[Section],
        term_counts: dict[Term, int],
        context: PlacementContext,
    ) -> tuple[float, list[str]]:
        ledger = context.ledger
        cost = 0.0
        reasons: list[str] = []

        load_term = slot.load_term
        if ledger.get_teacher_load(section.teacher, load_term) >= ledger.max_load:
            cost += LOAD_PENALTY
            reasons.append(f"Exceeds {load_term.value} target load")
        if section.room and not ledger.is_room_available(section.room, slot):
            cost += ROOM_PENALTY
            reasons.append("Preferred room occupied")
        if not section.is_core and any(other.course_id == section.course_id for other in occupants):
            cost += ELECTIVE_OVERLAP_PENALTY
            reasons.append("Elective overlap")

        if self.shape.balances_terms:
            others = [count for term, count in term_counts.items() if term != slot.term]
            if others and term_counts.get(slot.term, 0) > sum(others) / len(others):
                cost += TERM_BALANCE_PENALTY
                reasons.append("Term imbalance")

        if section.is_singleton:
            singletons = [other for other in occupants if other.is_singleton]
            if any(other.department == section.department for other in singletons):
                cost += SINGLETON_DEPARTMENT_PENALTY
                reasons.append("Dept Singleton Conflict")
            cost += len(singletons) * SINGLETON_SPREAD_PENALTY

        cost += len(occupants) * CROWDING_PENALTY

        placed_courses = {other.course_id for other in occupants}
        for relationship in context.relationships:
            if relationship.type != "avoid_overlap" or section.course_id not in relationship.course_ids:
                continue
            if any(course_id in placed_courses for course_id in relationship.course_ids if course_id != section.course_id):
                cost += relationship.penalty if relationship.penalty is not None else RELATIONSHIP_PENALTY
                reasons.append(f"Conflict Matrix: {relationship.type}")

        return cost, reasons

    def execute(
        self,
        sections: list[Section],
        periods: list[Period],
        context: PlacementContext,
    ) -> list[ScheduleConflict]:
        slots = self.generate_slots(periods)
        conflicts: list[ScheduleConflict] = []

        pending = [item for item in sections if not item.locked and not item.has_conflict and item.slot is None]
        pending.sort(key=lambda item: (not item.is_singleton, not item.is_core))
        logger.info("%s strategy placing %s sections over %s slots", self.shape.name, len(pending), len(slots))

        for section in pending:
            shuffled = list(slots)
            context.rng.shuffle(shuffled)

            occupancy: dict[TimeSlot, list[Section]] = defaultdict(list)
            for other in sections:
                if other.id != section.id and other.is_placed:
                    occupancy[other.slot].append(other)
            term_counts = self._term_counts(section, sections)

            evaluations: list[SlotEvaluation] = []
            best_slot: TimeSlot | None = None
            best_cost = math.inf
            for slot in shuffled:
                fails = hard_rejections(section, slot, context)
                if fails:
                    evaluations.append(SlotEvaluation(period=slot.display_id, cost=math.inf, reasons=fails))
                    continue
                cost, reasons = self._soft_cost(section, slot, occupancy[slot], term_counts, context)
                evaluations.append(SlotEvaluation(period=slot.display_id, cost=cost, reasons=reasons))
                if cost < best_cost:
                    best_cost = cost
                    best_slot = slot

            if best_slot is not None:
                commit_placement(section, best_slot, context, room_id=resolve_room(section, best_slot, context))
                context.run_log.log_placement(section, best_slot, best_cost, evaluations)
                continue

            if attempt_backtrack(section, shuffled, sections, context):
                continue

            section.mark_conflict(self.shape.gridlock_reason)
            conflicts.append(
                ScheduleConflict(
                    type="unscheduled",
                    message=f"{section.label}: No valid slot found",
                    section_id=section.id,
                )
            )
            context.run_log.log_failure(section, evaluations)

        return conflicts


def build_strategy(schedule_type: str) -> PlacementStrategy:
    shape = SCHEDULE_SHAPES.get(schedule_type)
    if shape is None:
        raise ConfigurationError(f"Unknown schedule type {schedule_type!r}")
    return SlotSearchStrategy(shape)
