from __future__ import annotations

import logging
import math

from bellforge.models.section import Section
from bellforge.models.teacher import Teacher
from bellforge.models.time_slot import Term
from bellforge.schemas.conflict import ScheduleConflict
from bellforge.schemas.generator import PeriodAccounting, ScheduleConfig
from bellforge.services.resource_ledger import ResourceLedger
from bellforge.services.time_grid import TimeGrid

logger = logging.getLogger(__name__)

WAVES_MARKER = "Waves"
_UNCOUNTED_TYPES = {"unit_lunch", "win", "recess"}


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def period_student_accounting(
    sections: list[Section],
    grid: TimeGrid,
    terms: tuple[Term, ...],
    student_count: int,
) -> dict:
    """Seats filled, students at lunch and students unaccounted for, per period."""
    accounting: dict = {}
    lunch_periods = len(grid.lunch_period_ids)

    for period in grid.periods:
        seats_by_term = {term: 0 for term in terms}
        section_count = 0
        for section in sections:
            if not section.is_placed or section.slot.period_id != period.id:
                continue
            section_count += 1
            if section.slot.term in seats_by_term:
                seats_by_term[section.slot.term] += section.enrollment
        seats = _round_half_up(sum(seats_by_term.values()) / len(terms)) if terms else 0

        at_lunch: int | str = 0
        unaccounted = max(0, student_count - seats)
        if period.type == "unit_lunch":
            at_lunch = student_count
            unaccounted = 0
        elif period.type == "split_lunch":
            at_lunch = WAVES_MARKER
        elif period.type == "multi_lunch" and lunch_periods:
            at_lunch = student_count // lunch_periods
            unaccounted = max(0, student_count - seats - at_lunch)
        elif period.type in ("win", "recess"):
            unaccounted = 0

        accounting[period.id] = PeriodAccounting(
            seats_in_class=seats,
            unaccounted=unaccounted,
            at_lunch=at_lunch,
            section_count=section_count,
        )
    return accounting


def coverage_conflicts(accounting: dict, grid: TimeGrid, threshold: int) -> list[ScheduleConflict]:
    conflicts: list[ScheduleConflict] = []
    for period in grid.periods:
        if period.type in _UNCOUNTED_TYPES:
            continue
        row = accounting.get(period.id)
        if row is not None and row.unaccounted > threshold:
            conflicts.append(
                ScheduleConflict(
                    type="coverage",
                    message=f"Period {period.id}: {row.unaccounted} students unaccounted for on average.",
                )
            )
    return conflicts


def plan_conflicts(
    teachers: list[Teacher],
    ledger: ResourceLedger,
    grid: TimeGrid,
    terms: tuple[Term, ...],
    config: ScheduleConfig,
) -> list[ScheduleConflict]:
    """Flag teachers whose busiest term leaves too few free periods for plan and PLC."""
    conflicts: list[ScheduleConflict] = []
    plc = 1 if config.plc_enabled else 0
    for teacher in teachers:
        slots = ledger.teaching_slots(teacher.id)
        occupied = max((sum(1 for slot in slots if slot.term == term) for term in terms), default=0)
        free = grid.effective_slots - occupied
        plan = teacher.plan_periods if teacher.plan_periods is not None else config.plan_periods_per_day
        expected = plan + plc
        if free < expected:
            conflicts.append(
                ScheduleConflict(
                    type="plan_violation",
                    message=f"{teacher.name} has {free} free periods (needs {expected} for Plan/PLC)",
                    teacher_id=teacher.id,
                )
            )
    if conflicts:
        logger.info("%s teachers short of plan time", len(conflicts))
    return conflicts
