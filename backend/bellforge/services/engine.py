from __future__ import annotations

import asyncio
import logging
import random
from collections import defaultdict
from typing import Any, Callable

from pydantic import ValidationError

from bellforge.core.config import Settings, get_settings
from bellforge.core.exceptions import AppError, ConfigurationError
from bellforge.models.section import Section
from bellforge.models.time_slot import DISPLAY_ID_PATTERN, Term, TimeSlot, normalize_period_id
from bellforge.schemas.conflict import ScheduleConflict
from bellforge.schemas.constraints import PlcGroup
from bellforge.schemas.generator import ScheduleConfig, ScheduleResult, ScheduleStats, VariantOutcome
from bellforge.services.coverage import coverage_conflicts, period_student_accounting, plan_conflicts
from bellforge.services.lunch_waves import balance_lunch_waves
from bellforge.services.placement import (
    PlacementContext,
    ScheduleShape,
    build_strategy,
    commit_placement,
    hard_rejections,
    resolve_room,
)
from bellforge.services.resource_ledger import BLOCKED, LUNCH, PLC, ResourceLedger
from bellforge.services.run_log import RunLog
from bellforge.services.section_generator import (
    NO_TEACHER,
    apply_size_overrides,
    assign_home_rooms,
    assign_teachers,
    generate_sections,
)
from bellforge.services.time_grid import TimeGrid, build_time_grid

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]


def _coerce_config(config: ScheduleConfig | dict[str, Any]) -> ScheduleConfig:
    if isinstance(config, ScheduleConfig):
        return config.model_copy(deep=True)
    try:
        return ScheduleConfig.model_validate(config)
    except ValidationError as exc:
        raise ConfigurationError(
            "Invalid schedule configuration",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def compute_max_load(config: ScheduleConfig, grid: TimeGrid) -> int:
    plc = 1 if config.plc_enabled else 0
    max_load = max(1, grid.effective_slots - config.plan_periods_per_day - plc)
    if config.schedule_type == "ab_block":
        max_load *= 2
    return max_load


def _reserve(
    ledger: ResourceLedger,
    teacher_id: str,
    period_id: int | str,
    terms: tuple[Term, ...],
    reason: str,
) -> None:
    period_id = normalize_period_id(period_id)
    # "S2-3" style ids reserve a single track; bare ids reserve every track.
    if isinstance(period_id, str) and DISPLAY_ID_PATTERN.match(period_id):
        slot = TimeSlot.from_display_id(period_id)
        if slot.term in terms:
            ledger.block_teacher(teacher_id, slot, reason)
        return
    for term in terms:
        ledger.block_teacher(teacher_id, TimeSlot(term=term, period_id=period_id), reason)


def _resolve_plc_groups(config: ScheduleConfig, grid: TimeGrid) -> list[PlcGroup]:
    explicit = [group for group in config.plc_groups if group.teacher_ids]
    if explicit:
        return explicit

    candidates = [period.id for period in grid.periods if period.type in ("class", "split_lunch")]
    if not candidates:
        return []

    by_department: dict[str, list[str]] = defaultdict(list)
    for teacher in config.teachers:
        by_department[teacher.primary_department].append(teacher.id)

    groups: list[PlcGroup] = []
    for index, (department, teacher_ids) in enumerate(by_department.items()):
        groups.append(
            PlcGroup(
                id=f"plc-{department.lower().replace(' ', '-')}",
                name=f"{department} PLC",
                period=candidates[index % len(candidates)],
                teacher_ids=teacher_ids,
            )
        )
    return groups


def apply_reservations(
    config: ScheduleConfig,
    grid: TimeGrid,
    ledger: ResourceLedger,
    shape: ScheduleShape,
    run_log: RunLog,
) -> list[PlcGroup]:
    """Block lunch, PLC and unavailable periods before any section is placed."""
    terms = shape.terms

    if grid.lunch_style == "unit" and grid.lunch_period_id is not None:
        for teacher in config.teachers:
            _reserve(ledger, teacher.id, grid.lunch_period_id, terms, LUNCH)
    elif grid.lunch_style == "multi_period" and grid.lunch_period_ids:
        by_department: dict[str, list[str]] = defaultdict(list)
        for teacher in config.teachers:
            by_department[teacher.primary_department].append(teacher.id)
        for teacher_ids in by_department.values():
            for index, teacher_id in enumerate(teacher_ids):
                period_id = grid.lunch_period_ids[index % len(grid.lunch_period_ids)]
                _reserve(ledger, teacher_id, period_id, terms, LUNCH)

    plc_groups: list[PlcGroup] = []
    if config.plc_enabled:
        plc_groups = _resolve_plc_groups(config, grid)
        for group in plc_groups:
            for teacher_id in group.teacher_ids:
                _reserve(ledger, teacher_id, group.period, terms, PLC)
        run_log.info(f"Reserved {len(plc_groups)} PLC groups")

    for availability in config.teacher_availability:
        for period_id in availability.blocked_periods:
            _reserve(ledger, availability.teacher_id, period_id, terms, BLOCKED)

    for constraint in config.constraints:
        if constraint.type == "teacher_unavailable":
            _reserve(ledger, constraint.teacher_id, constraint.period, terms, BLOCKED)

    return plc_groups


def _lock_rejection(
    section: Section,
    slot: TimeSlot,
    grid: TimeGrid,
    shape: ScheduleShape,
    context: PlacementContext,
) -> str | None:
    period = grid.period(slot.period_id)
    if period is None or not period.is_teaching or slot.term not in shape.terms:
        return f"period {slot} is not schedulable"
    fails = hard_rejections(section, slot, context)
    if fails:
        return f"{', '.join(fails).lower()} at {slot}"
    return None


def _apply_locks(
    sections: list[Section],
    config: ScheduleConfig,
    grid: TimeGrid,
    shape: ScheduleShape,
    context: PlacementContext,
) -> None:
    """Commit locked placements that still fit the ledger.

    A lock that clashes with a reservation, another lock or the room supply is
    dropped with a warning and the section goes through normal placement.
    """
    by_id = {section.id: section for section in sections}
    run_log = context.run_log

    for locked in config.locked_sections:
        if locked.slot is None or locked.has_conflict or not locked.teacher:
            continue
        section = by_id.get(locked.id)
        if section is None:
            run_log.warn(f"Locked section {locked.id} no longer exists; lock ignored")
            continue
        section.teacher = locked.teacher
        section.teacher_name = locked.teacher_name
        section.co_teacher = locked.co_teacher
        section.co_teacher_name = locked.co_teacher_name
        if locked.room:
            section.room = locked.room
        section.has_conflict = False
        section.conflict_reason = None

        reason = _lock_rejection(section, locked.slot, grid, shape, context)
        if reason:
            run_log.warn(f"Lock for {section.label} ignored: {reason}")
            continue
        section.locked = True
        commit_placement(section, locked.slot, context, room_id=resolve_room(section, locked.slot, context))

    for constraint in config.constraints:
        if constraint.type != "lock_period":
            continue
        section = by_id.get(constraint.section_id)
        if section is None or section.has_conflict or section.slot is not None:
            run_log.warn(f"Lock for section {constraint.section_id} ignored")
            continue
        slot = TimeSlot.from_display_id(constraint.period, default_term=shape.terms[0])
        reason = _lock_rejection(section, slot, grid, shape, context)
        if reason:
            run_log.warn(f"Lock for {section.label} ignored: {reason}")
            continue
        section.locked = True
        commit_placement(section, slot, context, room_id=resolve_room(section, slot, context))
        run_log.info(f"Locked {section.label} to period {slot}")


def _display_schedule(schedule: dict[str, dict[TimeSlot, str]]) -> dict[str, dict[int | str, str]]:
    return {
        resource_id: {slot.display_id: occupant for slot, occupant in slots.items()}
        for resource_id, slots in schedule.items()
    }


def _notify(progress: ProgressCallback | None, message: str, percent: int) -> None:
    if progress is not None:
        progress(message, percent)


def generate_schedule(
    config: ScheduleConfig | dict[str, Any],
    *,
    progress: ProgressCallback | None = None,
    settings: Settings | None = None,
) -> ScheduleResult:
    """Build a complete master schedule for one configuration.

    Only ``ConfigurationError`` escapes; placement failures, coverage gaps and
    plan shortfalls are reported in ``ScheduleResult.conflicts``.
    """
    settings = settings or get_settings()
    config = _coerce_config(config)
    run_log = RunLog()

    _notify(progress, "Building time grid", 5)
    grid = build_time_grid(config, settings)
    strategy = build_strategy(config.schedule_type)
    shape = strategy.shape

    seed = config.random_seed if config.random_seed is not None else settings.random_seed
    rng = random.Random(seed)
    max_load = compute_max_load(config, grid)
    run_log.info(
        f"Starting {shape.name} schedule: {len(grid.periods)} periods, "
        f"{grid.effective_slots} effective slots, max load {max_load}"
    )

    ledger = ResourceLedger(config.teachers, config.rooms, max_load)
    context = PlacementContext(
        ledger=ledger,
        run_log=run_log,
        rng=rng,
        rooms=config.rooms,
        periods=grid.periods,
        teachers_by_id=config.teachers_by_id,
        relationships=config.course_relationships,
        passing_time=config.passing_time,
    )

    _notify(progress, "Reserving lunch, PLC and unavailable periods", 15)
    assign_home_rooms(config.teachers, config.rooms, ledger)
    plc_groups = apply_reservations(config, grid, ledger, shape, run_log)

    _notify(progress, "Generating sections", 25)
    sections = generate_sections(config, effective_slots=grid.effective_slots, settings=settings)
    apply_size_overrides(sections, config.size_overrides)
    assign_teachers(sections, config.teachers, config.rooms, ledger, rng)

    _apply_locks(sections, config, grid, shape, context)

    conflicts: list[ScheduleConflict] = list(grid.conflicts)
    for section in sections:
        if section.conflict_reason == NO_TEACHER:
            conflicts.append(
                ScheduleConflict(
                    type="unscheduled",
                    message=f"{section.label}: No qualified teacher available",
                    section_id=section.id,
                )
            )

    _notify(progress, f"Placing sections ({shape.name})", 40)
    conflicts.extend(strategy.execute(sections, grid.periods, context))

    _notify(progress, "Balancing lunch waves", 80)
    wave_loads = balance_lunch_waves(sections, grid)
    if wave_loads:
        run_log.info("Lunch waves balanced", data={str(wave): load for wave, load in wave_loads.items()})

    _notify(progress, "Checking coverage and plan time", 90)
    accounting = period_student_accounting(sections, grid, shape.terms, config.student_count)
    conflicts.extend(coverage_conflicts(accounting, grid, settings.coverage_unaccounted_threshold))
    conflicts.extend(plan_conflicts(config.teachers, ledger, grid, shape.terms, config))

    scheduled = sum(1 for section in sections if section.is_placed)
    stats = ScheduleStats(
        total_sections=len(sections),
        scheduled_count=scheduled,
        conflict_count=len(conflicts),
        teacher_count=len(config.teachers),
        room_count=len(config.rooms),
        total_students=config.student_count,
    )
    run_log.info(f"Schedule complete: {scheduled}/{len(sections)} sections placed, {len(conflicts)} conflicts")
    _notify(progress, "Done", 100)

    return ScheduleResult(
        sections=sections,
        periods=grid.periods,
        logs=run_log.entries,
        placement_history=run_log.placement_history,
        conflicts=conflicts,
        teacher_schedule=_display_schedule(ledger.teacher_schedule),
        room_schedule=_display_schedule(ledger.room_schedule),
        period_student_data=accounting,
        plc_groups=plc_groups,
        stats=stats,
    )


def regenerate_schedule(
    previous: ScheduleResult,
    config: ScheduleConfig | dict[str, Any],
    *,
    locked_ids: set[str] | None = None,
    progress: ProgressCallback | None = None,
    settings: Settings | None = None,
) -> ScheduleResult:
    """Rerun the pipeline keeping locked sections of ``previous`` fixed."""
    config = _coerce_config(config)
    locked_ids = locked_ids or set()
    locked = [
        section.model_copy(deep=True)
        for section in previous.sections
        if section.is_placed and (section.locked or section.id in locked_ids)
    ]
    config = config.model_copy(update={"locked_sections": locked})
    return generate_schedule(config, progress=progress, settings=settings)


async def generate_schedule_async(
    config: ScheduleConfig | dict[str, Any],
    *,
    progress: ProgressCallback | None = None,
    settings: Settings | None = None,
) -> ScheduleResult:
    return await asyncio.to_thread(generate_schedule, config, progress=progress, settings=settings)


async def _run_variant(
    variant_id: str,
    config: ScheduleConfig | dict[str, Any],
    timeout: float | None,
    settings: Settings,
) -> VariantOutcome:
    try:
        result = await asyncio.wait_for(generate_schedule_async(config, settings=settings), timeout)
    except asyncio.TimeoutError:
        logger.warning("Schedule variant %s timed out after %ss", variant_id, timeout)
        return VariantOutcome(variant_id=variant_id, timed_out=True, error=f"Timed out after {timeout}s")
    except AppError as exc:
        logger.warning("Schedule variant %s failed: %s", variant_id, exc.message)
        return VariantOutcome(variant_id=variant_id, error=exc.message)
    return VariantOutcome(variant_id=variant_id, result=result)


async def generate_variants(
    configs: dict[str, ScheduleConfig | dict[str, Any]],
    *,
    timeout: float | None = None,
    settings: Settings | None = None,
) -> list[VariantOutcome]:
    """Run one independent pipeline per day-type variant concurrently.

    Each variant builds its own ledger, so a timeout or failure in one never
    touches another. A timed-out worker thread is left to finish on its own.
    """
    settings = settings or get_settings()
    if timeout is None:
        timeout = settings.variant_timeout_seconds
    tasks = [_run_variant(variant_id, config, timeout, settings) for variant_id, config in configs.items()]
    return list(await asyncio.gather(*tasks))
