from __future__ import annotations

import logging
import math
import random

from bellforge.core.config import Settings, get_settings
from bellforge.models.course import Course
from bellforge.models.room import Room, RoomType
from bellforge.models.section import Section
from bellforge.models.teacher import Teacher
from bellforge.schemas.constraints import SizeOverride
from bellforge.schemas.generator import ScheduleConfig
from bellforge.services.resource_ledger import ResourceLedger

logger = logging.getLogger(__name__)

NO_TEACHER = "No Teacher"


def _new_section(course: Course, number: int, *, count: int, max_size: int, enrollment: int) -> Section:
    return Section(
        id=f"{course.id}-S{number}",
        course_id=course.id,
        course_name=course.name,
        section_num=number,
        max_size=max_size,
        enrollment=min(enrollment, max_size),
        department=course.department,
        room_type=course.room_type,
        is_core=course.required,
        is_singleton=count == 1,
        cohort_id=course.cohort_id,
    )


def elective_section_size(course: Course, config: ScheduleConfig, settings: Settings) -> int:
    if course.is_pe:
        return settings.pe_section_size
    return course.max_size or config.max_class_size


def generate_sections(
    config: ScheduleConfig,
    *,
    effective_slots: int,
    settings: Settings | None = None,
) -> list[Section]:
    """Expand courses into sections with provisional enrollment.

    Elective seats are split with integer division and the remainder is
    handed out one seat at a time, in course id then section order, so the
    total never exceeds the computed demand.
    """
    settings = settings or get_settings()
    student_count = config.student_count
    core_courses = [course for course in config.courses if course.required]
    elective_courses = [course for course in config.courses if not course.required]

    sections: list[Section] = []
    for course in core_courses:
        max_size = course.max_size or config.max_class_size
        count = course.sections or max(1, math.ceil(student_count / max_size))
        enrollment = math.ceil(student_count / count)
        for number in range(1, count + 1):
            sections.append(_new_section(course, number, count=count, max_size=max_size, enrollment=enrollment))

    elective_slots_per_student = max(0, effective_slots - len(core_courses))
    total_demand = student_count * elective_slots_per_student

    section_counts: dict[str, int] = {}
    for course in elective_courses:
        count = course.sections
        if not count:
            share = 1 / len(elective_courses)
            size = elective_section_size(course, config, settings)
            count = max(1, math.ceil((total_demand * share) / size))
        section_counts[course.id] = count

    total_sections = sum(section_counts.values()) or 1
    base_enrollment = total_demand // total_sections
    remaining = total_demand % total_sections

    seats: dict[tuple[str, int], int] = {}
    for course in sorted(elective_courses, key=lambda item: item.id):
        for number in range(1, section_counts[course.id] + 1):
            extra = 1 if remaining > 0 else 0
            remaining -= extra
            seats[(course.id, number)] = base_enrollment + extra

    for course in elective_courses:
        count = section_counts[course.id]
        size = elective_section_size(course, config, settings)
        for number in range(1, count + 1):
            sections.append(
                _new_section(course, number, count=count, max_size=size, enrollment=seats[(course.id, number)])
            )

    logger.info(
        "Generated %s sections (%s core courses, %s elective courses, elective demand %s)",
        len(sections),
        len(core_courses),
        len(elective_courses),
        total_demand,
    )
    return sections


def apply_size_overrides(sections: list[Section], overrides: list[SizeOverride]) -> None:
    by_id = {section.id: section for section in sections}
    for override in overrides:
        section = by_id.get(override.section_id)
        if section is None:
            logger.warning("Size override for unknown section %s ignored", override.section_id)
            continue
        section.enrollment = min(override.enrollment, section.max_size)


def assign_home_rooms(teachers: list[Teacher], rooms: list[Room], ledger: ResourceLedger) -> None:
    """Give every non-floater teacher a static room.

    Lab teachers go first so they claim the labs before anyone else.
    """
    regular = [room for room in rooms if room.type == RoomType.regular]
    labs = [room for room in rooms if room.type == RoomType.lab]
    gyms = [room for room in rooms if room.type == RoomType.gym]
    regular_index = 0
    lab_index = 0

    ordered = sorted(teachers, key=lambda item: 0 if item.needs_lab else 1)
    for teacher in ordered:
        if teacher.is_floater:
            continue
        assigned: Room | None = None
        if teacher.needs_lab and labs:
            assigned = labs[lab_index % len(labs)]
            lab_index += 1
        elif teacher.needs_gym and gyms:
            assigned = gyms[0]
        elif regular_index < len(regular):
            assigned = regular[regular_index]
            regular_index += 1
        if assigned is not None:
            ledger.set_room_owner(assigned.id, teacher.id)


def assign_teachers(
    sections: list[Section],
    teachers: list[Teacher],
    rooms: list[Room],
    ledger: ResourceLedger,
    rng: random.Random,
) -> None:
    intended_load = {teacher.id: 0 for teacher in teachers}
    room_names = {room.id: room.name for room in rooms}

    shuffled = list(sections)
    rng.shuffle(shuffled)
    for section in shuffled:
        candidates = [teacher for teacher in teachers if teacher.teaches(section.department)]
        pool = candidates or teachers
        if not pool:
            section.mark_conflict(NO_TEACHER)
            continue

        chosen = min(pool, key=lambda teacher: intended_load[teacher.id])
        intended_load[chosen.id] += 1
        section.teacher = chosen.id
        section.teacher_name = chosen.name

        home_room = ledger.owned_room(chosen.id)
        if home_room:
            section.room = home_room
            section.room_name = room_names.get(home_room)
