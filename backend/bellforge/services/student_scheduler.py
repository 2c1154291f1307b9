from __future__ import annotations

import logging
from collections import defaultdict

from bellforge.models.section import Section
from bellforge.models.student import Student, StudentSchedule
from bellforge.schemas.generator import ScheduleConfig

logger = logging.getLogger(__name__)


def _sections_by_course(sections: list[Section]) -> dict[str, list[Section]]:
    by_course: dict[str, list[Section]] = defaultdict(list)
    for section in sections:
        if section.is_placed:
            by_course[section.course_id].append(section)
    return by_course


def run_student_scheduler(
    sections: list[Section],
    students: list[Student],
    config: ScheduleConfig | None = None,
) -> list[StudentSchedule]:
    """Seat students into finished sections in request priority order.

    Requests that cannot be seated are kept on the student's conflict list.
    Each section's enrollment is replaced by the number of students seated.
    ``config`` is accepted for future placement rules and not read yet.
    """
    by_course = _sections_by_course(sections)
    seated = {section.id: 0 for section in sections}
    results: list[StudentSchedule] = []

    for student in students:
        schedule = StudentSchedule(student_id=student.id)
        for request in sorted(student.requests, key=lambda item: item.priority):
            chosen: Section | None = None
            for section in by_course.get(request.course_id, []):
                if seated[section.id] >= section.max_size:
                    continue
                if section.period in schedule.schedule:
                    continue
                chosen = section
                break

            if chosen is None:
                schedule.conflicts.append(request)
                continue
            seated[chosen.id] += 1
            schedule.schedule[chosen.period] = chosen
        results.append(schedule)

    for section in sections:
        section.enrollment = seated[section.id]

    unresolved = sum(len(item.conflicts) for item in results)
    logger.info("Scheduled %s students, %s unresolved requests", len(results), unresolved)
    return results
