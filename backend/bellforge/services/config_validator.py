from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from bellforge.schemas.generator import ScheduleConfig


def validate_config(config: ScheduleConfig | dict[str, Any]) -> list[str]:
    """Return readable problems with a configuration without raising."""
    if not isinstance(config, ScheduleConfig):
        try:
            config = ScheduleConfig.model_validate(config)
        except ValidationError as exc:
            return [
                f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
                for error in exc.errors()
            ]

    errors: list[str] = []
    if not config.teachers:
        errors.append("No teachers defined.")
    if not config.courses:
        errors.append("No courses defined.")
    if not config.periods and config.period_count == 0:
        errors.append("Bell schedule is incomplete: at least one period is required.")
    if config.schedule_mode == "time_frame" and not config.school_end:
        errors.append("Time frame mode requires both a school start and end time.")

    period_ids = {period.id for period in config.periods}
    if config.periods and len(period_ids) != len(config.periods):
        errors.append("Bell schedule contains duplicate period ids.")

    teacher_ids = {teacher.id for teacher in config.teachers}
    for availability in config.teacher_availability:
        if availability.teacher_id not in teacher_ids:
            errors.append(f"Availability references unknown teacher {availability.teacher_id}.")
    for constraint in config.constraints:
        if constraint.teacher_id and constraint.teacher_id not in teacher_ids:
            errors.append(f"Constraint references unknown teacher {constraint.teacher_id}.")
    return errors
