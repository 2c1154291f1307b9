from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from bellforge.core.config import get_settings
from bellforge.models.course import Course
from bellforge.models.period import Period
from bellforge.models.room import Room
from bellforge.models.section import Section
from bellforge.models.teacher import Teacher
from bellforge.models.time_slot import PeriodId
from bellforge.schemas.conflict import ScheduleConflict
from bellforge.schemas.constraints import (
    Constraint,
    CourseRelationship,
    PlcGroup,
    SizeOverride,
    TeacherAvailability,
)
from bellforge.schemas.settings import TIME_PATTERN, LunchConfig, RecessConfig, WinConfig, parse_time_to_minutes

ScheduleType = Literal["standard", "ab_block", "4x4_block", "trimester"]
ScheduleMode = Literal["period_length", "time_frame"]


def _settings_default(name: str):
    return lambda: getattr(get_settings(), name)


class ScheduleConfig(BaseModel):
    teachers: list[Teacher] = Field(default_factory=list)
    rooms: list[Room] = Field(default_factory=list)
    courses: list[Course] = Field(default_factory=list)

    schedule_type: ScheduleType = "standard"
    schedule_mode: ScheduleMode = "period_length"
    period_count: int | None = Field(default=None, ge=0, le=20)
    periods: list[Period] = Field(default_factory=list)
    period_length: int = Field(default_factory=_settings_default("default_period_minutes"), ge=1, le=240)
    passing_time: int = Field(default_factory=_settings_default("default_passing_minutes"), ge=0, le=60)
    school_start: str = Field(default_factory=_settings_default("default_school_start"))
    school_end: str | None = None

    lunch: LunchConfig = Field(default_factory=LunchConfig)
    win: WinConfig = Field(default_factory=WinConfig)
    recess: RecessConfig = Field(default_factory=RecessConfig)

    plan_periods_per_day: int = Field(default=1, ge=0, le=10)
    plc_enabled: bool = False
    plc_groups: list[PlcGroup] = Field(default_factory=list)
    constraints: list[Constraint] = Field(default_factory=list)
    teacher_availability: list[TeacherAvailability] = Field(default_factory=list)
    course_relationships: list[CourseRelationship] = Field(default_factory=list)

    student_count: int = Field(default_factory=_settings_default("default_student_count"), ge=0)
    max_class_size: int = Field(default_factory=_settings_default("default_max_class_size"), ge=1)

    locked_sections: list[Section] = Field(default_factory=list)
    size_overrides: list[SizeOverride] = Field(default_factory=list)
    random_seed: int | None = Field(default=None, ge=0)

    @field_validator("school_start", "school_end")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        if value is not None and not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_time_frame(self) -> "ScheduleConfig":
        if self.schedule_mode == "time_frame" and self.school_end is not None:
            if parse_time_to_minutes(self.school_end) <= parse_time_to_minutes(self.school_start):
                raise ValueError("school_end must be after school_start")
        return self

    @property
    def teachers_by_id(self) -> dict[str, Teacher]:
        return {item.id: item for item in self.teachers}


class LogEntry(BaseModel):
    timestamp: float
    level: Literal["INFO", "WARN", "ERROR"]
    message: str
    data: dict | None = None


class SlotEvaluation(BaseModel):
    period: PeriodId
    cost: float
    reasons: list[str] = Field(default_factory=list)


class PlacementRecord(BaseModel):
    section_id: str
    course: str
    assigned_period: PeriodId | None = None
    cost_score: float | None = None
    evaluations: list[SlotEvaluation] = Field(default_factory=list)
    status: Literal["SUCCESS", "FAILED"]


class PeriodAccounting(BaseModel):
    seats_in_class: int
    unaccounted: int
    at_lunch: int | str
    section_count: int


class ScheduleStats(BaseModel):
    total_sections: int
    scheduled_count: int
    conflict_count: int
    teacher_count: int
    room_count: int
    total_students: int


class ScheduleResult(BaseModel):
    sections: list[Section]
    periods: list[Period]
    logs: list[LogEntry] = Field(default_factory=list)
    placement_history: list[PlacementRecord] = Field(default_factory=list)
    conflicts: list[ScheduleConflict] = Field(default_factory=list)
    teacher_schedule: dict[str, dict[PeriodId, str]] = Field(default_factory=dict)
    room_schedule: dict[str, dict[PeriodId, str]] = Field(default_factory=dict)
    period_student_data: dict[PeriodId, PeriodAccounting] = Field(default_factory=dict)
    plc_groups: list[PlcGroup] = Field(default_factory=list)
    stats: ScheduleStats


class VariantOutcome(BaseModel):
    variant_id: str
    result: ScheduleResult | None = None
    error: str | None = None
    timed_out: bool = False
