from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from bellforge.models.time_slot import PeriodId


class Constraint(BaseModel):
    id: str | None = None
    type: Literal["lock_period", "teacher_unavailable"]
    section_id: str | None = None
    course_id: str | None = None
    teacher_id: str | None = None
    period: PeriodId | None = None

    @model_validator(mode="after")
    def validate_targets(self) -> "Constraint":
        if self.period is None:
            raise ValueError(f"{self.type} constraint requires a period")
        if self.type == "lock_period" and not self.section_id:
            raise ValueError("lock_period constraint requires section_id")
        if self.type == "teacher_unavailable" and not self.teacher_id:
            raise ValueError("teacher_unavailable constraint requires teacher_id")
        return self


class TeacherAvailability(BaseModel):
    teacher_id: str
    blocked_periods: list[PeriodId] = Field(default_factory=list)


class PlcGroup(BaseModel):
    id: str
    name: str
    period: PeriodId
    teacher_ids: list[str] = Field(default_factory=list)


class CourseRelationship(BaseModel):
    id: str | None = None
    type: Literal["avoid_overlap", "require_overlap"] = "avoid_overlap"
    course_ids: list[str] = Field(default_factory=list)
    penalty: int | None = Field(default=None, ge=0)


class SizeOverride(BaseModel):
    section_id: str
    enrollment: int = Field(ge=0)
