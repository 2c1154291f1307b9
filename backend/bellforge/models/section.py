from __future__ import annotations

from pydantic import BaseModel, Field, computed_field, model_validator

from bellforge.models.room import RoomType
from bellforge.models.time_slot import Term, TimeSlot


class Section(BaseModel):
    id: str = Field(min_length=1)
    course_id: str
    course_name: str
    section_num: int = Field(ge=1)
    enrollment: int = Field(default=0, ge=0)
    max_size: int = Field(ge=1)
    department: str = "General"
    room_type: RoomType = RoomType.regular
    is_core: bool = False
    is_singleton: bool = False

    teacher: str | None = None
    teacher_name: str | None = None
    co_teacher: str | None = None
    co_teacher_name: str | None = None
    room: str | None = None
    room_name: str | None = None
    slot: TimeSlot | None = None
    term: Term | None = None
    lunch_wave: int | None = None
    cohort_id: str | None = None

    locked: bool = False
    has_conflict: bool = False
    conflict_reason: str | None = None

    @model_validator(mode="after")
    def validate_capacity(self) -> "Section":
        if self.enrollment > self.max_size:
            raise ValueError(f"Section {self.id} enrollment {self.enrollment} exceeds max size {self.max_size}")
        return self

    @computed_field
    @property
    def period(self) -> int | str | None:
        if self.slot is None:
            return None
        return self.slot.display_id

    @property
    def is_placed(self) -> bool:
        return self.slot is not None and not self.has_conflict

    @property
    def label(self) -> str:
        return f"{self.course_name} S{self.section_num}"

    def mark_conflict(self, reason: str) -> None:
        self.has_conflict = True
        self.conflict_reason = reason
