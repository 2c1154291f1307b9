from __future__ import annotations

from pydantic import BaseModel, Field

from bellforge.models.room import RoomType


class Course(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    department: str = "General"
    required: bool = False
    sections: int | None = Field(default=None, ge=1)
    max_size: int | None = Field(default=None, ge=1)
    room_type: RoomType = RoomType.regular
    cohort_id: str | None = None

    @property
    def is_pe(self) -> bool:
        return "pe" in self.department.lower()
