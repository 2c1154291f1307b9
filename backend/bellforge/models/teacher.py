from __future__ import annotations

from pydantic import BaseModel, Field


class Teacher(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    departments: list[str] = Field(default_factory=list)
    is_floater: bool = False
    plan_periods: int | None = Field(default=None, ge=0)
    travel_time: int | None = Field(default=None, ge=0)
    requires_lab: bool = False
    requires_gym: bool = False

    @property
    def primary_department(self) -> str:
        return self.departments[0] if self.departments else "General"

    def teaches(self, department: str) -> bool:
        return department in self.departments

    @property
    def needs_lab(self) -> bool:
        return self.requires_lab or any("science" in item.lower() for item in self.departments)

    @property
    def needs_gym(self) -> bool:
        return self.requires_gym or any("pe" in item.lower() for item in self.departments)
