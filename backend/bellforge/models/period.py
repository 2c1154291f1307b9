from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from bellforge.models.time_slot import PeriodId

PeriodType = Literal["class", "split_lunch", "unit_lunch", "multi_lunch", "win", "recess"]

NON_TEACHING_TYPES: frozenset[str] = frozenset({"win", "recess"})


def minutes_to_time(value: int) -> str:
    hours = (value // 60) % 24
    minutes = value % 60
    return f"{hours:02d}:{minutes:02d}"


class Period(BaseModel):
    id: PeriodId
    label: str = ""
    type: PeriodType = "class"
    start_min: int = Field(ge=0)
    end_min: int = Field(ge=0)
    duration: int

    @property
    def start_time(self) -> str:
        return minutes_to_time(self.start_min)

    @property
    def end_time(self) -> str:
        return minutes_to_time(self.end_min)

    @property
    def is_teaching(self) -> bool:
        return self.type not in NON_TEACHING_TYPES

    def shifted_to(self, start_min: int) -> "Period":
        return self.model_copy(update={"start_min": start_min, "end_min": start_min + self.duration})
