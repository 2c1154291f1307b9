from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field

from bellforge.models.time_slot import PeriodId

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


LunchStyle = Literal["unit", "split", "multi_period"]
WinModel = Literal["uses_period", "separate"]


class LunchConfig(BaseModel):
    style: LunchStyle = "unit"
    lunch_period: PeriodId | None = None
    lunch_periods: list[PeriodId] = Field(default_factory=list)
    lunch_duration: int = Field(default=30, ge=1, le=180)
    num_waves: int = Field(default=1, ge=1, le=10)
    min_class_time: int = Field(default=45, ge=0, le=240)

    @property
    def required_split_minutes(self) -> int:
        cafeteria = self.lunch_duration * self.num_waves
        pedagogical = self.min_class_time + self.lunch_duration
        return max(cafeteria, pedagogical)


class WinConfig(BaseModel):
    enabled: bool = False
    model: WinModel = "uses_period"
    win_period: PeriodId | None = None
    after_period: PeriodId = 1
    win_duration: int = Field(default=30, ge=1, le=180)


class RecessConfig(BaseModel):
    enabled: bool = False
    duration: int = Field(default=20, ge=1, le=180)
    after_period: PeriodId = 2
