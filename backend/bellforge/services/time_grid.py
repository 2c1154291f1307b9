from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from bellforge.core.config import Settings, get_settings
from bellforge.core.exceptions import ConfigurationError
from bellforge.models.period import Period
from bellforge.models.time_slot import PeriodId
from bellforge.schemas.conflict import ScheduleConflict
from bellforge.schemas.generator import ScheduleConfig
from bellforge.schemas.settings import parse_time_to_minutes

logger = logging.getLogger(__name__)

WIN_PERIOD_ID = "WIN"
RECESS_PERIOD_ID = "RECESS"


@dataclass
class TimeGrid:
    periods: list[Period]
    lunch_style: str
    lunch_period_id: PeriodId | None
    lunch_period_ids: tuple[PeriodId, ...]
    num_waves: int
    conflicts: list[ScheduleConflict] = field(default_factory=list)

    @property
    def period_ids(self) -> list[PeriodId]:
        return [item.id for item in self.periods]

    @property
    def schedulable_periods(self) -> list[Period]:
        return [item for item in self.periods if item.is_teaching]

    @property
    def is_split_lunch(self) -> bool:
        return self.lunch_style == "split"

    @property
    def effective_slots(self) -> int:
        """Periods a teacher can be expected to teach in a day.

        Lunch costs every teacher one period unless it is split into waves
        inside a class period.
        """
        teaching = len(self.schedulable_periods)
        return max(0, teaching if self.is_split_lunch else teaching - 1)

    def period(self, period_id: PeriodId) -> Period | None:
        for item in self.periods:
            if item.id == period_id:
                return item
        return None


def _generate_periods(config: ScheduleConfig, settings: Settings) -> list[Period]:
    period_count = config.period_count if config.period_count is not None else settings.default_period_count
    if period_count <= 0:
        raise ConfigurationError("Bell schedule must contain at least one period")

    start_min = parse_time_to_minutes(config.school_start)
    period_length = config.period_length
    if config.schedule_mode == "time_frame":
        school_end = config.school_end or settings.default_school_end
        total_minutes = parse_time_to_minutes(school_end) - start_min
        total_passing = (period_count - 1) * config.passing_time
        available = max(0, total_minutes - total_passing)
        period_length = available // period_count
        if period_length <= 0:
            raise ConfigurationError(
                f"{config.school_start}-{school_end} cannot fit {period_count} periods",
                details={"available_minutes": available},
            )

    periods: list[Period] = []
    current = start_min
    for index in range(1, period_count + 1):
        periods.append(
            Period(
                id=index,
                label=f"Period {index}",
                type="class",
                start_min=current,
                end_min=current + period_length,
                duration=period_length,
            )
        )
        current += period_length + config.passing_time
    return periods


def _explicit_periods(config: ScheduleConfig) -> list[Period]:
    seen: set[PeriodId] = set()
    periods: list[Period] = []
    for item in config.periods:
        if item.id in seen:
            raise ConfigurationError(f"Duplicate period id {item.id!r} in bell schedule")
        if item.duration <= 0 or item.end_min < item.start_min:
            raise ConfigurationError(f"Period {item.id!r} has an invalid time range")
        seen.add(item.id)
        periods.append(item.model_copy())
    return periods


def _insert_block(
    periods: list[Period],
    *,
    after_period: PeriodId,
    block_id: str,
    label: str,
    block_type: str,
    duration: int,
    passing_time: int,
) -> list[Period]:
    index = next((i for i, item in enumerate(periods) if item.id == after_period), None)
    if index is None:
        logger.warning("Cannot insert %s: period %s not found", label, after_period)
        return periods

    start = periods[index].end_min + passing_time
    block = Period(
        id=block_id,
        label=label,
        type=block_type,
        start_min=start,
        end_min=start + duration,
        duration=duration,
    )
    reflowed = periods[: index + 1] + [block]
    current = block.end_min + passing_time
    for item in periods[index + 1 :]:
        shifted = item.shifted_to(current)
        reflowed.append(shifted)
        current = shifted.end_min + passing_time
    return reflowed


def build_time_grid(config: ScheduleConfig, settings: Settings | None = None) -> TimeGrid:
    settings = settings or get_settings()
    periods = _explicit_periods(config) if config.periods else _generate_periods(config, settings)
    base_count = len(periods)

    win = config.win
    if win.enabled and win.model == "separate":
        periods = _insert_block(
            periods,
            after_period=win.after_period,
            block_id=WIN_PERIOD_ID,
            label="WIN",
            block_type="win",
            duration=win.win_duration,
            passing_time=config.passing_time,
        )

    recess = config.recess
    if recess.enabled:
        periods = _insert_block(
            periods,
            after_period=recess.after_period,
            block_id=RECESS_PERIOD_ID,
            label="Recess",
            block_type="recess",
            duration=recess.duration,
            passing_time=config.passing_time,
        )

    lunch = config.lunch
    lunch_pid = lunch.lunch_period
    if lunch_pid is None and lunch.style in ("unit", "split"):
        lunch_pid = math.ceil(base_count / 2)
    multi_pids = tuple(lunch.lunch_periods) if lunch.style == "multi_period" else ()
    win_pid: PeriodId | None = None
    if win.enabled:
        win_pid = WIN_PERIOD_ID if win.model == "separate" else win.win_period

    conflicts: list[ScheduleConflict] = []
    tagged: list[Period] = []
    for item in periods:
        period_type = item.type
        if lunch.style == "split" and item.id == lunch_pid:
            period_type = "split_lunch"
            required = lunch.required_split_minutes
            if item.duration < required - settings.split_lunch_tolerance_minutes:
                conflicts.append(
                    ScheduleConflict(
                        type="coverage",
                        message=(
                            f"CRITICAL: Period {item.id} is {item.duration}m. "
                            f"Needs {required}m to satisfy cafeteria & learning constraints."
                        ),
                    )
                )
        elif lunch.style == "unit" and item.id == lunch_pid:
            period_type = "unit_lunch"
        elif item.id in multi_pids:
            period_type = "multi_lunch"
        elif win_pid is not None and item.id == win_pid:
            period_type = "win"
        elif item.id == RECESS_PERIOD_ID:
            period_type = "recess"
        tagged.append(item.model_copy(update={"type": period_type}))

    if not tagged:
        raise ConfigurationError("Bell schedule must contain at least one period")

    return TimeGrid(
        periods=tagged,
        lunch_style=lunch.style,
        lunch_period_id=lunch_pid if lunch.style != "multi_period" else None,
        lunch_period_ids=multi_pids,
        num_waves=lunch.num_waves,
        conflicts=conflicts,
    )
