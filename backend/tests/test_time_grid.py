import pytest

from bellforge.core.exceptions import ConfigurationError
from bellforge.models import Period
from bellforge.schemas.generator import ScheduleConfig
from bellforge.schemas.settings import LunchConfig, RecessConfig, WinConfig
from bellforge.services.time_grid import RECESS_PERIOD_ID, WIN_PERIOD_ID, build_time_grid


def _config(**overrides):
    values = {"period_count": 3, "period_length": 50, "passing_time": 5, "school_start": "08:00"}
    values.update(overrides)
    return ScheduleConfig(**values)


def test_exact_length_periods_with_passing_gaps(settings):
    grid = build_time_grid(_config(), settings)

    assert grid.period_ids == [1, 2, 3]
    assert [(p.start_time, p.end_time) for p in grid.periods] == [
        ("08:00", "08:50"),
        ("08:55", "09:45"),
        ("09:50", "10:40"),
    ]


def test_default_lunch_is_unit_lunch_in_the_middle(settings):
    grid = build_time_grid(_config(), settings)

    assert grid.lunch_period_id == 2
    assert grid.period(2).type == "unit_lunch"
    assert grid.effective_slots == 2


def test_time_frame_mode_derives_period_length(settings):
    grid = build_time_grid(
        _config(schedule_mode="time_frame", school_start="08:00", school_end="11:00"),
        settings,
    )

    assert {p.duration for p in grid.periods} == {56}
    assert grid.periods[-1].end_min <= 11 * 60


def test_time_frame_too_short_raises(settings):
    with pytest.raises(ConfigurationError):
        build_time_grid(
            _config(period_count=10, passing_time=10, schedule_mode="time_frame", school_end="09:00"),
            settings,
        )


def test_zero_periods_raises_configuration_error(settings):
    with pytest.raises(ConfigurationError):
        build_time_grid(_config(period_count=0), settings)


def test_separate_win_block_reflows_following_periods(settings):
    grid = build_time_grid(
        _config(win=WinConfig(enabled=True, model="separate", after_period=1, win_duration=30)),
        settings,
    )

    assert grid.period_ids == [1, WIN_PERIOD_ID, 2, 3]
    win = grid.period(WIN_PERIOD_ID)
    assert (win.start_time, win.end_time) == ("08:55", "09:25")
    assert grid.period(2).start_time == "09:30"
    assert grid.period(3).start_time == "10:25"
    assert win not in grid.schedulable_periods


def test_win_uses_existing_period(settings):
    grid = build_time_grid(
        _config(period_count=7, win=WinConfig(enabled=True, model="uses_period", win_period=6)),
        settings,
    )

    assert grid.period(6).type == "win"
    assert 6 not in [p.id for p in grid.schedulable_periods]
    assert grid.effective_slots == 5


def test_recess_insertion(settings):
    grid = build_time_grid(
        _config(recess=RecessConfig(enabled=True, duration=20, after_period=2)),
        settings,
    )

    assert grid.period_ids == [1, 2, RECESS_PERIOD_ID, 3]
    assert grid.period(RECESS_PERIOD_ID).type == "recess"
    assert grid.period(3).start_time == "10:15"


def test_short_split_lunch_is_reported_as_coverage_conflict(settings):
    grid = build_time_grid(
        _config(
            period_count=5,
            lunch=LunchConfig(style="split", lunch_period=3, lunch_duration=30, num_waves=3),
        ),
        settings,
    )

    assert grid.period(3).type == "split_lunch"
    assert grid.effective_slots == 5
    assert len(grid.conflicts) == 1
    conflict = grid.conflicts[0]
    assert conflict.type == "coverage"
    assert "Period 3 is 50m. Needs 90m" in conflict.message


def test_long_enough_split_lunch_has_no_conflict(settings):
    grid = build_time_grid(
        _config(
            period_count=5,
            period_length=90,
            lunch=LunchConfig(style="split", lunch_period=3, lunch_duration=30, num_waves=3),
        ),
        settings,
    )

    assert grid.conflicts == []


def test_multi_period_lunch(settings):
    grid = build_time_grid(
        _config(period_count=7, lunch=LunchConfig(style="multi_period", lunch_periods=[4, 5])),
        settings,
    )

    assert [p.id for p in grid.periods if p.type == "multi_lunch"] == [4, 5]
    assert grid.lunch_period_ids == (4, 5)
    assert grid.lunch_period_id is None


def test_explicit_period_list_rejects_duplicates(settings):
    periods = [
        Period(id=1, start_min=480, end_min=530, duration=50),
        Period(id=1, start_min=535, end_min=585, duration=50),
    ]
    with pytest.raises(ConfigurationError):
        build_time_grid(_config(periods=periods), settings)
