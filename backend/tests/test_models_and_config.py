import pytest
from pydantic import ValidationError

from bellforge.core.config import Settings, get_settings
from bellforge.core.exceptions import AppError, ConfigurationError, SchedulerError
from bellforge.models import Section, Term, TimeSlot
from bellforge.schemas.constraints import Constraint
from bellforge.schemas.generator import ScheduleConfig
from bellforge.services.config_validator import validate_config


def test_scheduler_error_structure():
    err = SchedulerError(message="Test error", details={"foo": "bar"})
    assert err.message == "Test error"
    assert err.details == {"foo": "bar"}
    assert isinstance(err, AppError)


def test_configuration_error_defaults():
    err = ConfigurationError("No periods")
    assert err.details == {}
    assert str(err) == "No periods"


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("BELLFORGE_DEFAULT_STUDENT_COUNT", "420")
    monkeypatch.setenv("BELLFORGE_LOG_LEVEL", " debug ")

    settings = get_settings()

    assert settings.default_student_count == 420
    assert settings.log_level == "DEBUG"
    assert ScheduleConfig().student_count == 420


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.default_period_minutes == 50
    assert settings.pe_section_size == 50
    assert settings.coverage_unaccounted_threshold == 50
    assert settings.random_seed is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (3, TimeSlot(period_id=3)),
        ("3", TimeSlot(period_id=3)),
        ("S1-3", TimeSlot(term=Term.S1, period_id=3)),
        ("T3-WIN", TimeSlot(term=Term.T3, period_id="WIN")),
        ("B-2", TimeSlot(term=Term.B, period_id=2)),
    ],
)
def test_display_ids_parse_to_slots(value, expected):
    assert TimeSlot.from_display_id(value) == expected


def test_display_id_round_trip_and_load_term():
    slot = TimeSlot(term=Term.A, period_id=5)
    assert slot.display_id == "A-5"
    assert TimeSlot.from_display_id(slot.display_id) == slot
    assert slot.load_term == Term.FY
    assert TimeSlot(term=Term.S2, period_id=5).load_term == Term.S2
    assert TimeSlot(period_id=5).display_id == 5


def test_section_capacity_is_validated():
    with pytest.raises(ValidationError):
        Section(id="x-S1", course_id="x", course_name="X", section_num=1, enrollment=31, max_size=30)


def test_section_period_is_serialized_as_display_id():
    section = Section(
        id="x-S1",
        course_id="x",
        course_name="X",
        section_num=1,
        max_size=30,
        slot=TimeSlot(term=Term.T2, period_id=4),
    )
    assert section.model_dump()["period"] == "T2-4"


def test_constraints_require_their_targets():
    with pytest.raises(ValidationError):
        Constraint(type="lock_period", period=3)
    with pytest.raises(ValidationError):
        Constraint(type="teacher_unavailable", period=3)
    assert Constraint(type="teacher_unavailable", teacher_id="t1", period="2").period == 2


def test_time_frame_requires_end_after_start():
    with pytest.raises(ValidationError):
        ScheduleConfig(schedule_mode="time_frame", school_start="10:00", school_end="09:00")
    with pytest.raises(ValidationError):
        ScheduleConfig(school_start="8am")


def test_validate_config_lists_problems():
    problems = validate_config({"period_count": 0, "schedule_mode": "time_frame"})

    assert "No teachers defined." in problems
    assert "No courses defined." in problems
    assert any("Bell schedule is incomplete" in item for item in problems)
    assert any("Time frame mode" in item for item in problems)


def test_validate_config_reports_schema_errors():
    problems = validate_config({"schedule_type": "rotating"})

    assert problems
    assert problems[0].startswith("schedule_type")


def test_validate_config_accepts_complete_config(basic_config):
    assert validate_config(basic_config) == []
