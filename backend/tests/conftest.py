import pytest

from bellforge.core.config import Settings, get_settings
from bellforge.models import Course, Room, RoomType, Teacher
from bellforge.schemas.generator import ScheduleConfig


@pytest.fixture(autouse=True)
def clear_settings_cache():
    # Settings are cached per process; env overrides in one test must not leak.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def settings():
    return Settings(_env_file=None)


@pytest.fixture()
def math_teacher():
    return Teacher(id="t-math", name="Ms. Math", departments=["Math"])


@pytest.fixture()
def science_teacher():
    return Teacher(id="t-sci", name="Mr. Science", departments=["Science"])


@pytest.fixture()
def basic_config(math_teacher, science_teacher):
    return ScheduleConfig(
        teachers=[math_teacher, science_teacher],
        courses=[
            Course(id="alg1", name="Algebra I", department="Math", required=True, sections=2),
            Course(id="bio", name="Biology", department="Science", required=True, sections=1),
        ],
        period_count=7,
        student_count=50,
        random_seed=7,
    )


@pytest.fixture()
def rooms():
    return [
        Room(id="r101", name="Room 101", type=RoomType.regular, capacity=32),
        Room(id="r102", name="Room 102", type=RoomType.regular, capacity=32),
        Room(id="lab1", name="Lab 1", type=RoomType.lab, capacity=28),
        Room(id="gym", name="Gym", type=RoomType.gym),
    ]
