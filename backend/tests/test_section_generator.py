import random

from bellforge.models import Course, Room, RoomType, Teacher
from bellforge.schemas.constraints import SizeOverride
from bellforge.schemas.generator import ScheduleConfig
from bellforge.services.resource_ledger import ResourceLedger
from bellforge.services.section_generator import (
    NO_TEACHER,
    apply_size_overrides,
    assign_home_rooms,
    assign_teachers,
    generate_sections,
)


def test_core_sections_split_students_evenly(settings):
    config = ScheduleConfig(
        courses=[Course(id="eng9", name="English 9", department="English", required=True, max_size=30)],
        student_count=100,
    )

    sections = generate_sections(config, effective_slots=6, settings=settings)

    assert [s.id for s in sections] == ["eng9-S1", "eng9-S2", "eng9-S3", "eng9-S4"]
    assert {s.enrollment for s in sections} == {25}
    assert all(s.is_core and not s.is_singleton for s in sections)


def test_single_core_section_is_singleton_and_capped(settings):
    config = ScheduleConfig(
        courses=[Course(id="ap-bio", name="AP Biology", department="Science", required=True, sections=1)],
        student_count=80,
        max_class_size=30,
    )

    [section] = generate_sections(config, effective_slots=6, settings=settings)

    assert section.is_singleton
    assert section.enrollment == 30
    assert section.enrollment <= section.max_size


def test_elective_remainder_seats_do_not_create_phantom_students(settings):
    config = ScheduleConfig(
        courses=[
            Course(id="eng9", name="English 9", required=True, sections=1, max_size=30),
            Course(id="music", name="Music", department="Arts", sections=3),
            Course(id="art", name="Art", department="Arts", sections=3),
        ],
        student_count=10,
    )

    sections = generate_sections(config, effective_slots=3, settings=settings)
    electives = [s for s in sections if not s.is_core]

    assert sum(s.enrollment for s in electives) == 20
    assert {s.enrollment for s in electives} <= {3, 4}
    by_id = {s.id: s.enrollment for s in electives}
    assert by_id["art-S1"] == 4
    assert by_id["art-S2"] == 4
    assert by_id["art-S3"] == 3
    assert by_id["music-S1"] == 3


def test_pe_electives_use_large_sections(settings):
    config = ScheduleConfig(
        courses=[Course(id="pe", name="Physical Education", department="PE")],
        student_count=100,
    )

    sections = generate_sections(config, effective_slots=1, settings=settings)

    assert len(sections) == 2
    assert {s.max_size for s in sections} == {settings.pe_section_size}
    assert sum(s.enrollment for s in sections) == 100


def test_size_overrides_are_capped_at_max_size(settings):
    config = ScheduleConfig(
        courses=[Course(id="alg1", name="Algebra I", department="Math", required=True, sections=2)],
        student_count=40,
        max_class_size=30,
    )
    sections = generate_sections(config, effective_slots=6, settings=settings)

    apply_size_overrides(
        sections,
        [SizeOverride(section_id="alg1-S1", enrollment=45), SizeOverride(section_id="missing", enrollment=1)],
    )

    assert sections[0].enrollment == 30


def test_sections_without_teachers_are_flagged(settings):
    config = ScheduleConfig(
        courses=[Course(id="alg1", name="Algebra I", department="Math", required=True, sections=2)],
        student_count=40,
    )
    sections = generate_sections(config, effective_slots=6, settings=settings)

    assign_teachers(sections, [], [], ResourceLedger([], [], 5), random.Random(1))

    assert sections[0].has_conflict
    assert sections[0].conflict_reason == NO_TEACHER


def test_teachers_matched_by_department_and_balanced(settings):
    teachers = [
        Teacher(id="m1", name="Math One", departments=["Math"]),
        Teacher(id="m2", name="Math Two", departments=["Math"]),
        Teacher(id="a1", name="Art One", departments=["Arts"]),
    ]
    config = ScheduleConfig(
        courses=[Course(id="alg1", name="Algebra I", department="Math", required=True, sections=4)],
        student_count=100,
    )
    sections = generate_sections(config, effective_slots=6, settings=settings)

    assign_teachers(sections, teachers, [], ResourceLedger(teachers, [], 5), random.Random(3))

    assigned = [s.teacher for s in sections]
    assert "a1" not in assigned
    assert assigned.count("m1") == 2
    assert assigned.count("m2") == 2


def test_unmatched_department_falls_back_to_whole_pool(settings):
    teachers = [Teacher(id="a1", name="Art One", departments=["Arts"])]
    config = ScheduleConfig(
        courses=[Course(id="latin", name="Latin", department="World Languages", required=True, sections=1)],
        student_count=20,
    )
    sections = generate_sections(config, effective_slots=6, settings=settings)

    assign_teachers(sections, teachers, [], ResourceLedger(teachers, [], 5), random.Random(3))

    assert sections[0].teacher == "a1"


def test_home_rooms_follow_department_needs():
    teachers = [
        Teacher(id="eng", name="English", departments=["English"]),
        Teacher(id="chem", name="Chemistry", departments=["Science"]),
        Teacher(id="coach", name="Coach", departments=["PE"]),
        Teacher(id="float", name="Floater", departments=["English"], is_floater=True),
    ]
    rooms = [
        Room(id="r1", name="Room 1"),
        Room(id="lab", name="Lab", type=RoomType.lab),
        Room(id="gym", name="Gym", type=RoomType.gym),
    ]
    ledger = ResourceLedger(teachers, rooms, 5)

    assign_home_rooms(teachers, rooms, ledger)

    assert ledger.owned_room("chem") == "lab"
    assert ledger.owned_room("coach") == "gym"
    assert ledger.owned_room("eng") == "r1"
    assert ledger.owned_room("float") is None
