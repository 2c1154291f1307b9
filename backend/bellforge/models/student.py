from __future__ import annotations

from pydantic import BaseModel, Field

from bellforge.models.section import Section


class CourseRequest(BaseModel):
    course_id: str
    # Lower numbers win; 1 is a required course, 10+ are alternates.
    priority: int = 1
    alternate_group_id: str | None = None


class Student(BaseModel):
    id: str = Field(min_length=1)
    name: str = ""
    grade_level: str | None = None
    requests: list[CourseRequest] = Field(default_factory=list)


class StudentSchedule(BaseModel):
    student_id: str
    schedule: dict[int | str, Section] = Field(default_factory=dict)
    conflicts: list[CourseRequest] = Field(default_factory=list)
