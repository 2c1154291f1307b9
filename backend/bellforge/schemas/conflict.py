from typing import Literal, Optional

from pydantic import BaseModel

ConflictType = Literal["coverage", "plan_violation", "unscheduled"]


class ScheduleConflict(BaseModel):
    type: ConflictType
    message: str
    section_id: Optional[str] = None
    teacher_id: Optional[str] = None
