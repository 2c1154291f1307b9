from bellforge.models.course import Course  # noqa: F401
from bellforge.models.period import Period, PeriodType, minutes_to_time  # noqa: F401
from bellforge.models.room import Room, RoomType  # noqa: F401
from bellforge.models.section import Section  # noqa: F401
from bellforge.models.student import CourseRequest, Student, StudentSchedule  # noqa: F401
from bellforge.models.teacher import Teacher  # noqa: F401
from bellforge.models.time_slot import PeriodId, Term, TimeSlot, normalize_period_id  # noqa: F401
