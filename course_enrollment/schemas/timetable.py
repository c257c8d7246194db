from datetime import datetime, time
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from course_enrollment.utils.timeslots import Weekday, parse_time, parse_weekday


class _SlotFields(BaseModel):
    @field_validator("day_of_week", mode="before", check_fields=False)
    @classmethod
    def _weekday(cls, v):
        if v is None:
            return v
        return parse_weekday(v)

    @field_validator("start_time", "end_time", mode="before", check_fields=False)
    @classmethod
    def _time(cls, v):
        if v is None:
            return v
        return parse_time(v)


class TimeSlotCreate(_SlotFields):
    course_id: int = Field(..., gt=0)
    day_of_week: Weekday
    start_time: time
    end_time: time


class TimeSlotUpdate(_SlotFields):
    model_config = ConfigDict(extra="forbid")

    day_of_week: Optional[Weekday] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class EnrolledStudentOut(BaseModel):
    student_id: int
    name: str
    email: Optional[str] = None
    enrolled_at: Optional[datetime] = None
