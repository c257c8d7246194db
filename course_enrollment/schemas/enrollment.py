from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class EnrollIn(BaseModel):
    student_id: int = Field(..., gt=0)
    course_ids: List[int] = Field(..., min_length=1)


class DropIn(BaseModel):
    student_id: int = Field(..., gt=0)
    course_id: int = Field(..., gt=0)


class EnrolledCourseBrief(BaseModel):
    course_id: int
    course_code: str
    course_name: str


class EnrollmentOut(BaseModel):
    student_id: int
    enrolled_courses: List[EnrolledCourseBrief]


class AvailableCourseOut(BaseModel):
    course_id: int
    course_code: str
    course_name: str
    credits: int
    # "Monday 09:00:00-10:00:00; Tuesday 10:00:00-11:00:00"
    timetable: Optional[str] = None


class EnrolledCourseOut(AvailableCourseOut):
    enrolled_at: Optional[datetime] = None
