from sqlalchemy import Column, Integer, Time, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from course_enrollment.database import Base
from course_enrollment.utils.timeslots import Weekday


class TimeSlot(Base):
    __tablename__ = "timetables"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="timetable_start_before_end"),
    )

    timetable_id = Column(Integer, primary_key=True)
    course_id = Column(Integer, ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False, index=True)

    # stored as the English day name
    day_of_week = Column(
        Enum(Weekday, name="day_of_week", values_callable=lambda e: [d.value for d in e]),
        nullable=False,
    )
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    course = relationship("Course", back_populates="times")
