from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from course_enrollment.database import Base


class Course(Base):
    __tablename__ = "courses"
    __table_args__ = (
        UniqueConstraint("course_code", "college_id", name="unique_course_college"),
    )

    course_id = Column(Integer, primary_key=True)
    course_code = Column(String(50), nullable=False)
    course_name = Column(String(255), nullable=False)
    college_id = Column(Integer, ForeignKey("colleges.college_id", ondelete="CASCADE"), nullable=False, index=True)
    credits = Column(Integer, nullable=False, default=3)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # relationship
    college = relationship("College", back_populates="courses")
    times = relationship("TimeSlot", back_populates="course", cascade="all, delete-orphan")
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")
