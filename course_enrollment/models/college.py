from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from course_enrollment.database import Base


class College(Base):
    __tablename__ = "colleges"

    college_id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    students = relationship("Student", back_populates="college")
    courses = relationship("Course", back_populates="college")
