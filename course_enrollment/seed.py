"""
Sample colleges, students, courses and timetables.

    python -m course_enrollment.seed               # create tables + seed
    python -m course_enrollment.seed --admin-token # print an admin JWT
"""
import argparse
import logging
from datetime import time

from sqlalchemy.orm import Session

from course_enrollment.database import Base, SessionLocal, engine, atomic
from course_enrollment.models.college import College
from course_enrollment.models.course import Course
from course_enrollment.models.enrollment import Enrollment  # noqa: F401
from course_enrollment.models.student import Student
from course_enrollment.models.timetable import TimeSlot
from course_enrollment.utils.timeslots import Weekday

logger = logging.getLogger("app.seed")

COLLEGES = [
    "Massachusetts Institute of Technology",
    "Stanford University",
    "Harvard University",
]

# name, email, college (1-based)
STUDENTS = [
    ("John Doe", "john.doe@mit.edu", 1),
    ("Jane Smith", "jane.smith@mit.edu", 1),
    ("Bob Johnson", "bob.johnson@stanford.edu", 2),
    ("Alice Williams", "alice.williams@mit.edu", 1),
]

# code, name, college, credits
COURSES = [
    ("CS101", "Introduction to Computer Science", 1, 4),
    ("MA204", "Linear Algebra", 1, 3),
    ("AP105", "Physics I", 1, 4),
    ("CS201", "Data Structures", 1, 4),
    ("CS102", "Programming Fundamentals", 2, 3),
]

# AP105 clashes with CS101 on Tuesday
TIMETABLES = {
    "CS101": [(Weekday.MONDAY, time(9), time(10)), (Weekday.TUESDAY, time(10), time(11))],
    "MA204": [(Weekday.MONDAY, time(10), time(11)), (Weekday.WEDNESDAY, time(9), time(10))],
    "AP105": [(Weekday.TUESDAY, time(10), time(11)), (Weekday.THURSDAY, time(15), time(18))],
    "CS201": [(Weekday.WEDNESDAY, time(10), time(12)), (Weekday.FRIDAY, time(14), time(16))],
    "CS102": [(Weekday.MONDAY, time(9), time(11))],
}


def load_sample_data(db: Session):
    """Insert the sample rows; returns {"colleges": [...], "students": [...], "courses": {code: Course}}."""
    with atomic(db):
        colleges = [College(name=n) for n in COLLEGES]
        db.add_all(colleges)
        db.flush()

        students = [
            Student(name=name, email=email, college_id=colleges[ci - 1].college_id)
            for name, email, ci in STUDENTS
        ]
        db.add_all(students)

        courses = {}
        for code, name, ci, credits in COURSES:
            c = Course(course_code=code, course_name=name, college_id=colleges[ci - 1].college_id, credits=credits)
            for day, start, end in TIMETABLES.get(code, []):
                c.times.append(TimeSlot(day_of_week=day, start_time=start, end_time=end))
            courses[code] = c
        db.add_all(courses.values())
        db.flush()

    logger.info("Seeded %d colleges, %d students, %d courses", len(colleges), len(students), len(courses))
    return {"colleges": colleges, "students": students, "courses": courses}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed the enrollment database with sample data")
    parser.add_argument("--admin-token", action="store_true", help="print an admin JWT and exit")
    args = parser.parse_args(argv)

    from course_enrollment.logging_config import setup_logging
    setup_logging()

    if args.admin_token:
        from course_enrollment.utils.auth import create_access_token
        print(create_access_token({"sub": "admin", "role": "admin"}))
        return

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        load_sample_data(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
