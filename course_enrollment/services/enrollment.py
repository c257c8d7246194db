"""
Student enrollment.

``enroll`` runs an ordered list of checks inside one transaction and only
inserts the enrollment rows when every check passes:

1. the student exists
2. every requested course exists
3. every course belongs to the student's college
4. the requested courses do not clash with each other
5. they do not clash with the courses the student already holds
6. none of them is already enrolled

The first failing check raises and the whole transaction is rolled back.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from course_enrollment.database import atomic
from course_enrollment.errors import (
    AlreadyEnrolled,
    InvalidInput,
    NotFound,
    PolicyViolation,
    ScheduleConflict,
)
from course_enrollment.models.course import Course
from course_enrollment.models.enrollment import Enrollment
from course_enrollment.models.student import Student
from course_enrollment.models.timetable import TimeSlot  # noqa: F401
from course_enrollment.utils.conflict import SlotRef, find_conflict
from course_enrollment.utils.timeslots import format_timetable, slot_sort_key

logger = logging.getLogger("app.enrollment")


@dataclass
class EnrollmentResult:
    student_id: int
    enrolled_courses: List[Course]

    def as_dict(self):
        return {
            "student_id": self.student_id,
            "enrolled_courses": [
                {"course_id": c.course_id, "course_code": c.course_code, "course_name": c.course_name}
                for c in self.enrolled_courses
            ],
        }


@dataclass
class _EnrollContext:
    db: Session
    student_id: int
    course_ids: List[int]
    student: Optional[Student] = None
    courses: List[Course] = field(default_factory=list)
    new_slots: List[SlotRef] = field(default_factory=list)
    existing: List[Enrollment] = field(default_factory=list)


def _clean_ids(student_id, course_ids) -> List[int]:
    if isinstance(student_id, bool) or not isinstance(student_id, int) or student_id <= 0:
        raise InvalidInput("Invalid student ID provided")
    if course_ids is None or isinstance(course_ids, (str, bytes)):
        raise InvalidInput("Course IDs must be provided as a list")
    ids = list(course_ids)
    for cid in ids:
        if isinstance(cid, bool) or not isinstance(cid, int) or cid <= 0:
            raise InvalidInput(f"Invalid course ID: {cid!r}")
    # dedupe, keep request order
    ids = list(dict.fromkeys(ids))
    if not ids:
        raise InvalidInput("Course list cannot be empty")
    return ids


def _course_slots(courses: Iterable[Course]) -> List[SlotRef]:
    out = []
    for c in courses:
        for t in sorted(c.times, key=slot_sort_key):
            out.append(SlotRef.from_timetable(t, label=c.course_code))
    return out


def _lock_rows(ctx: _EnrollContext):
    # courses before students, same order as the timetable guard
    (
        ctx.db.query(Course.course_id)
        .filter(Course.course_id.in_(ctx.course_ids))
        .order_by(Course.course_id)
        .with_for_update(read=True)
        .all()
    )
    ctx.student = (
        ctx.db.query(Student)
        .filter(Student.student_id == ctx.student_id)
        .with_for_update()
        .first()
    )


def _check_student_exists(ctx: _EnrollContext):
    if ctx.student is None:
        raise NotFound("student", "Student not found", missing=[ctx.student_id])


def _check_courses_exist(ctx: _EnrollContext):
    rows = (
        ctx.db.query(Course)
        .options(selectinload(Course.times))
        .filter(Course.course_id.in_(ctx.course_ids))
        .all()
    )
    by_id = {c.course_id: c for c in rows}
    missing = [cid for cid in ctx.course_ids if cid not in by_id]
    if missing:
        raise NotFound(
            "course",
            f"Courses not found: {', '.join(str(m) for m in missing)}",
            missing=missing,
        )
    ctx.courses = [by_id[cid] for cid in ctx.course_ids]


def _check_same_college(ctx: _EnrollContext):
    invalid = [c.course_code for c in ctx.courses if c.college_id != ctx.student.college_id]
    if invalid:
        raise PolicyViolation(
            f"Courses {', '.join(invalid)} do not belong to student's college",
            course_codes=invalid,
        )


def _check_internal_clashes(ctx: _EnrollContext):
    ctx.new_slots = _course_slots(ctx.courses)
    clash = find_conflict(ctx.new_slots)
    if clash:
        raise ScheduleConflict(ScheduleConflict.INTERNAL, clash.message, clash.as_list())


def _check_existing_clashes(ctx: _EnrollContext):
    ctx.existing = (
        ctx.db.query(Enrollment)
        .options(selectinload(Enrollment.course).selectinload(Course.times))
        .filter(Enrollment.student_id == ctx.student_id)
        .order_by(Enrollment.enrollment_id)
        .all()
    )
    # courses requested again are reported by _check_not_enrolled, not as a clash with themselves
    others = [e.course for e in ctx.existing if e.course_id not in ctx.course_ids]
    if not others:
        return
    existing_slots = _course_slots(others)
    clash = find_conflict(existing_slots + ctx.new_slots)
    if clash:
        raise ScheduleConflict(ScheduleConflict.EXISTING, clash.message, clash.as_list())


def _check_not_enrolled(ctx: _EnrollContext):
    held = {e.course_id for e in ctx.existing}
    dup = [c.course_code for c in ctx.courses if c.course_id in held]
    if dup:
        raise AlreadyEnrolled(
            f"Student is already enrolled in: {', '.join(dup)}",
            course_codes=dup,
        )


ENROLL_CHECKS = (
    _check_student_exists,
    _check_courses_exist,
    _check_same_college,
    _check_internal_clashes,
    _check_existing_clashes,
    _check_not_enrolled,
)


def enroll(db: Session, student_id: int, course_ids: Iterable[int]) -> EnrollmentResult:
    ids = _clean_ids(student_id, course_ids)
    ctx = _EnrollContext(db=db, student_id=student_id, course_ids=ids)

    try:
        with atomic(db):
            _lock_rows(ctx)
            for check in ENROLL_CHECKS:
                check(ctx)

            db.add_all([Enrollment(student_id=student_id, course_id=cid) for cid in ids])
    except (NotFound, PolicyViolation, ScheduleConflict, AlreadyEnrolled) as e:
        logger.info("Enrollment rejected student=%s courses=%s kind=%s: %s", student_id, ids, e.kind, e.message)
        raise

    logger.info("Enrolled student=%s in courses=%s", student_id, ids)
    return EnrollmentResult(student_id=student_id, enrolled_courses=ctx.courses)


def drop_course(db: Session, student_id: int, course_id: int):
    with atomic(db):
        (
            db.query(Student.student_id)
            .filter(Student.student_id == student_id)
            .with_for_update()
            .first()
        )
        deleted = (
            db.query(Enrollment)
            .filter(Enrollment.student_id == student_id, Enrollment.course_id == course_id)
            .delete(synchronize_session=False)
        )
        if deleted == 0:
            raise NotFound("enrollment", "Enrollment not found", missing=[course_id])

    logger.info("Dropped student=%s course=%s", student_id, course_id)


def _get_student(db: Session, student_id: int) -> Student:
    student = db.query(Student).filter(Student.student_id == student_id).first()
    if not student:
        raise NotFound("student", "Student not found", missing=[student_id])
    return student


def get_available_courses(db: Session, student_id: int) -> List[Dict]:
    student = _get_student(db, student_id)
    courses = (
        db.query(Course)
        .options(selectinload(Course.times))
        .filter(Course.college_id == student.college_id)
        .order_by(Course.course_code.asc())
        .all()
    )
    return [
        {
            "course_id": c.course_id,
            "course_code": c.course_code,
            "course_name": c.course_name,
            "credits": c.credits,
            "timetable": format_timetable(c.times),
        }
        for c in courses
    ]


def get_enrolled_courses(db: Session, student_id: int) -> List[Dict]:
    _get_student(db, student_id)
    rows = (
        db.query(Enrollment)
        .options(selectinload(Enrollment.course).selectinload(Course.times))
        .filter(Enrollment.student_id == student_id)
        .order_by(Enrollment.enrollment_id)
        .all()
    )
    return [
        {
            "course_id": e.course.course_id,
            "course_code": e.course.course_code,
            "course_name": e.course.course_name,
            "credits": e.course.credits,
            "enrolled_at": e.enrolled_at,
            "timetable": format_timetable(e.course.times),
        }
        for e in rows
    ]
