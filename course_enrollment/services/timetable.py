"""
Admin side: course timetables, courses and rosters.

Adding or moving a timetable slot must not create a clash for any student
already enrolled in the course, so before the write the candidate slot is
checked against every other course each enrolled student holds.
"""
import logging
from datetime import time
from typing import Dict, List, Optional, Union

from sqlalchemy.orm import Session

from course_enrollment.database import atomic
from course_enrollment.errors import AlreadyExists, InvalidInput, NotFound, ScheduleConflict
from course_enrollment.models.college import College
from course_enrollment.models.course import Course
from course_enrollment.models.enrollment import Enrollment
from course_enrollment.models.student import Student
from course_enrollment.models.timetable import TimeSlot
from course_enrollment.utils.conflict import SlotRef, find_overlaps
from course_enrollment.utils.excel_export import rows_to_xlsx_bytes
from course_enrollment.utils.timeslots import (
    Weekday,
    format_time,
    parse_time,
    parse_weekday,
    slot_sort_key,
)

logger = logging.getLogger("app.timetable")

TimeLike = Union[str, time]


def _weekday_or_invalid(value) -> Weekday:
    try:
        return parse_weekday(value)
    except ValueError as e:
        raise InvalidInput(str(e))


def _time_or_invalid(value: TimeLike) -> time:
    try:
        return parse_time(value)
    except ValueError as e:
        raise InvalidInput(str(e))


def _check_interval(start: time, end: time):
    if start >= end:
        raise InvalidInput("Start time must be before end time")


def _lock_course(db: Session, course_id: int) -> Course:
    course = (
        db.query(Course)
        .filter(Course.course_id == course_id)
        .with_for_update()
        .first()
    )
    if not course:
        raise NotFound("course", "Course not found", missing=[course_id])
    return course


def _enrolled_students(db: Session, course_id: int, lock: bool = False) -> List[Student]:
    q = (
        db.query(Student)
        .join(Enrollment, Enrollment.student_id == Student.student_id)
        .filter(Enrollment.course_id == course_id)
        .order_by(Student.student_id)
    )
    if lock:
        q = q.with_for_update(of=Student)
    return q.all()


def _affected_students(db: Session, course: Course, candidate: SlotRef) -> List[Dict]:
    """
    One entry per (enrolled student, clashing slot of another course).
    Students are locked so nobody changes their schedule under us.
    """
    students = _enrolled_students(db, course.course_id, lock=True)
    if not students:
        return []

    student_ids = [s.student_id for s in students]
    rows = (
        db.query(Enrollment.student_id, TimeSlot, Course.course_code)
        .join(TimeSlot, TimeSlot.course_id == Enrollment.course_id)
        .join(Course, Course.course_id == Enrollment.course_id)
        .filter(
            Enrollment.student_id.in_(student_ids),
            Enrollment.course_id != course.course_id,
            TimeSlot.day_of_week == candidate.weekday,
        )
        .all()
    )
    slots_by_student: Dict[int, List[SlotRef]] = {}
    for student_id, slot, code in rows:
        slots_by_student.setdefault(student_id, []).append(SlotRef.from_timetable(slot, label=code))

    affected = []
    for s in students:
        mine = sorted(slots_by_student.get(s.student_id, []), key=lambda r: (r.start, r.timetable_id))
        for hit in find_overlaps(candidate, mine):
            affected.append({"student_id": s.student_id, "name": s.name, **hit.as_dict()})
    return affected


def _guard_enrolled(db: Session, course: Course, candidate: SlotRef, action: str):
    affected = _affected_students(db, course, candidate)
    if affected:
        n = len({a["student_id"] for a in affected})
        raise ScheduleConflict(
            ScheduleConflict.WOULD_AFFECT_ENROLLED,
            f"Cannot {action} timetable: Would create conflicts for {n} enrolled student(s)",
            conflicts=affected,
        )


def timetable_dict(slot: TimeSlot, course: Optional[Course] = None) -> Dict:
    course = course or slot.course
    return {
        "timetable_id": slot.timetable_id,
        "course_id": slot.course_id,
        "course_code": course.course_code if course else None,
        "course_name": course.course_name if course else None,
        "day_of_week": slot.day_of_week.value,
        "start_time": format_time(slot.start_time),
        "end_time": format_time(slot.end_time),
    }


def add_time_slot(db: Session, course_id: int, day_of_week, start_time: TimeLike, end_time: TimeLike) -> Dict:
    weekday = _weekday_or_invalid(day_of_week)
    start = _time_or_invalid(start_time)
    end = _time_or_invalid(end_time)
    _check_interval(start, end)

    try:
        with atomic(db):
            course = _lock_course(db, course_id)
            candidate = SlotRef(weekday=weekday, start=start, end=end, label=course.course_code, course_id=course_id)
            _guard_enrolled(db, course, candidate, "add")

            slot = TimeSlot(course_id=course_id, day_of_week=weekday, start_time=start, end_time=end)
            db.add(slot)
            db.flush()
            out = timetable_dict(slot, course)
    except ScheduleConflict as e:
        logger.info("Timetable add rejected course=%s: %s", course_id, e.message)
        raise

    logger.info("Added timetable %s to course=%s (%s %s-%s)", out["timetable_id"], course_id,
                weekday.value, out["start_time"], out["end_time"])
    return out


def update_time_slot(
    db: Session,
    timetable_id: int,
    day_of_week=None,
    start_time: Optional[TimeLike] = None,
    end_time: Optional[TimeLike] = None,
) -> Dict:
    if day_of_week is None and start_time is None and end_time is None:
        raise InvalidInput("At least one field (day_of_week, start_time, or end_time) must be provided")

    weekday = _weekday_or_invalid(day_of_week) if day_of_week is not None else None
    start = _time_or_invalid(start_time) if start_time is not None else None
    end = _time_or_invalid(end_time) if end_time is not None else None
    if start is not None and end is not None:
        _check_interval(start, end)

    try:
        with atomic(db):
            found = db.query(TimeSlot.course_id).filter(TimeSlot.timetable_id == timetable_id).first()
            if not found:
                raise NotFound("timetable", "Timetable not found", missing=[timetable_id])
            course = _lock_course(db, found.course_id)
            slot = (
                db.query(TimeSlot)
                .filter(TimeSlot.timetable_id == timetable_id)
                .with_for_update()
                .first()
            )
            if not slot:
                raise NotFound("timetable", "Timetable not found", missing=[timetable_id])

            new_day = weekday if weekday is not None else slot.day_of_week
            new_start = start if start is not None else slot.start_time
            new_end = end if end is not None else slot.end_time
            _check_interval(new_start, new_end)

            candidate = SlotRef(
                weekday=new_day, start=new_start, end=new_end,
                label=course.course_code, course_id=course.course_id, timetable_id=timetable_id,
            )
            _guard_enrolled(db, course, candidate, "update")

            slot.day_of_week = new_day
            slot.start_time = new_start
            slot.end_time = new_end
            db.flush()
            out = timetable_dict(slot, course)
    except ScheduleConflict as e:
        logger.info("Timetable update rejected timetable=%s: %s", timetable_id, e.message)
        raise

    logger.info("Updated timetable %s (%s %s-%s)", timetable_id, out["day_of_week"],
                out["start_time"], out["end_time"])
    return out


def delete_time_slot(db: Session, timetable_id: int):
    # removing a slot can only remove clashes, no guard needed
    with atomic(db):
        deleted = (
            db.query(TimeSlot)
            .filter(TimeSlot.timetable_id == timetable_id)
            .delete(synchronize_session=False)
        )
        if deleted == 0:
            raise NotFound("timetable", "Timetable not found", missing=[timetable_id])
    logger.info("Deleted timetable %s", timetable_id)


def _get_course(db: Session, course_id: int) -> Course:
    course = db.query(Course).filter(Course.course_id == course_id).first()
    if not course:
        raise NotFound("course", "Course not found", missing=[course_id])
    return course


def get_course_timetables(db: Session, course_id: int) -> List[Dict]:
    course = _get_course(db, course_id)
    slots = db.query(TimeSlot).filter(TimeSlot.course_id == course_id).all()
    return [timetable_dict(s, course) for s in sorted(slots, key=slot_sort_key)]


def get_enrolled_students(db: Session, course_id: int) -> List[Dict]:
    _get_course(db, course_id)
    rows = (
        db.query(Student, Enrollment.enrolled_at)
        .join(Enrollment, Enrollment.student_id == Student.student_id)
        .filter(Enrollment.course_id == course_id)
        .order_by(Student.name.asc(), Student.student_id.asc())
        .all()
    )
    return [
        {"student_id": s.student_id, "name": s.name, "email": s.email, "enrolled_at": enrolled_at}
        for s, enrolled_at in rows
    ]


def export_enrolled_students(db: Session, course_id: int) -> bytes:
    course = _get_course(db, course_id)
    rows = [
        {
            "Student ID": r["student_id"],
            "Name": r["name"],
            "Email": r["email"] or "",
            "Enrolled At": r["enrolled_at"].strftime("%Y-%m-%d %H:%M:%S") if r["enrolled_at"] else "",
        }
        for r in get_enrolled_students(db, course_id)
    ]
    return rows_to_xlsx_bytes(rows, sheet_name=course.course_code)


def add_course(db: Session, course_code: str, course_name: str, college_id: int, credits: int = 3) -> Course:
    code = (course_code or "").strip()
    name = (course_name or "").strip()
    if not code or not name:
        raise InvalidInput("course_code and course_name are required")
    if credits is None or credits <= 0:
        raise InvalidInput("credits must be a positive number")

    with atomic(db):
        if not db.query(College.college_id).filter(College.college_id == college_id).first():
            raise NotFound("college", "College not found", missing=[college_id])
        dup = (
            db.query(Course.course_id)
            .filter(Course.course_code == code, Course.college_id == college_id)
            .first()
        )
        if dup:
            raise AlreadyExists("Course code already exists for this college")

        course = Course(course_code=code, course_name=name, college_id=college_id, credits=credits)
        db.add(course)
        db.flush()

    db.refresh(course)
    logger.info("Added course %s (%s) to college=%s", course.course_id, code, college_id)
    return course
