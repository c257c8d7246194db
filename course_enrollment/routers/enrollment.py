from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from course_enrollment.database import get_db
from course_enrollment.schemas.enrollment import (
    AvailableCourseOut,
    DropIn,
    EnrolledCourseOut,
    EnrollIn,
    EnrollmentOut,
)
from course_enrollment.services import enrollment as service

router = APIRouter(prefix="/api/enrollment", tags=["Enrollment"])


@router.post("/enroll", status_code=201)
def enroll(body: EnrollIn, db: Session = Depends(get_db)):
    result = service.enroll(db, body.student_id, body.course_ids)
    data = EnrollmentOut.model_validate(result.as_dict())
    return {
        "success": True,
        "message": f"Successfully enrolled in {len(data.enrolled_courses)} course(s)",
        "data": data.model_dump(),
    }


@router.get("/available/{student_id}")
def available_courses(student_id: int, db: Session = Depends(get_db)):
    rows = service.get_available_courses(db, student_id)
    return {
        "success": True,
        "data": [AvailableCourseOut.model_validate(r).model_dump() for r in rows],
    }


@router.get("/enrolled/{student_id}")
def enrolled_courses(student_id: int, db: Session = Depends(get_db)):
    rows = service.get_enrolled_courses(db, student_id)
    return {
        "success": True,
        "data": [EnrolledCourseOut.model_validate(r).model_dump(mode="json") for r in rows],
    }


@router.delete("/drop")
def drop(body: DropIn, db: Session = Depends(get_db)):
    service.drop_course(db, body.student_id, body.course_id)
    return {"success": True, "message": "Course dropped successfully"}
