from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from course_enrollment.database import get_db
from course_enrollment.schemas.course import CourseCreate, CourseOut
from course_enrollment.schemas.timetable import EnrolledStudentOut, TimeSlotCreate, TimeSlotUpdate
from course_enrollment.services import timetable as service
from course_enrollment.utils.auth import require_admin
from course_enrollment.utils.excel_export import make_filename

import logging
logger = logging.getLogger("app.admin")


router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.post("/timetable", status_code=201)
def add_timetable(body: TimeSlotCreate, db: Session = Depends(get_db)):
    data = service.add_time_slot(db, body.course_id, body.day_of_week, body.start_time, body.end_time)
    return {"success": True, "message": "Timetable added successfully", "data": data}


@router.put("/timetable/{timetable_id}")
def update_timetable(timetable_id: int, body: TimeSlotUpdate, db: Session = Depends(get_db)):
    data = service.update_time_slot(
        db,
        timetable_id,
        day_of_week=body.day_of_week,
        start_time=body.start_time,
        end_time=body.end_time,
    )
    return {"success": True, "message": "Timetable updated successfully", "data": data}


@router.delete("/timetable/{timetable_id}")
def delete_timetable(timetable_id: int, db: Session = Depends(get_db)):
    service.delete_time_slot(db, timetable_id)
    return {"success": True, "message": "Timetable deleted successfully"}


@router.get("/timetable/{course_id}")
def course_timetables(course_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": service.get_course_timetables(db, course_id)}


@router.post("/course", status_code=201)
def add_course(body: CourseCreate, db: Session = Depends(get_db)):
    course = service.add_course(db, body.course_code, body.course_name, body.college_id, body.credits)
    return {
        "success": True,
        "message": "Course added successfully",
        "data": CourseOut.model_validate(course).model_dump(),
    }


@router.get("/course/{course_id}/students")
def enrolled_students(course_id: int, db: Session = Depends(get_db)):
    rows = service.get_enrolled_students(db, course_id)
    return {
        "success": True,
        "data": [EnrolledStudentOut.model_validate(r).model_dump(mode="json") for r in rows],
    }


@router.get("/course/{course_id}/students/export")
def export_enrolled_students(course_id: int, db: Session = Depends(get_db)):
    xlsx_bytes = service.export_enrolled_students(db, course_id)
    filename = make_filename(f"course_{course_id}_students")
    logger.info("Exported roster of course=%s", course_id)

    return StreamingResponse(
        iter([xlsx_bytes]),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
