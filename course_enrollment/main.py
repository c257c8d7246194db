import time
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from course_enrollment.config import settings
from course_enrollment.database import Base, engine
from course_enrollment.errors import EnrollmentError, InvalidInput
from course_enrollment.logging_config import setup_logging
from course_enrollment.models import college, course, enrollment, student, timetable  # noqa: F401
from course_enrollment.routers import admin
from course_enrollment.routers import enrollment as enrollment_router


setup_logging()
logger = logging.getLogger("app")


# create tables if missing
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Student Course Enrollment System", version="1.0.0")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
        ms = int((time.time() - start) * 1000)
        logger.info("%s %s -> %s (%dms)", request.method, request.url.path, response.status_code, ms)
        return response
    except Exception:
        ms = int((time.time() - start) * 1000)
        logger.exception("Unhandled error %s %s (%dms)", request.method, request.url.path, ms)
        raise


@app.exception_handler(EnrollmentError)
async def enrollment_error_handler(request: Request, exc: EnrollmentError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg"))
    body = InvalidInput("; ".join(problems) or "Invalid request").to_dict()
    return JSONResponse(status_code=400, content=body)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(enrollment_router.router)
app.include_router(admin.router)


@app.get("/health")
def health():
    return {
        "status": "OK",
        "message": "Student Course Enrollment System is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/")
def root():
    return {
        "message": "Student Course Enrollment System API",
        "version": app.version,
        "endpoints": {
            "enrollment": {
                "enroll": "POST /api/enrollment/enroll",
                "available": "GET /api/enrollment/available/{student_id}",
                "enrolled": "GET /api/enrollment/enrolled/{student_id}",
                "drop": "DELETE /api/enrollment/drop",
            },
            "admin": {
                "add_timetable": "POST /api/admin/timetable",
                "update_timetable": "PUT /api/admin/timetable/{timetable_id}",
                "delete_timetable": "DELETE /api/admin/timetable/{timetable_id}",
                "get_timetables": "GET /api/admin/timetable/{course_id}",
                "add_course": "POST /api/admin/course",
                "enrolled_students": "GET /api/admin/course/{course_id}/students",
                "export_enrolled_students": "GET /api/admin/course/{course_id}/students/export",
            },
        },
    }
