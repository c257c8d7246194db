"""Shared fixtures: an in-memory SQLite database seeded with the sample data."""
import os
import tempfile

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "course_enrollment_test_logs"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from course_enrollment.database import Base, get_db
from course_enrollment.models.course import Course
from course_enrollment.models.enrollment import Enrollment
from course_enrollment.models.timetable import TimeSlot
from course_enrollment.seed import load_sample_data
from course_enrollment.utils.auth import create_access_token


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def sample(db):
    """Sample data; ids are plain ints so tests do not depend on live ORM state."""
    data = load_sample_data(db)
    return {
        "colleges": [c.college_id for c in data["colleges"]],
        "students": [s.student_id for s in data["students"]],
        "courses": {code: c.course_id for code, c in data["courses"].items()},
    }


@pytest.fixture
def make_course(db):
    """Create a course with the given (weekday, start, end) slots and return its id."""

    def _make(code, college_id, slots=(), credits=3):
        course = Course(course_code=code, course_name=f"{code} course", college_id=college_id, credits=credits)
        for day, start, end in slots:
            course.times.append(TimeSlot(day_of_week=day, start_time=start, end_time=end))
        db.add(course)
        db.commit()
        return course.course_id

    return _make


@pytest.fixture
def enroll_directly(db):
    """Insert enrollment rows without any checks (existing state for a test)."""

    def _enroll(student_id, *course_ids):
        db.add_all([Enrollment(student_id=student_id, course_id=cid) for cid in course_ids])
        db.commit()

    return _enroll


@pytest.fixture
def client(session_factory):
    from course_enrollment.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "admin", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}