import os

# The app module builds its default engine at import time; keep it off the network.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import classgrid.models  # noqa: E402,F401
from classgrid.api.deps import get_db  # noqa: E402
from classgrid.db.base import Base  # noqa: E402
from classgrid.main import app  # noqa: E402
from classgrid.models import (  # noqa: E402
    Course,
    CourseAllocation,
    Lecturer,
    LecturerAvailability,
    Semester,
    SessionStatus,
    StudentCourseRegistration,
    TimetableSession,
    Venue,
)


class Seeder:
    """Writes reference data straight into the test database."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _save(self, record):
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def semester(self, name: str = "2026/2027 First Semester") -> Semester:
        return self._save(Semester(name=name))

    def course(self, code: str, expected_size: int = 40) -> Course:
        return self._save(Course(code=code, name=f"{code} Lecture", expected_size=expected_size))

    def lecturer(self, first_name: str = "Ada", last_name: str = "Lovelace") -> Lecturer:
        return self._save(Lecturer(first_name=first_name, last_name=last_name))

    def venue(self, name: str, capacity: int = 100) -> Venue:
        return self._save(Venue(name=name, building="Main", capacity=capacity))

    def availability(self, lecturer: Lecturer, day_of_week: int, start: str, end: str) -> LecturerAvailability:
        return self._save(
            LecturerAvailability(
                lecturer_id=lecturer.id,
                day_of_week=day_of_week,
                start_time=start,
                end_time=end,
            )
        )

    def allocation(
        self,
        course: Course,
        lecturer: Lecturer,
        semester: Semester,
        priority: int = 0,
    ) -> CourseAllocation:
        return self._save(
            CourseAllocation(
                course_id=course.id,
                lecturer_id=lecturer.id,
                semester_id=semester.id,
                priority=priority,
            )
        )

    def register(
        self,
        student_id: str,
        course: Course,
        semester: Semester,
        dropped: bool = False,
    ) -> StudentCourseRegistration:
        return self._save(
            StudentCourseRegistration(
                student_id=student_id,
                course_id=course.id,
                semester_id=semester.id,
                dropped_at=datetime.now(timezone.utc) if dropped else None,
            )
        )

    def session(
        self,
        *,
        course: Course,
        lecturer: Lecturer,
        venue: Venue,
        semester: Semester,
        day_of_week: int = 1,
        start: str = "09:00",
        end: str = "11:00",
        status: SessionStatus = SessionStatus.DRAFT,
        version: int = 1,
    ) -> TimetableSession:
        return self._save(
            TimetableSession(
                course_id=course.id,
                lecturer_id=lecturer.id,
                venue_id=venue.id,
                semester_id=semester.id,
                day_of_week=day_of_week,
                start_time=start,
                end_time=end,
                status=status,
                version=version,
                published_at=datetime.now(timezone.utc) if status == SessionStatus.PUBLISHED else None,
            )
        )


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def seed(db_session) -> Seeder:
    return Seeder(db_session)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
