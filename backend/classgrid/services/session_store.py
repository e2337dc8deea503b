"""Storage read/write contracts used by the timetable engine.

Every query here takes an explicit semester id; nothing reads an implicit
"current" semester.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from classgrid.models.course import Course, CourseAllocation
from classgrid.models.lecturer import Lecturer, LecturerAvailability
from classgrid.models.registration import StudentCourseRegistration
from classgrid.models.semester import Semester
from classgrid.models.timetable_session import SessionStatus, TimetableSession
from classgrid.models.timetable_version import TimetableVersion, TimetableVersionSession
from classgrid.models.venue import Venue
from classgrid.services.intervals import overlap_clause

LIVE_STATUSES: tuple[SessionStatus, ...] = (SessionStatus.DRAFT, SessionStatus.PUBLISHED)


@dataclass(frozen=True)
class ConflictQuery:
    semester_id: str
    day_of_week: int
    start_time: str
    end_time: str
    venue_id: str | None = None
    lecturer_id: str | None = None
    exclude_session_id: str | None = None


@dataclass(frozen=True)
class OccupyingSession:
    session: TimetableSession
    course_code: str
    lecturer_name: str
    venue_name: str


@dataclass(frozen=True)
class AllocationRow:
    allocation: CourseAllocation
    course: Course
    lecturer: Lecturer


def _overlapping_sessions_stmt(query: ConflictQuery):
    stmt = select(TimetableSession).where(
        TimetableSession.semester_id == query.semester_id,
        TimetableSession.day_of_week == query.day_of_week,
        TimetableSession.status.in_(LIVE_STATUSES),
        overlap_clause(TimetableSession.start_time, TimetableSession.end_time, query.start_time, query.end_time),
    )
    if query.venue_id is not None:
        stmt = stmt.where(TimetableSession.venue_id == query.venue_id)
    if query.lecturer_id is not None:
        stmt = stmt.where(TimetableSession.lecturer_id == query.lecturer_id)
    if query.exclude_session_id is not None:
        stmt = stmt.where(TimetableSession.id != query.exclude_session_id)
    return stmt.order_by(TimetableSession.start_time, TimetableSession.id)


def find_overlapping_sessions(db: Session, query: ConflictQuery) -> list[TimetableSession]:
    return list(db.execute(_overlapping_sessions_stmt(query)).scalars())


def find_first_overlap(db: Session, query: ConflictQuery) -> OccupyingSession | None:
    session = db.execute(_overlapping_sessions_stmt(query).limit(1)).scalar_one_or_none()
    if session is None:
        return None
    course = db.get(Course, session.course_id)
    lecturer = db.get(Lecturer, session.lecturer_id)
    venue = db.get(Venue, session.venue_id)
    return OccupyingSession(
        session=session,
        course_code=course.code if course is not None else session.course_id,
        lecturer_name=lecturer.full_name if lecturer is not None else session.lecturer_id,
        venue_name=venue.name if venue is not None else session.venue_id,
    )


def active_student_ids(db: Session, course_id: str, semester_id: str) -> list[str]:
    stmt = select(distinct(StudentCourseRegistration.student_id)).where(
        StudentCourseRegistration.course_id == course_id,
        StudentCourseRegistration.semester_id == semester_id,
        StudentCourseRegistration.dropped_at.is_(None),
    )
    return list(db.execute(stmt).scalars())


def count_active_registrations(db: Session, course_id: str, semester_id: str) -> int:
    stmt = select(func.count(distinct(StudentCourseRegistration.student_id))).where(
        StudentCourseRegistration.course_id == course_id,
        StudentCourseRegistration.semester_id == semester_id,
        StudentCourseRegistration.dropped_at.is_(None),
    )
    return int(db.execute(stmt).scalar_one())


def shared_student_counts(
    db: Session,
    *,
    student_ids: list[str],
    course_ids: set[str],
    semester_id: str,
) -> dict[str, int]:
    """Per course, how many of ``student_ids`` are actively registered in it."""
    if not student_ids or not course_ids:
        return {}
    stmt = (
        select(
            StudentCourseRegistration.course_id,
            func.count(distinct(StudentCourseRegistration.student_id)),
        )
        .where(
            StudentCourseRegistration.course_id.in_(course_ids),
            StudentCourseRegistration.student_id.in_(student_ids),
            StudentCourseRegistration.semester_id == semester_id,
            StudentCourseRegistration.dropped_at.is_(None),
        )
        .group_by(StudentCourseRegistration.course_id)
    )
    return {course_id: int(count) for course_id, count in db.execute(stmt).all()}


def course_codes(db: Session, course_ids: set[str]) -> dict[str, str]:
    if not course_ids:
        return {}
    rows = db.execute(select(Course.id, Course.code).where(Course.id.in_(course_ids))).all()
    return {course_id: code for course_id, code in rows}


def load_allocations(db: Session, semester_id: str) -> list[AllocationRow]:
    stmt = (
        select(CourseAllocation, Course, Lecturer)
        .join(Course, Course.id == CourseAllocation.course_id)
        .join(Lecturer, Lecturer.id == CourseAllocation.lecturer_id)
        .where(CourseAllocation.semester_id == semester_id)
        .order_by(CourseAllocation.priority, CourseAllocation.created_at, CourseAllocation.id)
    )
    return [
        AllocationRow(allocation=allocation, course=course, lecturer=lecturer)
        for allocation, course, lecturer in db.execute(stmt).all()
    ]


def load_venues_by_capacity(db: Session) -> list[Venue]:
    stmt = select(Venue).order_by(Venue.capacity.desc(), Venue.name)
    return list(db.execute(stmt).scalars())


def load_lecturer_availability(db: Session, lecturer_id: str) -> list[LecturerAvailability]:
    stmt = (
        select(LecturerAvailability)
        .where(LecturerAvailability.lecturer_id == lecturer_id)
        .order_by(LecturerAvailability.day_of_week, LecturerAvailability.start_time, LecturerAvailability.id)
    )
    return list(db.execute(stmt).scalars())


def load_sessions(
    db: Session,
    semester_id: str,
    statuses: tuple[SessionStatus, ...] = LIVE_STATUSES,
) -> list[TimetableSession]:
    stmt = select(TimetableSession).where(
        TimetableSession.semester_id == semester_id,
        TimetableSession.status.in_(statuses),
    )
    return list(db.execute(stmt).scalars())


def lock_semester(db: Session, semester_id: str) -> Semester | None:
    stmt = select(Semester).where(Semester.id == semester_id).with_for_update()
    return db.execute(stmt).scalar_one_or_none()


def max_version(db: Session, semester_id: str) -> int:
    stmt = select(func.max(TimetableVersion.version)).where(TimetableVersion.semester_id == semester_id)
    return int(db.execute(stmt).scalar_one_or_none() or 0)


def get_version_record(db: Session, semester_id: str, version: int) -> TimetableVersion | None:
    stmt = select(TimetableVersion).where(
        TimetableVersion.semester_id == semester_id,
        TimetableVersion.version == version,
    )
    return db.execute(stmt).scalar_one_or_none()


def create_sessions(db: Session, sessions: list[TimetableSession]) -> None:
    db.add_all(sessions)
    db.flush()


def append_version_record(
    db: Session,
    *,
    semester_id: str,
    version: int,
    published_at: datetime,
    published_by: str | None,
    notes: str | None,
    sessions_published: int,
) -> TimetableVersion:
    record = TimetableVersion(
        semester_id=semester_id,
        version=version,
        published_at=published_at,
        published_by=published_by,
        notes=notes,
        sessions_published=sessions_published,
    )
    db.add(record)
    db.flush()
    return record


def record_version_members(db: Session, version_id: str, session_ids: list[str]) -> None:
    db.add_all([TimetableVersionSession(version_id=version_id, session_id=session_id) for session_id in session_ids])
    db.flush()


def version_member_ids(version_id: str):
    """Subquery of the session ids that were live when ``version_id`` was published."""
    return select(TimetableVersionSession.session_id).where(TimetableVersionSession.version_id == version_id)
