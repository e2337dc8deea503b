"""Placement validation against the venue, lecturer and student dimensions.

``check_conflicts`` is a read-only query: it never writes, never raises for
dangling references, and may be called speculatively (dry runs from the UI,
or the generator probing candidate slots).
"""
from __future__ import annotations

from dataclasses import replace
import logging

from sqlalchemy.orm import Session

from classgrid.models.course import Course
from classgrid.schemas.conflict import Conflict, ConflictType
from classgrid.services.session_store import (
    ConflictQuery,
    active_student_ids,
    course_codes,
    find_first_overlap,
    find_overlapping_sessions,
    shared_student_counts,
)

logger = logging.getLogger(__name__)


def _venue_conflicts(db: Session, base: ConflictQuery, venue_id: str) -> list[Conflict]:
    occupying = find_first_overlap(db, replace(base, venue_id=venue_id))
    if occupying is None:
        return []
    return [
        Conflict(
            type=ConflictType.VENUE,
            message=f"Venue is already booked by {occupying.course_code} ({occupying.lecturer_name})",
            conflicting_session_id=occupying.session.id,
        )
    ]


def _lecturer_conflicts(db: Session, base: ConflictQuery, lecturer_id: str) -> list[Conflict]:
    occupying = find_first_overlap(db, replace(base, lecturer_id=lecturer_id))
    if occupying is None:
        return []
    return [
        Conflict(
            type=ConflictType.LECTURER,
            message=f"Lecturer is already teaching {occupying.course_code} at {occupying.venue_name}",
            conflicting_session_id=occupying.session.id,
        )
    ]


def _student_conflicts(db: Session, base: ConflictQuery, course_id: str) -> list[Conflict]:
    course = db.get(Course, course_id)
    if course is None:
        return []
    student_ids = active_student_ids(db, course_id, base.semester_id)
    if not student_ids:
        return []

    overlapping = find_overlapping_sessions(db, base)
    if not overlapping:
        return []
    other_course_ids = {session.course_id for session in overlapping}
    shared = shared_student_counts(
        db,
        student_ids=student_ids,
        course_ids=other_course_ids,
        semester_id=base.semester_id,
    )
    codes = course_codes(db, other_course_ids)

    conflicts: list[Conflict] = []
    for session in overlapping:
        overlapping_students = shared.get(session.course_id, 0)
        if overlapping_students <= 0:
            continue
        other_code = codes.get(session.course_id, session.course_id)
        conflicts.append(
            Conflict(
                type=ConflictType.STUDENT,
                message=(
                    f"{overlapping_students} student(s) are registered for both "
                    f"{course.code} and {other_code}"
                ),
                conflicting_session_id=session.id,
            )
        )
    return conflicts


def check_conflicts(
    db: Session,
    *,
    course_id: str,
    lecturer_id: str,
    venue_id: str,
    semester_id: str,
    day_of_week: int,
    start_time: str,
    end_time: str,
    exclude_session_id: str | None = None,
) -> list[Conflict]:
    """Return every rule the candidate placement violates; empty means legal.

    Update paths must pass the edited session's own id as
    ``exclude_session_id`` or the session will always collide with itself.
    """
    base = ConflictQuery(
        semester_id=semester_id,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        exclude_session_id=exclude_session_id,
    )
    conflicts: list[Conflict] = []
    conflicts.extend(_venue_conflicts(db, base, venue_id))
    conflicts.extend(_lecturer_conflicts(db, base, lecturer_id))
    conflicts.extend(_student_conflicts(db, base, course_id))

    if conflicts:
        logger.debug(
            "CONFLICT CHECK | semester_id=%s | course_id=%s | day=%s | window=%s-%s | conflicts=%s",
            semester_id,
            course_id,
            day_of_week,
            start_time,
            end_time,
            len(conflicts),
        )
    return conflicts
