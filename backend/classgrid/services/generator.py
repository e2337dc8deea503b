"""Greedy first-fit timetable generation for one semester.

Allocations are processed in allocation order and every course takes the
first (venue, day, slot) combination that passes the conflict detector. There
is no backtracking: a different allocation order can give a different, equally
valid, timetable. Accepted sessions are flushed before the next allocation is
searched so later conflict checks see them; the whole run commits once.
Each course is searched inside its own savepoint, so a storage error undoes
only that course and the outer transaction stays usable.
"""
from __future__ import annotations

from collections.abc import Callable
import logging
from time import perf_counter

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from classgrid.core.config import get_settings
from classgrid.models.timetable_session import SessionStatus, TimetableSession
from classgrid.models.venue import Venue
from classgrid.schemas.generator import GenerateTimetableRequest, GenerationResult
from classgrid.services.audit import log_activity
from classgrid.services.conflict_service import check_conflicts
from classgrid.services.intervals import contains
from classgrid.services.session_store import (
    AllocationRow,
    count_active_registrations,
    create_sessions,
    load_allocations,
    load_lecturer_availability,
    load_sessions,
    load_venues_by_capacity,
)

logger = logging.getLogger(__name__)

SessionKey = tuple[str, str, int, str]


class GreedyTimetableGenerator:
    def __init__(
        self,
        db: Session,
        request: GenerateTimetableRequest,
        *,
        deadline_seconds: float | None = None,
        clock: Callable[[], float] = perf_counter,
    ) -> None:
        self.db = db
        self.request = request
        self.clock = clock
        self.deadline_seconds = deadline_seconds
        self.result = GenerationResult()
        self._started = clock()

    def _deadline_passed(self) -> bool:
        if self.deadline_seconds is None:
            return False
        return (self.clock() - self._started) > self.deadline_seconds

    def run(self) -> GenerationResult:
        semester_id = self.request.semester_id
        result = self.result

        allocations = load_allocations(self.db, semester_id)
        if not allocations:
            result.errors.append("No course allocations found for this semester")
            return result

        venues = load_venues_by_capacity(self.db)
        if not venues:
            result.errors.append("No venues available")
            return result

        published_keys: set[SessionKey] = {
            (session.course_id, session.lecturer_id, session.day_of_week, session.start_time)
            for session in load_sessions(self.db, semester_id, (SessionStatus.PUBLISHED,))
        }
        drafted_course_ids = {
            session.course_id for session in load_sessions(self.db, semester_id, (SessionStatus.DRAFT,))
        }

        for index, row in enumerate(allocations):
            if self._deadline_passed():
                for pending in allocations[index:]:
                    result.errors.append(f"Generation deadline exceeded before {pending.course.code} was scheduled")
                logger.warning(
                    "TIMETABLE GENERATION DEADLINE | semester_id=%s | unprocessed=%s | deadline_s=%s",
                    semester_id,
                    len(allocations) - index,
                    self.deadline_seconds,
                )
                break

            if row.course.id in drafted_course_ids:
                result.skipped_courses.append(row.course.code)
                continue

            # Savepoint per course: a storage error undoes only this course.
            try:
                with self.db.begin_nested():
                    session = self._place(row, venues, published_keys)
                    if session is not None:
                        create_sessions(self.db, [session])
            except SQLAlchemyError:
                logger.exception(
                    "TIMETABLE GENERATION COURSE FAILED | semester_id=%s | course=%s",
                    semester_id,
                    row.course.code,
                )
                result.errors.append(f"Failed to schedule {row.course.code}: storage error")
                continue

            if session is None:
                continue
            drafted_course_ids.add(row.course.id)
            result.sessions_created += 1

        result.success = not result.errors
        return result

    def _place(
        self,
        row: AllocationRow,
        venues: list[Venue],
        published_keys: set[SessionKey],
    ) -> TimetableSession | None:
        course = row.course
        lecturer = row.lecturer
        semester_id = self.request.semester_id

        expected_size = count_active_registrations(self.db, course.id, semester_id) or course.expected_size

        venue = next((candidate for candidate in venues if candidate.capacity >= expected_size), None)
        if venue is None:
            self._unplaced(course.code, f"No suitable venue for {course.code} (requires capacity >= {expected_size})")
            return None

        windows = [
            window
            for window in load_lecturer_availability(self.db, lecturer.id)
            if window.day_of_week in self.request.days_of_week
        ]
        if not windows:
            self._unplaced(course.code, f"Lecturer {lecturer.full_name} has no availability for selected days")
            return None

        for window in windows:
            for slot in self.request.time_slots:
                if not contains(window.start_time, window.end_time, slot.start, slot.end):
                    continue
                conflicts = check_conflicts(
                    self.db,
                    course_id=course.id,
                    lecturer_id=lecturer.id,
                    venue_id=venue.id,
                    semester_id=semester_id,
                    day_of_week=window.day_of_week,
                    start_time=slot.start,
                    end_time=slot.end,
                )
                if conflicts:
                    self.result.conflicts.extend(conflicts)
                    continue
                if (course.id, lecturer.id, window.day_of_week, slot.start) in published_keys:
                    continue
                return TimetableSession(
                    course_id=course.id,
                    lecturer_id=lecturer.id,
                    venue_id=venue.id,
                    semester_id=semester_id,
                    day_of_week=window.day_of_week,
                    start_time=slot.start,
                    end_time=slot.end,
                    status=SessionStatus.DRAFT,
                    version=1,
                )

        self._unplaced(course.code, f"Could not find available slot for {course.code}")
        return None

    def _unplaced(self, course_code: str, message: str) -> None:
        logger.info(
            "TIMETABLE GENERATION COURSE UNPLACED | semester_id=%s | course=%s | reason=%s",
            self.request.semester_id,
            course_code,
            message,
        )
        self.result.errors.append(message)


def generate_timetable(
    db: Session,
    request: GenerateTimetableRequest,
    *,
    deadline_seconds: float | None = None,
    clock: Callable[[], float] = perf_counter,
) -> GenerationResult:
    """Create DRAFT sessions for every allocation of the semester that fits.

    Per-course failures are reported in ``errors`` and never stop the run.
    A storage failure outside a single course (loading inputs, the audit row,
    the commit) rolls back the whole run and is reported as a single error.
    """
    if deadline_seconds is None:
        deadline_seconds = get_settings().generation_deadline_seconds
    started = clock()
    logger.info(
        "TIMETABLE GENERATION START | semester_id=%s | slots=%s | days=%s | requested_by=%s",
        request.semester_id,
        len(request.time_slots),
        request.days_of_week,
        request.requested_by,
    )
    try:
        generator = GreedyTimetableGenerator(db, request, deadline_seconds=deadline_seconds, clock=clock)
        result = generator.run()
        if result.sessions_created:
            log_activity(
                db,
                actor=request.requested_by,
                action="timetable.generate",
                entity_type="semester",
                entity_id=request.semester_id,
                details={
                    "sessions_created": result.sessions_created,
                    "errors": len(result.errors),
                    "conflicts": len(result.conflicts),
                },
            )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "TIMETABLE GENERATION FAILED | semester_id=%s | wall_ms=%s",
            request.semester_id,
            int((clock() - started) * 1000),
        )
        return GenerationResult(success=False, errors=[f"Failed to generate timetable: {exc.__class__.__name__}"])

    logger.info(
        "TIMETABLE GENERATION COMPLETE | semester_id=%s | created=%s | skipped=%s | errors=%s | conflicts=%s | wall_ms=%s",
        request.semester_id,
        result.sessions_created,
        len(result.skipped_courses),
        len(result.errors),
        len(result.conflicts),
        int((clock() - started) * 1000),
    )
    return result
