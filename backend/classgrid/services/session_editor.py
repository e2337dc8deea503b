from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from classgrid.core.exceptions import ResourceNotFoundError, SchedulerError, SessionConflictError
from classgrid.models.timetable_session import SessionStatus, TimetableSession
from classgrid.schemas.timetable import SessionCreate, SessionPlacement, SessionUpdate
from classgrid.services.audit import log_activity
from classgrid.services.conflict_service import check_conflicts

logger = logging.getLogger(__name__)


def _ensure_no_conflicts(db: Session, placement: SessionPlacement, *, exclude_session_id: str | None) -> None:
    conflicts = check_conflicts(
        db,
        course_id=placement.course_id,
        lecturer_id=placement.lecturer_id,
        venue_id=placement.venue_id,
        semester_id=placement.semester_id,
        day_of_week=placement.day_of_week,
        start_time=placement.start_time,
        end_time=placement.end_time,
        exclude_session_id=exclude_session_id,
    )
    if conflicts:
        raise SessionConflictError([conflict.model_dump(mode="json") for conflict in conflicts])


def _get_session_or_404(db: Session, session_id: str) -> TimetableSession:
    session = db.get(TimetableSession, session_id)
    if session is None:
        raise ResourceNotFoundError("Timetable session", session_id)
    return session


def _ensure_never_published(session: TimetableSession, verb: str) -> None:
    # Rollback restores rows by version, so published rows must stay untouched.
    if session.published_at is not None:
        raise SchedulerError(
            f"Sessions that belong to a published version cannot be {verb}",
            details={"session_id": session.id, "version": session.version},
        )


def create_session(db: Session, payload: SessionCreate, *, actor: str | None = None) -> TimetableSession:
    _ensure_no_conflicts(db, payload, exclude_session_id=None)
    session = TimetableSession(
        **payload.model_dump(),
        status=SessionStatus.DRAFT,
        version=1,
    )
    db.add(session)
    db.flush()
    log_activity(
        db,
        actor=actor,
        action="timetable.session.create",
        entity_type="timetable_session",
        entity_id=session.id,
        details=payload.model_dump(),
    )
    db.commit()
    db.refresh(session)
    logger.info(
        "TIMETABLE SESSION CREATED | session_id=%s | semester_id=%s | course_id=%s | day=%s | window=%s-%s",
        session.id,
        session.semester_id,
        session.course_id,
        session.day_of_week,
        session.start_time,
        session.end_time,
    )
    return session


def update_session(
    db: Session,
    session_id: str,
    payload: SessionUpdate,
    *,
    actor: str | None = None,
) -> TimetableSession:
    session = _get_session_or_404(db, session_id)
    _ensure_never_published(session, "edited")
    _ensure_no_conflicts(db, payload, exclude_session_id=session_id)

    data = payload.model_dump()
    for key, value in data.items():
        setattr(session, key, value)
    log_activity(
        db,
        actor=actor,
        action="timetable.session.update",
        entity_type="timetable_session",
        entity_id=session_id,
        details=data,
    )
    db.commit()
    db.refresh(session)
    return session


def delete_session(db: Session, session_id: str, *, actor: str | None = None) -> None:
    session = _get_session_or_404(db, session_id)
    _ensure_never_published(session, "deleted")
    log_activity(
        db,
        actor=actor,
        action="timetable.session.delete",
        entity_type="timetable_session",
        entity_id=session_id,
        details={"semester_id": session.semester_id, "course_id": session.course_id},
    )
    db.delete(session)
    db.commit()


def list_published_sessions(
    db: Session,
    *,
    semester_id: str | None = None,
    day_of_week: int | None = None,
    lecturer_id: str | None = None,
    course_id: str | None = None,
) -> list[TimetableSession]:
    stmt = select(TimetableSession).where(TimetableSession.status == SessionStatus.PUBLISHED)
    if semester_id is not None:
        stmt = stmt.where(TimetableSession.semester_id == semester_id)
    if day_of_week is not None:
        stmt = stmt.where(TimetableSession.day_of_week == day_of_week)
    if lecturer_id is not None:
        stmt = stmt.where(TimetableSession.lecturer_id == lecturer_id)
    if course_id is not None:
        stmt = stmt.where(TimetableSession.course_id == course_id)
    stmt = stmt.order_by(TimetableSession.day_of_week, TimetableSession.start_time, TimetableSession.id)
    return list(db.execute(stmt).scalars())
