"""Draft -> published transitions and rollback for a semester's timetable.

Publish and rollback each run as one transaction and lock the semester row
first, so two concurrent calls on the same semester are serialised. The
``(semester_id, version)`` unique constraint on the ledger rejects a duplicate
version number where row locks are not available.

Every publish records the full set of sessions live at that moment in
``timetable_version_sessions``; rollback restores exactly that set.
"""
from __future__ import annotations

from datetime import datetime, timezone
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from classgrid.core.exceptions import AppError, ResourceNotFoundError, SchedulerError
from classgrid.models.semester import Semester
from classgrid.models.timetable_session import SessionStatus, TimetableSession
from classgrid.models.timetable_version import TimetableVersion
from classgrid.schemas.version import PublishResult, RollbackResult, TimetableVersionOut
from classgrid.services.audit import log_activity
from classgrid.services.session_store import (
    append_version_record,
    get_version_record,
    load_sessions,
    lock_semester,
    max_version,
    record_version_members,
    version_member_ids,
)

logger = logging.getLogger(__name__)


def _require_semester(db: Session, semester_id: str) -> Semester:
    semester = lock_semester(db, semester_id)
    if semester is None:
        raise ResourceNotFoundError("Semester", semester_id)
    return semester


def publish(
    db: Session,
    semester_id: str,
    *,
    notes: str | None = None,
    published_by: str | None = None,
) -> PublishResult:
    """Promote every DRAFT session of the semester to the next version."""
    try:
        semester = _require_semester(db, semester_id)
        drafts = load_sessions(db, semester_id, (SessionStatus.DRAFT,))
        if not drafts:
            raise SchedulerError(
                "No draft sessions to publish for this semester",
                details={"semester_id": semester_id},
            )

        new_version = max_version(db, semester_id) + 1
        published_at = datetime.now(timezone.utc)
        live = load_sessions(db, semester_id, (SessionStatus.PUBLISHED,))
        for session in drafts:
            session.status = SessionStatus.PUBLISHED
            # A session keeps the version it was first published in.
            if session.published_at is None:
                session.version = new_version
                session.published_at = published_at

        record = append_version_record(
            db,
            semester_id=semester_id,
            version=new_version,
            published_at=published_at,
            published_by=published_by,
            notes=notes,
            sessions_published=len(drafts),
        )
        record_version_members(db, record.id, [session.id for session in live + drafts])
        semester.active_version = new_version
        log_activity(
            db,
            actor=published_by,
            action="timetable.publish",
            entity_type="semester",
            entity_id=semester_id,
            details={
                "version": new_version,
                "sessions_published": len(drafts),
                "sessions_live": len(live) + len(drafts),
            },
        )
        db.commit()
    except AppError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("TIMETABLE PUBLISH FAILED | semester_id=%s", semester_id)
        raise

    logger.info(
        "TIMETABLE PUBLISHED | semester_id=%s | version=%s | sessions=%s | published_by=%s",
        semester_id,
        new_version,
        len(drafts),
        published_by,
    )
    return PublishResult(semester_id=semester_id, version=new_version, sessions_published=len(drafts))


def rollback(
    db: Session,
    semester_id: str,
    version: int,
    *,
    requested_by: str | None = None,
) -> RollbackResult:
    """Make ``version`` the live timetable again by flipping session statuses.

    The restored set is the membership recorded at publish time, which
    includes older sessions that were still live underneath that version.

    Rows are never copied or deleted; ledger entries newer than ``version``
    stay in place as history.
    """
    try:
        semester = _require_semester(db, semester_id)
        record = get_version_record(db, semester_id, version)
        if record is None:
            raise ResourceNotFoundError("Timetable version", f"{semester_id}/v{version}")

        demoted = db.execute(
            update(TimetableSession)
            .where(
                TimetableSession.semester_id == semester_id,
                TimetableSession.status == SessionStatus.PUBLISHED,
            )
            .values(status=SessionStatus.DRAFT)
            .execution_options(synchronize_session=False)
        ).rowcount
        restored = db.execute(
            update(TimetableSession)
            .where(
                TimetableSession.semester_id == semester_id,
                TimetableSession.id.in_(version_member_ids(record.id)),
            )
            .values(status=SessionStatus.PUBLISHED)
            .execution_options(synchronize_session=False)
        ).rowcount
        # Bulk updates bypass the identity map; reload anything already in the session.
        db.expire_all()
        previous_version = semester.active_version
        semester.active_version = version
        log_activity(
            db,
            actor=requested_by,
            action="timetable.rollback",
            entity_type="semester",
            entity_id=semester_id,
            details={
                "from_version": previous_version,
                "to_version": version,
                "sessions_demoted": demoted,
                "sessions_restored": restored,
            },
        )
        db.commit()
    except AppError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("TIMETABLE ROLLBACK FAILED | semester_id=%s | version=%s", semester_id, version)
        raise

    logger.info(
        "TIMETABLE ROLLED BACK | semester_id=%s | from_version=%s | to_version=%s | demoted=%s | restored=%s",
        semester_id,
        previous_version,
        version,
        demoted,
        restored,
    )
    return RollbackResult(semester_id=semester_id, version=version, sessions_restored=restored)


def list_versions(db: Session, semester_id: str) -> list[TimetableVersionOut]:
    semester = db.get(Semester, semester_id)
    if semester is None:
        raise ResourceNotFoundError("Semester", semester_id)
    records = db.execute(
        select(TimetableVersion)
        .where(TimetableVersion.semester_id == semester_id)
        .order_by(TimetableVersion.version.desc())
    ).scalars()
    versions: list[TimetableVersionOut] = []
    for record in records:
        item = TimetableVersionOut.model_validate(record)
        item.is_active = record.version == semester.active_version
        versions.append(item)
    return versions
