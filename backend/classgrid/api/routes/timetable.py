from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from classgrid.api.deps import get_db
from classgrid.schemas.generator import GenerateTimetableRequest, GenerationResult
from classgrid.schemas.slots import MAX_DAY, MIN_DAY
from classgrid.schemas.timetable import (
    ConflictCheckRequest,
    ConflictCheckResponse,
    SessionCreate,
    SessionOut,
    SessionUpdate,
)
from classgrid.schemas.version import (
    PublishRequest,
    PublishResult,
    RollbackRequest,
    RollbackResult,
    TimetableVersionOut,
)
from classgrid.services import session_editor, versioning
from classgrid.services.conflict_service import check_conflicts
from classgrid.services.generator import generate_timetable

router = APIRouter()


@router.get("/", response_model=list[SessionOut])
def get_published_timetable(
    semester_id: str | None = Query(default=None, max_length=36),
    day_of_week: int | None = Query(default=None, ge=MIN_DAY, le=MAX_DAY),
    lecturer_id: str | None = Query(default=None, max_length=36),
    course_id: str | None = Query(default=None, max_length=36),
    db: Session = Depends(get_db),
) -> list[SessionOut]:
    return session_editor.list_published_sessions(
        db,
        semester_id=semester_id,
        day_of_week=day_of_week,
        lecturer_id=lecturer_id,
        course_id=course_id,
    )


@router.post("/check-conflicts", response_model=ConflictCheckResponse)
def check_session_conflicts(
    payload: ConflictCheckRequest,
    db: Session = Depends(get_db),
) -> ConflictCheckResponse:
    conflicts = check_conflicts(
        db,
        course_id=payload.course_id,
        lecturer_id=payload.lecturer_id,
        venue_id=payload.venue_id,
        semester_id=payload.semester_id,
        day_of_week=payload.day_of_week,
        start_time=payload.start_time,
        end_time=payload.end_time,
        exclude_session_id=payload.exclude_session_id,
    )
    return ConflictCheckResponse(conflicts=conflicts)


@router.post("/sessions", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def create_session(
    payload: SessionCreate,
    actor: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
) -> SessionOut:
    return session_editor.create_session(db, payload, actor=actor)


@router.put("/sessions/{session_id}", response_model=SessionOut)
def update_session(
    session_id: str,
    payload: SessionUpdate,
    actor: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
) -> SessionOut:
    return session_editor.update_session(db, session_id, payload, actor=actor)


@router.delete("/sessions/{session_id}")
def delete_session(
    session_id: str,
    actor: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
) -> dict:
    session_editor.delete_session(db, session_id, actor=actor)
    return {"success": True}


@router.post("/generate", response_model=GenerationResult)
def generate(
    payload: GenerateTimetableRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> GenerationResult:
    result = generate_timetable(db, payload)
    # Partial success is a normal outcome; only a run that placed nothing and failed is a client error.
    if not result.success and result.sessions_created == 0:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result


@router.post("/publish", response_model=PublishResult)
def publish_timetable(
    payload: PublishRequest,
    db: Session = Depends(get_db),
) -> PublishResult:
    return versioning.publish(
        db,
        payload.semester_id,
        notes=payload.notes,
        published_by=payload.published_by,
    )


@router.post("/rollback", response_model=RollbackResult)
def rollback_timetable(
    payload: RollbackRequest,
    db: Session = Depends(get_db),
) -> RollbackResult:
    return versioning.rollback(
        db,
        payload.semester_id,
        payload.version,
        requested_by=payload.requested_by,
    )


@router.get("/versions", response_model=list[TimetableVersionOut])
def list_timetable_versions(
    semester_id: str = Query(..., min_length=1, max_length=36),
    db: Session = Depends(get_db),
) -> list[TimetableVersionOut]:
    return versioning.list_versions(db, semester_id)
