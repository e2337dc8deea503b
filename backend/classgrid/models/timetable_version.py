import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from classgrid.db.base import Base


class TimetableVersion(Base):
    """Append-only ledger row: version N of a semester was published at T by U."""

    __tablename__ = "timetable_versions"
    __table_args__ = (
        UniqueConstraint("semester_id", "version", name="uq_timetable_versions_semester_version"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    semester_id: Mapped[str] = mapped_column(String(36), ForeignKey("semesters.id"), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    published_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sessions_published: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TimetableVersionSession(Base):
    """Membership row: this session was live when the version was published."""

    __tablename__ = "timetable_version_sessions"
    __table_args__ = (
        UniqueConstraint("version_id", "session_id", name="uq_timetable_version_sessions_version_session"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    version_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("timetable_versions.id"), nullable=False, index=True
    )
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("timetable_sessions.id"), nullable=False, index=True
    )
