"""create timetable sessions, version ledger and activity log

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


session_status = sa.Enum("DRAFT", "PUBLISHED", name="session_status")


def upgrade() -> None:
    op.create_table(
        "timetable_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("course_id", sa.String(length=36), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("lecturer_id", sa.String(length=36), sa.ForeignKey("lecturers.id"), nullable=False),
        sa.Column("venue_id", sa.String(length=36), sa.ForeignKey("venues.id"), nullable=False),
        sa.Column("semester_id", sa.String(length=36), sa.ForeignKey("semesters.id"), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("status", session_status, nullable=False, server_default="DRAFT"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_timetable_sessions_course_id", "timetable_sessions", ["course_id"])
    op.create_index("ix_timetable_sessions_lecturer_id", "timetable_sessions", ["lecturer_id"])
    op.create_index("ix_timetable_sessions_venue_id", "timetable_sessions", ["venue_id"])
    op.create_index("ix_timetable_sessions_semester_day", "timetable_sessions", ["semester_id", "day_of_week"])
    op.create_index("ix_timetable_sessions_semester_status", "timetable_sessions", ["semester_id", "status"])

    op.create_table(
        "timetable_versions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("semester_id", sa.String(length=36), sa.ForeignKey("semesters.id"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("published_by", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sessions_published", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("semester_id", "version", name="uq_timetable_versions_semester_version"),
    )
    op.create_index("ix_timetable_versions_semester_id", "timetable_versions", ["semester_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("actor", sa.String(length=100), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("timetable_versions")
    op.drop_table("timetable_sessions")
    session_status.drop(op.get_bind(), checkfirst=True)
