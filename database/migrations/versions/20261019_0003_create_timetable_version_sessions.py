"""record which sessions make up each published version

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "timetable_version_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("version_id", sa.String(length=36), sa.ForeignKey("timetable_versions.id"), nullable=False),
        sa.Column("session_id", sa.String(length=36), sa.ForeignKey("timetable_sessions.id"), nullable=False),
        sa.UniqueConstraint("version_id", "session_id", name="uq_timetable_version_sessions_version_session"),
    )
    op.create_index("ix_timetable_version_sessions_version_id", "timetable_version_sessions", ["version_id"])
    op.create_index("ix_timetable_version_sessions_session_id", "timetable_version_sessions", ["session_id"])


def downgrade() -> None:
    op.drop_table("timetable_version_sessions")
