from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from classgrid.core.config import get_settings
from classgrid.db.base import Base
from classgrid.db.session import engine as default_engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "semesters": {"id", "active_version"},
    "courses": {"id", "code", "expected_size"},
    "lecturers": {"id", "first_name", "last_name"},
    "lecturer_availability": {"id", "lecturer_id", "day_of_week", "start_time", "end_time"},
    "venues": {"id", "capacity"},
    "course_allocations": {"id", "course_id", "lecturer_id", "semester_id"},
    "student_course_registrations": {"id", "student_id", "course_id", "semester_id", "dropped_at"},
    "timetable_sessions": {
        "id",
        "course_id",
        "lecturer_id",
        "venue_id",
        "semester_id",
        "day_of_week",
        "start_time",
        "end_time",
        "status",
        "version",
        "published_at",
    },
    "timetable_versions": {"id", "semester_id", "version", "published_at"},
    "timetable_version_sessions": {"id", "version_id", "session_id"},
    "activity_logs": {"id", "action", "details"},
}


def find_schema_gaps(engine: Engine | None = None) -> tuple[list[str], dict[str, list[str]]]:
    bind = engine or default_engine
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    with bind.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        for table_name, columns in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                missing_tables.append(table_name)
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing = sorted(columns - existing)
            if missing:
                missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_runtime_schema(engine: Engine | None = None) -> None:
    bind = engine or default_engine
    settings = get_settings()
    if settings.auto_create_schema:
        import classgrid.models  # noqa: F401

        Base.metadata.create_all(bind=bind)
        logger.info("SCHEMA BOOTSTRAP | created missing tables | url=%s", bind.url.render_as_string(hide_password=True))

    try:
        missing_tables, missing_columns = find_schema_gaps(bind)
    except SQLAlchemyError:
        logger.exception("SCHEMA CHECK FAILED | url=%s", bind.url.render_as_string(hide_password=True))
        return
    if missing_tables or missing_columns:
        logger.warning(
            "SCHEMA OUTDATED | missing_tables=%s | missing_columns=%s | hint=run `alembic upgrade head`",
            missing_tables,
            missing_columns,
        )
