from itertools import count

import pytest
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from classgrid.db.base import Base
from classgrid.models import ActivityLog, TimetableSession
from classgrid.models.timetable_session import SessionStatus
from classgrid.schemas.conflict import ConflictType
from classgrid.schemas.generator import GenerateTimetableRequest
from classgrid.services import generator as generator_module
from classgrid.services.generator import generate_timetable

MORNING = {"start": "09:00", "end": "11:00"}
LATE_MORNING = {"start": "11:00", "end": "13:00"}


@pytest.fixture
def engine():
    # pysqlite needs explicit BEGIN handling for SAVEPOINT to nest inside the outer transaction.
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection):
        connection.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


def _request(semester, slots=None, days=None):
    return GenerateTimetableRequest(
        semester_id=semester.id,
        time_slots=slots or [MORNING, LATE_MORNING],
        days_of_week=days or [1],
        requested_by="registry",
    )


def _sessions(db, semester):
    return (
        db.query(TimetableSession)
        .filter(TimetableSession.semester_id == semester.id)
        .order_by(TimetableSession.day_of_week, TimetableSession.start_time)
        .all()
    )


@pytest.fixture
def base(seed):
    semester = seed.semester()
    ada = seed.lecturer("Ada", "Lovelace")
    seed.availability(ada, 1, "09:00", "17:00")
    hall = seed.venue("Hall A", capacity=100)
    return {"semester": semester, "ada": ada, "hall": hall}


def test_single_course_gets_first_fitting_slot(db_session, seed, base):
    course = seed.course("CSC101", expected_size=80)
    seed.allocation(course, base["ada"], base["semester"])

    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.success is True
    assert result.sessions_created == 1
    assert result.errors == []
    assert result.conflicts == []
    sessions = _sessions(db_session, base["semester"])
    assert len(sessions) == 1
    session = sessions[0]
    assert (session.day_of_week, session.start_time, session.end_time) == (1, "09:00", "11:00")
    assert session.venue_id == base["hall"].id
    assert session.status == SessionStatus.DRAFT
    assert session.version == 1
    assert session.published_at is None

    logs = db_session.query(ActivityLog).filter(ActivityLog.action == "timetable.generate").all()
    assert len(logs) == 1
    assert logs[0].actor == "registry"


def test_later_courses_see_sessions_placed_earlier_in_the_run(db_session, seed, base):
    first = seed.course("CSC101")
    second = seed.course("CSC102")
    seed.allocation(first, base["ada"], base["semester"], priority=0)
    seed.allocation(second, base["ada"], base["semester"], priority=1)

    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.success is True
    assert result.sessions_created == 2
    placed = {session.course_id: session.start_time for session in _sessions(db_session, base["semester"])}
    assert placed == {first.id: "09:00", second.id: "11:00"}
    # The rejected 09:00 attempt for the second course is reported, not hidden.
    assert {conflict.type for conflict in result.conflicts} == {ConflictType.VENUE, ConflictType.LECTURER}


def test_allocation_priority_decides_who_gets_a_contested_slot(db_session, seed, base):
    early = seed.course("CSC101")
    late = seed.course("CSC102")
    seed.allocation(early, base["ada"], base["semester"], priority=5)
    seed.allocation(late, base["ada"], base["semester"], priority=1)

    result = generate_timetable(db_session, _request(base["semester"], slots=[MORNING]))

    assert result.success is False
    assert result.sessions_created == 1
    assert result.errors == ["Could not find available slot for CSC101"]
    sessions = _sessions(db_session, base["semester"])
    assert [session.course_id for session in sessions] == [late.id]


def test_capacity_exhaustion_is_reported_per_course(db_session, seed, base):
    big = seed.course("BIG101", expected_size=150)
    small = seed.course("SML101", expected_size=20)
    seed.allocation(big, base["ada"], base["semester"], priority=0)
    seed.allocation(small, base["ada"], base["semester"], priority=1)

    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.success is False
    assert result.sessions_created == 1
    assert result.errors == ["No suitable venue for BIG101 (requires capacity >= 150)"]


def test_active_registrations_override_expected_size(db_session, seed, base):
    course = seed.course("CSC101", expected_size=500)
    seed.allocation(course, base["ada"], base["semester"])
    seed.register("s1", course, base["semester"])
    seed.register("s2", course, base["semester"])

    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.success is True
    assert result.sessions_created == 1


def test_no_allocations(db_session, base):
    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.success is False
    assert result.sessions_created == 0
    assert result.errors == ["No course allocations found for this semester"]


def test_no_venues(db_session, seed):
    semester = seed.semester()
    ada = seed.lecturer()
    seed.availability(ada, 1, "09:00", "17:00")
    seed.allocation(seed.course("CSC101"), ada, semester)

    result = generate_timetable(db_session, _request(semester))

    assert result.success is False
    assert result.errors == ["No venues available"]


def test_lecturer_without_availability_on_requested_days(db_session, seed, base):
    alan = seed.lecturer("Alan", "Turing")
    seed.availability(alan, 3, "09:00", "17:00")
    seed.allocation(seed.course("CSC101"), alan, base["semester"])

    result = generate_timetable(db_session, _request(base["semester"], days=[1, 2]))

    assert result.success is False
    assert result.errors == ["Lecturer Alan Turing has no availability for selected days"]


def test_slots_outside_every_availability_window(db_session, seed, base):
    alan = seed.lecturer("Alan", "Turing")
    seed.availability(alan, 1, "14:00", "16:00")
    seed.allocation(seed.course("CSC101"), alan, base["semester"])

    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.errors == ["Could not find available slot for CSC101"]
    assert result.conflicts == []


def test_rerun_skips_courses_that_already_have_a_draft(db_session, seed, base):
    seed.allocation(seed.course("CSC101"), base["ada"], base["semester"])
    generate_timetable(db_session, _request(base["semester"]))

    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.success is True
    assert result.sessions_created == 0
    assert result.skipped_courses == ["CSC101"]
    assert len(_sessions(db_session, base["semester"])) == 1


def test_deadline_reports_unreached_courses(db_session, seed, base):
    for priority, code in enumerate(("CSC101", "CSC102", "CSC103")):
        seed.allocation(seed.course(code), base["ada"], base["semester"], priority=priority)
    ticks = count()

    # One tick per clock read: only the first course is checked inside the deadline.
    result = generate_timetable(
        db_session,
        _request(base["semester"]),
        deadline_seconds=1.5,
        clock=lambda: next(ticks),
    )

    assert result.success is False
    assert result.sessions_created == 1
    assert result.errors == [
        "Generation deadline exceeded before CSC102 was scheduled",
        "Generation deadline exceeded before CSC103 was scheduled",
    ]


def test_storage_error_for_one_course_does_not_stop_the_run(db_session, seed, base, monkeypatch):
    broken = seed.course("CSC101")
    healthy = seed.course("CSC102")
    seed.allocation(broken, base["ada"], base["semester"], priority=0)
    seed.allocation(healthy, base["ada"], base["semester"], priority=1)
    original = generator_module.count_active_registrations

    def flaky_count(db, course_id, semester_id):
        if course_id == broken.id:
            raise OperationalError("SELECT count(*)", {}, Exception("connection reset"))
        return original(db, course_id, semester_id)

    monkeypatch.setattr(generator_module, "count_active_registrations", flaky_count)

    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.success is False
    assert result.sessions_created == 1
    assert result.errors == ["Failed to schedule CSC101: storage error"]
    assert [session.course_id for session in _sessions(db_session, base["semester"])] == [healthy.id]


def test_failed_statement_inside_a_course_leaves_the_run_usable(db_session, seed, base, monkeypatch):
    broken = seed.course("CSC101")
    healthy = seed.course("CSC102")
    seed.allocation(broken, base["ada"], base["semester"], priority=0)
    seed.allocation(healthy, base["ada"], base["semester"], priority=1)
    original = generator_module.count_active_registrations

    def count_with_bad_sql(db, course_id, semester_id):
        if course_id == broken.id:
            db.execute(text("SELECT student_id FROM registrations_that_do_not_exist"))
        return original(db, course_id, semester_id)

    monkeypatch.setattr(generator_module, "count_active_registrations", count_with_bad_sql)

    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.errors == ["Failed to schedule CSC101: storage error"]
    assert result.sessions_created == 1
    assert [session.course_id for session in _sessions(db_session, base["semester"])] == [healthy.id]


def test_write_failure_undoes_only_that_course(db_session, seed, base, monkeypatch):
    broken = seed.course("CSC101")
    healthy = seed.course("CSC102")
    seed.allocation(broken, base["ada"], base["semester"], priority=0)
    seed.allocation(healthy, base["ada"], base["semester"], priority=1)
    original = generator_module.create_sessions

    def flush_then_fail(db, sessions):
        original(db, sessions)
        if sessions[0].course_id == broken.id:
            raise OperationalError("INSERT INTO timetable_sessions", {}, Exception("disk full"))

    monkeypatch.setattr(generator_module, "create_sessions", flush_then_fail)

    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.success is False
    assert result.sessions_created == 1
    assert result.errors == ["Failed to schedule CSC101: storage error"]
    # The broken course's flushed row is gone, so the next course gets the first slot.
    sessions = _sessions(db_session, base["semester"])
    assert [(session.course_id, session.start_time) for session in sessions] == [(healthy.id, "09:00")]


def test_failure_outside_a_course_rolls_back_the_whole_run(db_session, seed, base, monkeypatch):
    seed.allocation(seed.course("CSC101"), base["ada"], base["semester"], priority=0)
    seed.allocation(seed.course("CSC102"), base["ada"], base["semester"], priority=1)

    def failing_audit(db, **kwargs):
        raise OperationalError("INSERT INTO activity_logs", {}, Exception("disk full"))

    monkeypatch.setattr(generator_module, "log_activity", failing_audit)

    result = generate_timetable(db_session, _request(base["semester"]))

    assert result.success is False
    assert result.sessions_created == 0
    assert result.errors == ["Failed to generate timetable: OperationalError"]
    assert _sessions(db_session, base["semester"]) == []
    assert db_session.query(ActivityLog).count() == 0
