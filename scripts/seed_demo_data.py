"""Seed a small demo semester for ClassGrid.

Run:
  PYTHONPATH=backend python scripts/seed_demo_data.py

Re-running is safe: rows are matched on their natural keys and updated in place.
"""

from __future__ import annotations

import os

from sqlalchemy import func, select

from classgrid.db.bootstrap import ensure_runtime_schema
from classgrid.db.session import SessionLocal
from classgrid.models import (
    Course,
    CourseAllocation,
    Lecturer,
    LecturerAvailability,
    Semester,
    StudentCourseRegistration,
    Venue,
)

SEMESTER_NAME = os.getenv("SEED_SEMESTER_NAME", "2026/2027 First Semester").strip() or "2026/2027 First Semester"
STUDENTS_PER_COURSE = int(os.getenv("SEED_STUDENTS_PER_COURSE", "25"))
WORKING_DAYS = [1, 2, 3, 4, 5]

VENUES = [
    ("Main Auditorium", "Senate Building", 250),
    ("LT1", "Science Complex", 120),
    ("LT2", "Science Complex", 120),
    ("A101", "Academic Block", 60),
    ("A102", "Academic Block", 60),
]

LECTURERS = [
    ("Ngozi", "Adeyemi", "n.adeyemi@university.edu"),
    ("Kwame", "Mensah", "k.mensah@university.edu"),
    ("Amina", "Bello", "a.bello@university.edu"),
]

# code, name, expected size, lecturer email
CURRICULUM = [
    ("CSC101", "Introduction to Computing", 180, "n.adeyemi@university.edu"),
    ("CSC201", "Data Structures", 110, "n.adeyemi@university.edu"),
    ("MTH101", "Elementary Mathematics I", 200, "k.mensah@university.edu"),
    ("MTH201", "Linear Algebra", 90, "k.mensah@university.edu"),
    ("PHY101", "General Physics I", 150, "a.bello@university.edu"),
    ("STA211", "Probability", 55, "a.bello@university.edu"),
]

# Students in these pairs share a cohort, so their sessions must not overlap.
SHARED_COHORTS = [("CSC101", "MTH101"), ("CSC201", "MTH201")]


def upsert_semester(session) -> Semester:
    semester = session.execute(select(Semester).where(Semester.name == SEMESTER_NAME)).scalar_one_or_none()
    if semester is None:
        semester = Semester(name=SEMESTER_NAME)
        session.add(semester)
        session.flush()
    return semester


def upsert_venues(session) -> None:
    for name, building, capacity in VENUES:
        venue = session.execute(select(Venue).where(Venue.name == name)).scalar_one_or_none()
        if venue is None:
            session.add(Venue(name=name, building=building, capacity=capacity))
        else:
            venue.building = building
            venue.capacity = capacity


def upsert_lecturers(session) -> dict[str, Lecturer]:
    by_email: dict[str, Lecturer] = {}
    for first_name, last_name, email in LECTURERS:
        lecturer = session.execute(select(Lecturer).where(Lecturer.email == email)).scalar_one_or_none()
        if lecturer is None:
            lecturer = Lecturer(first_name=first_name, last_name=last_name, email=email)
            session.add(lecturer)
            session.flush()
        else:
            lecturer.first_name = first_name
            lecturer.last_name = last_name
        by_email[email] = lecturer

        existing_days = set(
            session.execute(
                select(LecturerAvailability.day_of_week).where(LecturerAvailability.lecturer_id == lecturer.id)
            ).scalars()
        )
        for day in WORKING_DAYS:
            if day not in existing_days:
                session.add(
                    LecturerAvailability(
                        lecturer_id=lecturer.id,
                        day_of_week=day,
                        start_time="08:00",
                        end_time="17:00",
                    )
                )
    return by_email


def upsert_courses_and_allocations(session, semester: Semester, lecturers: dict[str, Lecturer]) -> dict[str, Course]:
    by_code: dict[str, Course] = {}
    for priority, (code, name, expected_size, lecturer_email) in enumerate(CURRICULUM):
        course = session.execute(select(Course).where(Course.code == code)).scalar_one_or_none()
        if course is None:
            course = Course(code=code, name=name, expected_size=expected_size)
            session.add(course)
            session.flush()
        else:
            course.name = name
            course.expected_size = expected_size
        by_code[code] = course

        lecturer = lecturers[lecturer_email]
        allocation = session.execute(
            select(CourseAllocation).where(
                CourseAllocation.course_id == course.id,
                CourseAllocation.semester_id == semester.id,
            )
        ).scalar_one_or_none()
        if allocation is None:
            session.add(
                CourseAllocation(
                    course_id=course.id,
                    lecturer_id=lecturer.id,
                    semester_id=semester.id,
                    priority=priority,
                )
            )
        else:
            allocation.lecturer_id = lecturer.id
            allocation.priority = priority
    return by_code


def seed_registrations(session, semester: Semester, courses: dict[str, Course]) -> None:
    registered = {
        (course_id, student_id)
        for course_id, student_id in session.execute(
            select(StudentCourseRegistration.course_id, StudentCourseRegistration.student_id).where(
                StudentCourseRegistration.semester_id == semester.id
            )
        ).all()
    }
    for cohort_index, codes in enumerate(SHARED_COHORTS, start=1):
        for student_index in range(1, STUDENTS_PER_COURSE + 1):
            student_id = f"STU-{cohort_index:02d}-{student_index:04d}"
            for code in codes:
                course_id = courses[code].id
                if (course_id, student_id) in registered:
                    continue
                session.add(
                    StudentCourseRegistration(
                        student_id=student_id,
                        course_id=course_id,
                        semester_id=semester.id,
                    )
                )
                registered.add((course_id, student_id))


def seed_demo_data(session) -> Semester:
    semester = upsert_semester(session)
    upsert_venues(session)
    lecturers = upsert_lecturers(session)
    courses = upsert_courses_and_allocations(session, semester, lecturers)
    seed_registrations(session, semester, courses)
    session.commit()
    return semester


def main() -> None:
    ensure_runtime_schema()
    with SessionLocal() as session:
        semester = seed_demo_data(session)
        semester_id = semester.id
        venue_count = session.execute(select(func.count(Venue.id))).scalar_one()
        course_count = session.execute(select(func.count(Course.id))).scalar_one()
        registration_count = session.execute(
            select(func.count(StudentCourseRegistration.id)).where(
                StudentCourseRegistration.semester_id == semester_id
            )
        ).scalar_one()

    print("Demo data seeded successfully.")
    print("")
    print(f"Semester: {SEMESTER_NAME} ({semester_id})")
    print(f"Venues: {venue_count}")
    print(f"Courses: {course_count}")
    print(f"Active registrations: {registration_count}")
    print("")
    print("Generate a draft timetable with:")
    print(f"  POST /api/timetable/generate {{\"semester_id\": \"{semester_id}\", ...}}")


if __name__ == "__main__":
    main()
