from classgrid.models.activity_log import ActivityLog  # noqa: F401
from classgrid.models.course import Course, CourseAllocation  # noqa: F401
from classgrid.models.lecturer import Lecturer, LecturerAvailability  # noqa: F401
from classgrid.models.registration import StudentCourseRegistration  # noqa: F401
from classgrid.models.semester import Semester  # noqa: F401
from classgrid.models.timetable_session import SessionStatus, TimetableSession  # noqa: F401
from classgrid.models.timetable_version import TimetableVersion, TimetableVersionSession  # noqa: F401
from classgrid.models.venue import Venue  # noqa: F401
