from sis.core.models.school import School
from sis.core.models.user import User
from sis.core.models.academic_year import AcademicYear
from sis.core.models.class_group import ClassGroup
from sis.core.models.subject import Subject
from sis.core.models.enrollment import Enrollment
from sis.core.models.schedule import Schedule
from sis.core.models.grade import Grade
from sis.core.models.assignment import Assignment
from sis.core.models.submission import Submission
from sis.core.models.attendance import Attendance
from sis.core.models.announcement import Announcement
from sis.core.models.parent_student import ParentStudent
from sis.core.models.teacher_subject import TeacherSubject

__all__ = [
    "AcademicYear",
    "Announcement",
    "Assignment",
    "Attendance",
    "ClassGroup",
    "Enrollment",
    "Grade",
    "ParentStudent",
    "Schedule",
    "School",
    "Subject",
    "Submission",
    "TeacherSubject",
    "User",
]
