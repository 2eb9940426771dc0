from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    PARENT = "PARENT"


class DayOfWeek(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def weekday(self) -> int:
        """0=Monday .. 6=Sunday, same as datetime.weekday()."""
        return list(DayOfWeek).index(self)


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    GRADUATED = "graduated"
    TRANSFERRED = "transferred"
    SUSPENDED = "suspended"


class AssessmentType(str, Enum):
    DAILY = "daily"
    QUIZ = "quiz"
    MIDTERM = "midterm"
    FINAL = "final"
    PROJECT = "project"
    ASSIGNMENT = "assignment"


class AssignmentType(str, Enum):
    HOMEWORK = "homework"
    PROJECT = "project"
    QUIZ = "quiz"
    EXAM = "exam"
    PRESENTATION = "presentation"
    ESSAY = "essay"
    ASSIGNMENT = "assignment"


class SubmissionStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    GRADED = "graded"
    RETURNED = "returned"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSE = "excuse"
    SICK = "sick"


class AttendanceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class AnnouncementPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class AudienceKind(str, Enum):
    ALL = "all"
    SCHOOL_LEVEL = "school_level"
    CLASS = "class"
    SPECIFIC = "specific"


class GuardianType(str, Enum):
    BIOLOGICAL = "biological"
    ADOPTIVE = "adoptive"
    FOSTER = "foster"
    OTHER = "other"


class TeachingRole(str, Enum):
    REGULAR = "regular"
    ASSISTANT = "assistant"
    SUBSTITUTE = "substitute"
