"""Course enrollment module.

Provides:
- Enrollment creation and lookup
- Lesson completion roll-up and course completion
- Certificates and explicit status changes
"""

from .models import (
    ENROLLMENT_TABLES_CQL,
    CompletedLesson,
    CourseEnrollment,
    EnrollmentStatus,
)


__all__ = [
    "ENROLLMENT_TABLES_CQL",
    "CompletedLesson",
    "CourseEnrollment",
    "EnrollmentStatus",
]
