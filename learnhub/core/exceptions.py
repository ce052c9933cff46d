"""Domain errors shared by the catalog, progress and enrollment modules.

Each error carries a machine readable ``code`` that the HTTP layer maps to a
status code. ``ConflictError`` never leaves the services: it signals a lost
create race and is recovered by reading the existing row.
"""


class LearnHubError(Exception):
    """Base domain error."""

    def __init__(self, message: str, code: str = "learnhub_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(LearnHubError):
    """Referenced record does not exist."""

    def __init__(self, message: str = "Resource not found", code: str = "not_found"):
        super().__init__(message, code)


class LessonNotFoundError(NotFoundError):
    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class CourseNotFoundError(NotFoundError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class EnrollmentNotFoundError(NotFoundError):
    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class NotEnrolledError(NotFoundError):
    """User has no usable enrollment in the lesson's course."""

    def __init__(self, message: str = "User is not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class InvalidOperationError(LearnHubError):
    """Operation does not apply to the target (e.g. grading a video lesson)."""

    def __init__(self, message: str = "Invalid operation"):
        super().__init__(message, "invalid_operation")


class ConflictError(LearnHubError):
    """A uniqueness constraint rejected a create."""

    def __init__(self, message: str = "Record already exists"):
        super().__init__(message, "conflict")


class ValidationError(LearnHubError):
    """Malformed payload."""

    def __init__(self, message: str = "Invalid payload"):
        super().__init__(message, "validation_error")


# HTTP status per error code; codes not listed map to 500
ERROR_STATUS_CODES: dict[str, int] = {
    "not_found": 404,
    "lesson_not_found": 404,
    "course_not_found": 404,
    "enrollment_not_found": 404,
    "not_enrolled": 404,
    "invalid_operation": 409,
    "conflict": 409,
    "validation_error": 422,
}


def status_code_for(error: LearnHubError) -> int:
    return ERROR_STATUS_CODES.get(error.code, 500)
