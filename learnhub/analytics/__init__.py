"""Learning analytics (read-only roll-ups)."""

from .rollup import (
    ActivityBucket,
    CourseProgressSummary,
    EnrollmentBreakdown,
    Granularity,
    LearningOverview,
)


__all__ = [
    "ActivityBucket",
    "CourseProgressSummary",
    "EnrollmentBreakdown",
    "Granularity",
    "LearningOverview",
]
