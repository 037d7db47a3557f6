"""Student progress tracking module.

Provides:
- Course enrollment (self-enroll and admin assignment)
- Lesson completion
- Course progress recalculation and reports
"""

from .models import PROGRESS_TABLES_CQL, Enrollment, LessonProgress


__all__ = [
    "PROGRESS_TABLES_CQL",
    "Enrollment",
    "LessonProgress",
]
