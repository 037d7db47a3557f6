"""Exams module.

Provides:
- Free-text exams attached to courses
- Attempts submitted by students
- Admin grading with written feedback
"""

from .models import EXAMS_TABLES_CQL, Exam, ExamAttempt, Question


__all__ = [
    "EXAMS_TABLES_CQL",
    "Exam",
    "ExamAttempt",
    "Question",
]
