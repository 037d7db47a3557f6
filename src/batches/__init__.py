"""Batches module.

Provides:
- Cohorts of a course led by a trainer, identified by a unique code
- Batch membership with course auto-enrollment
"""

from .models import BATCHES_TABLES_CQL, Batch, BatchEnrollment, BatchEnrollmentStatus


__all__ = [
    "BATCHES_TABLES_CQL",
    "Batch",
    "BatchEnrollment",
    "BatchEnrollmentStatus",
]
