"""Dashboard summaries, one per role kind."""

from uuid import UUID

from src.auth.permissions import UserRole
from src.auth.service import AuthService
from src.batches.service import BatchService
from src.courses.service import CourseService
from src.exams.service import ExamService
from src.progress.service import ProgressService
from src.utils.percent import round_half_up

from .schemas import AdminDashboardResponse, StudentDashboardResponse


async def admin_summary(
    tenant_id: UUID,
    auth_service: AuthService,
    course_service: CourseService,
    exam_service: ExamService,
    batch_service: BatchService,
) -> AdminDashboardResponse:
    students = await auth_service.list_tenant_users(tenant_id, role=UserRole.STUDENT)
    courses = await course_service.list_tenant_courses(tenant_id)
    exams = await exam_service.list_tenant_exams(tenant_id)
    batches = await batch_service.list_tenant_batches(tenant_id)
    attempts = await exam_service.list_tenant_attempts(tenant_id)

    return AdminDashboardResponse(
        students=len(students),
        courses=len(courses),
        exams=len(exams),
        batches=len(batches),
        pending_reviews=sum(
            1 for a in attempts if a.is_completed and not a.is_reviewed
        ),
    )


async def student_summary(
    user_id: UUID,
    progress_service: ProgressService,
    exam_service: ExamService,
) -> StudentDashboardResponse:
    """Summary of a student's enrollments and exam attempts.

    Average progress is the mean over enrolled courses, 0 with no enrollments.
    An attempt is pending once submitted and until an admin reviews it.
    """
    enrollments = await progress_service.list_user_enrollments(user_id)
    attempts = await exam_service.list_user_attempts(user_id)

    average = 0
    if enrollments:
        average = round_half_up(sum(e.progress for e in enrollments) / len(enrollments))

    submitted = [a for a in attempts if a.is_completed]
    reviewed = sum(1 for a in submitted if a.is_reviewed)

    return StudentDashboardResponse(
        enrolled_courses=len(enrollments),
        average_progress=average,
        completed_courses=sum(1 for e in enrollments if e.completed_at is not None),
        pending_attempts=len(submitted) - reviewed,
        reviewed_attempts=reviewed,
    )
