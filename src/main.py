"""LearnHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.activity.router import router as activity_router
from src.activity.service import ActivityService
from src.activity.writer import ActivityWriter
from src.auth.router import router as auth_router
from src.auth.router import users_router
from src.auth.service import AuthService
from src.batches.router import course_batches_router
from src.batches.router import enrollments_router as batch_enrollments_router
from src.batches.router import router as batches_router
from src.batches.service import BatchService
from src.config import get_settings
from src.core.cache import ResourceCache
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.courses.router import router_courses, router_lessons, router_modules
from src.courses.service import CourseService, LessonService, ModuleService
from src.exams.router import (
    router_attempts,
    router_exams,
    router_grading,
    router_questions,
)
from src.exams.service import ExamService
from src.health.router import router as health_router
from src.navigation.router import router as navigation_router
from src.progress.router import enrollments_router, lesson_progress_router
from src.progress.router import router as progress_router
from src.progress.service import ProgressService
from src.quiz.router import router as quiz_router
from src.tenants.router import router as tenants_router
from src.tenants.service import TenantService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    tenant_service: TenantService | None = None
    auth_service: AuthService | None = None
    course_service: CourseService | None = None
    module_service: ModuleService | None = None
    lesson_service: LessonService | None = None
    progress_service: ProgressService | None = None
    exam_service: ExamService | None = None
    batch_service: BatchService | None = None
    activity_service: ActivityService | None = None
    activity_writer: ActivityWriter | None = None


app_state = AppState()


def _require(service: Any, name: str) -> Any:
    if service is None:
        msg = f"{name} not initialized"
        raise RuntimeError(msg)
    return service


def get_tenant_service() -> TenantService:
    return _require(app_state.tenant_service, "TenantService")


def get_auth_service() -> AuthService:
    return _require(app_state.auth_service, "AuthService")


def get_course_service() -> CourseService:
    return _require(app_state.course_service, "CourseService")


def get_module_service() -> ModuleService:
    return _require(app_state.module_service, "ModuleService")


def get_lesson_service() -> LessonService:
    return _require(app_state.lesson_service, "LessonService")


def get_progress_service() -> ProgressService:
    return _require(app_state.progress_service, "ProgressService")


def get_exam_service() -> ExamService:
    return _require(app_state.exam_service, "ExamService")


def get_batch_service() -> BatchService:
    return _require(app_state.batch_service, "BatchService")


def get_activity_service() -> ActivityService:
    return _require(app_state.activity_service, "ActivityService")


def get_activity_writer() -> ActivityWriter:
    """Get the activity writer.

    Available even without a database: entries are then counted and dropped.
    """
    if app_state.activity_writer is None:
        app_state.activity_writer = ActivityWriter()
    return app_state.activity_writer


def init_services(session: Any, redis_client: Any = None) -> None:
    """Build every domain service on top of a Cassandra session."""
    keyspace = settings.cassandra_keyspace

    app_state.cassandra_session = session
    app_state.tenant_service = TenantService(session=session, keyspace=keyspace)
    app_state.auth_service = AuthService(
        session=session,
        keyspace=keyspace,
        tenant_service=app_state.tenant_service,
    )
    app_state.course_service = CourseService(
        session=session,
        keyspace=keyspace,
        cache=ResourceCache(redis_client, ttl_seconds=settings.cache_ttl_seconds),
    )
    app_state.module_service = ModuleService(
        session=session,
        keyspace=keyspace,
        course_service=app_state.course_service,
    )
    app_state.lesson_service = LessonService(
        session=session,
        keyspace=keyspace,
        course_service=app_state.course_service,
    )
    app_state.progress_service = ProgressService(
        session=session,
        keyspace=keyspace,
        module_service=app_state.module_service,
        lesson_service=app_state.lesson_service,
    )
    app_state.exam_service = ExamService(session=session, keyspace=keyspace)
    app_state.batch_service = BatchService(
        session=session,
        keyspace=keyspace,
        progress_service=app_state.progress_service,
    )
    app_state.activity_service = ActivityService(session=session, keyspace=keyspace)
    app_state.activity_writer = ActivityWriter(
        service=app_state.activity_service,
        queue_size=settings.activity_queue_size,
        batch_size=settings.activity_batch_size,
        flush_interval=settings.activity_flush_interval,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis is optional: without it listings are not cached and logout
    # cannot revoke tokens before they expire.
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - caching and session revocation disabled",
        )

    try:
        session = await init_async_cassandra()
        init_services(session, redis_client)
        logger.info("services_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    writer = get_activity_writer()
    await writer.start()

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await writer.stop()
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    # SECURITY: Always set debug=False to prevent Starlette's ServerErrorMiddleware
    # from exposing stack traces in responses. Our custom exception handlers will
    # log full details internally while returning safe error messages to users.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant learning management API",
        debug=False,  # Never expose stack traces in responses
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    # Global exception handlers (security: never expose stack traces)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors, one entry per offending field."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": status.HTTP_422_UNPROCESSABLE_ENTITY,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        SECURITY: Never expose stack traces or internal error details to users.
        All details are logged internally for debugging.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(tenants_router)
    app.include_router(router_courses)
    app.include_router(course_batches_router)
    app.include_router(router_modules)
    app.include_router(quiz_router)
    app.include_router(router_lessons)
    app.include_router(enrollments_router)
    app.include_router(lesson_progress_router)
    app.include_router(progress_router)
    app.include_router(router_exams)
    app.include_router(router_questions)
    app.include_router(router_attempts)
    app.include_router(router_grading)
    app.include_router(batches_router)
    app.include_router(batch_enrollments_router)
    app.include_router(activity_router)
    app.include_router(navigation_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LearnHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


# Configure router dependencies before creating app
from src.activity.dependencies import (  # noqa: E402
    set_activity_service_getter,
    set_activity_writer_getter,
)
from src.auth.router import set_auth_service_getter  # noqa: E402
from src.batches.dependencies import set_batch_service_getter  # noqa: E402
from src.courses.dependencies import (  # noqa: E402
    set_course_service_getter,
    set_lesson_service_getter,
    set_module_service_getter,
)
from src.exams.dependencies import set_exam_service_getter  # noqa: E402
from src.progress.dependencies import set_progress_service_getter  # noqa: E402
from src.tenants.dependencies import set_tenant_service_getter  # noqa: E402


set_tenant_service_getter(get_tenant_service)
set_auth_service_getter(get_auth_service)
set_course_service_getter(get_course_service)
set_module_service_getter(get_module_service)
set_lesson_service_getter(get_lesson_service)
set_progress_service_getter(get_progress_service)
set_exam_service_getter(get_exam_service)
set_batch_service_getter(get_batch_service)
set_activity_service_getter(get_activity_service)
set_activity_writer_getter(get_activity_writer)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.api_reload and settings.is_development,
    )
