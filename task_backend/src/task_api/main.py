import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .errors import PersistenceError, TaskApiError
from .logging_config import setup_logging
from .repositories import get_repository
from .routers import tasks as tasks_router
from .seed import seed_sample_tasks
from .services import TaskService
from .settings import get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service information and status endpoints."},
    {
        "name": "tasks",
        "description": "CRUD operations for tasks with filtering, sorting, pagination and statistics.",
    },
]

_settings = get_settings()
setup_logging(_settings.log_level, _settings.log_format)

app = FastAPI(
    title="Task API",
    description="Task management API with CRUD operations, filtering, pagination and statistics.",
    version=__version__,
    openapi_tags=openapi_tags,
)

# Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TaskApiError)
async def task_error_handler(request: Request, exc: TaskApiError) -> JSONResponse:
    """
    Map task core errors to their HTTP status and JSON envelope.
    """
    if isinstance(exc, PersistenceError):
        logger.error(
            "%s: %s", exc.code, exc.message,
            extra={"error_code": exc.code, "path": request.url.path},
        )
    else:
        logger.warning(
            "%s: %s", exc.code, exc.message,
            extra={"error_code": exc.code, "path": request.url.path},
        )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


# Global exception handlers for consistent JSON on validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors raised by
    FastAPI itself (e.g. a body that is not a JSON object).

    Response format:
        {
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": [{"field": ..., "message": ...}, ...]
        }
    """
    logger.warning("request validation failed on %s", request.url.path, extra={"path": request.url.path})
    return JSONResponse(
        status_code=400,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": [
                {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg", "")}
                for e in exc.errors()
            ],
        },
    )


# PUBLIC_INTERFACE
@app.get("/", summary="Service Info", tags=["health"])
def service_info():
    """
    Service information endpoint.

    Returns:
        A JSON object describing the running service and its endpoints.
    """
    return {
        "message": "Task API is running",
        "version": __version__,
        "backend": _settings.persistence_backend,
        "endpoints": {"docs": "/docs", "tasks": "/tasks", "stats": "/tasks/stats"},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# Include routers
app.include_router(tasks_router.router)

if _settings.seed_sample_data:
    seed_sample_tasks(TaskService(get_repository()))
