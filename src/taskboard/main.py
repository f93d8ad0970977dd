from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .accounts import AccountService
from .auth import AuthGate
from .errors import TaskboardError, Unauthorized
from .profiles import ProfileService
from .repositories import RecordStore, create_store
from .routers import auth as auth_router
from .routers import profile as profile_router
from .routers import tasks as tasks_router
from .settings import Settings, get_settings
from .tasks import TaskService
from .utils import failure_envelope, format_errors

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Account registration, login and logout."},
    {"name": "profile", "description": "Read and update the authenticated user's profile."},
    {
        "name": "tasks",
        "description": "CRUD operations for the authenticated user's tasks with filtering and search.",
    },
]

_HTTP_ERROR_KINDS = {404: "NotFound", 405: "MethodNotAllowed"}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, store: Optional[RecordStore] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings; read from the environment when omitted.
        store: Record store to use; built from settings when omitted. The store is
            opened when the application starts and closed when it shuts down.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    store = store or create_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        store.open()
        logger.info("Taskboard started with %s backend", settings.persistence_backend)
        try:
            yield
        finally:
            store.close()
            logger.info("Taskboard stopped")

    app = FastAPI(
        title="Taskboard Backend",
        description="Multi-user task tracking API with accounts, profiles and per-user tasks.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )

    gate = AuthGate(store, ttl_hours=settings.session_ttl_hours)
    app.state.settings = settings
    app.state.store = store
    app.state.auth_gate = gate
    app.state.account_service = AccountService(store, gate, hash_iterations=settings.password_hash_iterations)
    app.state.profile_service = ProfileService(store)
    app.state.task_service = TaskService(store)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TaskboardError)
    async def taskboard_error_handler(request: Request, exc: TaskboardError) -> JSONResponse:
        """
        Convert operation errors into the standard failure envelope.

        Response format:
            {"success": false, "error": "<kind>", "message": "<text>"}
        """
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
        return JSONResponse(status_code=exc.status_code, content=failure_envelope(exc), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "success": false,
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": [{"loc": [...], "msg": "...", "type": "..."}]
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": format_errors(exc.errors()),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """
        Wrap framework HTTP errors (unknown route, method not allowed) in the failure envelope.
        """
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": _HTTP_ERROR_KINDS.get(exc.status_code, "HTTPError"),
                "message": str(exc.detail),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "InternalServerError", "message": "Internal server error"},
        )

    # PUBLIC_INTERFACE
    @app.get("/api/health", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {
            "success": True,
            "status": "OK",
            "message": "Server is running",
            "backend": settings.persistence_backend,
        }

    app.include_router(auth_router.router)
    app.include_router(profile_router.router)
    app.include_router(tasks_router.router)
    return app


app = create_app()
