"""
Task Guardian API — FastAPI application factory.

Wires the immutable PlatformConfig into the database, stores, policy and
services, then mounts the routers:

    /api/auth/*   → signup / login (public)
    /api/task/*   → task CRUD + assignment (bearer token)
    /api/user/*   → role management (bearer token, ADMIN)
    /health       → liveness (public)
    /docs         → interactive API documentation ("/" redirects here)

Run:
    taskguardian run
    uvicorn taskguardian.api.app:create_app --factory --port 3000
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from taskguardian.api.dependencies import Services
from taskguardian.api.routes import auth as auth_routes
from taskguardian.api.routes import tasks as task_routes
from taskguardian.api.routes import users as user_routes
from taskguardian.api.schemas import HealthResponse
from taskguardian.db.session import Database
from taskguardian.engine.config import PlatformConfig, load_config
from taskguardian.engine.errors import TaskGuardianError
from taskguardian.engine.logging import (
    LogRetentionManager,
    init_logging,
    log,
    log_api_performance,
    log_api_request,
    log_system_event,
    shutdown_logging,
)
from taskguardian.engine.policy import TaskPolicy
from taskguardian.engine.security import SessionManager
from taskguardian.services.auth import AuthService
from taskguardian.services.tasks import TaskService
from taskguardian.services.users import UserService
from taskguardian.stores.tasks import TaskStore
from taskguardian.stores.users import UserStore

logger = logging.getLogger("taskguardian.api.app")


def build_services(config: PlatformConfig, db: Database) -> Services:
    """Construct stores, policy and services from config."""
    users = UserStore(db, bcrypt_rounds=config.security.bcrypt_rounds)
    tasks = TaskStore(db)
    policy = TaskPolicy(
        restrict_regular_to_assignee=config.security.restrict_regular_to_assignee,
        roles=config.roles,
    )
    sessions = SessionManager(config.security, roles=config.roles)
    return Services(
        sessions=sessions,
        auth=AuthService(users, sessions, roles=config.roles),
        tasks=TaskService(tasks, users, policy),
        users=UserService(users, policy),
    )


def run_log_retention(config: PlatformConfig) -> Dict[str, int]:
    """Delete and compress log files per config.logging retention."""
    manager = LogRetentionManager(
        log_dir=config.logging.directory,
        retention_days=dict(config.logging.retention_days),
        compress_after_days=config.logging.compress_after_days,
    )
    return manager.cleanup()


def _log_request(request: Request, status_code: int, start: float) -> None:
    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    ctx = getattr(request.state, "request_context", None)
    log(log_api_request(
        method=request.method,
        path=request.url.path,
        status_code=status_code,
        duration_ms=duration_ms,
        request_id=ctx.request_id if ctx else None,
        user_id=ctx.user_id if ctx else None,
        client_ip=request.client.host if request.client else None,
    ))
    log(log_api_performance(request.method, request.url.path, duration_ms))


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TaskGuardianError)
    async def handle_taskguardian_error(request: Request, exc: TaskGuardianError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
            return JSONResponse(status_code=exc.status_code, content={"message": "Internal Server Error"})
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": "Invalid request body"})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"message": "Internal Server Error"})


def create_app(
    config: Optional[PlatformConfig] = None,
    db: Optional[Database] = None,
    create_tables: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Platform config; loaded from taskguardian.yaml if None.
        db: Database to use; built from config.database if None.
        create_tables: Create missing tables on construction.
    """
    if config is None:
        config = load_config()
    if db is None:
        db = Database(config.database)
    if create_tables:
        db.create_tables()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.logging.enabled:
            init_logging(
                log_dir=config.logging.directory,
                flush_interval_ms=config.logging.flush_interval_ms,
                flush_batch_size=config.logging.flush_batch_size,
                max_queue_size=config.logging.max_queue_size,
            )
        log(log_system_event("startup", details={"environment": config.environment}))
        if config.logging.enabled:
            run_log_retention(config)
        logger.info(f"{config.name} started ({config.environment})")
        yield
        log(log_system_event("shutdown"))
        shutdown_logging()
        db.dispose()

    app = FastAPI(
        title=config.name,
        version=config.version,
        description="A simple Task Manager API",
        servers=[{"url": config.site_url}],
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.db = db
    app.state.services = build_services(config, db)
    app.state.started_at = datetime.now(timezone.utc)

    _register_exception_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            _log_request(request, status_code, start)

    app.include_router(auth_routes.router)
    app.include_router(task_routes.router)
    app.include_router(user_routes.router)

    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/docs")

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health_check():
        """Public health check — no auth required."""
        uptime = (datetime.now(timezone.utc) - app.state.started_at).total_seconds()
        return HealthResponse(
            status="healthy",
            version=config.version,
            uptime_seconds=round(uptime, 2),
            database=db.health_check(),
        )

    return app
