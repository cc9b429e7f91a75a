from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from projecthub.errors import AccessDeniedError, ConflictError, NotFoundError, ProjectHubError, ValidationFailedError
from projecthub.logging import configure_logging
from projecthub.settings import get_settings

from projecthub.api.routes_auth import router as auth_router
from projecthub.api.routes_calendar import router as calendar_router
from projecthub.api.routes_dashboard import router as dashboard_router
from projecthub.api.routes_debug import router as debug_router
from projecthub.api.routes_health import router as health_router
from projecthub.api.routes_invitations import router as invitations_router
from projecthub.api.routes_meetings import router as meetings_router
from projecthub.api.routes_projects import router as projects_router
from projecthub.api.routes_recordings import router as recordings_router
from projecthub.api.routes_settings import router as settings_router
from projecthub.api.routes_tasks import router as tasks_router

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[ProjectHubError], int] = {
    NotFoundError: 404,
    AccessDeniedError: 403,
    ConflictError: 409,
    ValidationFailedError: 400,
}


def status_for(exc: ProjectHubError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_BY_ERROR:
            return _STATUS_BY_ERROR[cls]
    return 400


async def _domain_error_handler(request: Request, exc: ProjectHubError) -> JSONResponse:
    code = status_for(exc)
    logger.info("Request rejected. path=%s status=%s detail=%s", request.url.path, code, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    # Validate configuration and fail fast if critical errors found
    settings.validate_and_fail_fast()

    app = FastAPI(
        title="ProjectHub Service",
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )
    app.add_exception_handler(ProjectHubError, _domain_error_handler)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(projects_router)
    app.include_router(invitations_router)
    app.include_router(tasks_router)
    app.include_router(meetings_router)
    app.include_router(calendar_router)
    app.include_router(dashboard_router)
    app.include_router(settings_router)
    app.include_router(recordings_router)
    app.include_router(debug_router)
    return app


app = create_app()
