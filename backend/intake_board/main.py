"""FastAPI application entrypoint and router wiring for the intake board API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import APIRouter, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi_pagination import add_pagination

from intake_board.api.applications import router as applications_router
from intake_board.api.comments import router as comments_router
from intake_board.api.notifications import router as notifications_router
from intake_board.api.statistics import router as statistics_router
from intake_board.api.users import router as users_router
from intake_board.api.votes import router as votes_router
from intake_board.core.config import settings
from intake_board.core.error_handling import REQUEST_ID_HEADER, install_error_handling
from intake_board.core.logging import configure_logging, get_logger
from intake_board.db.session import init_db
from intake_board.schemas.errors import WorkflowErrorResponse
from intake_board.schemas.health import HealthStatusResponse

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

configure_logging()
logger = get_logger(__name__)
OPENAPI_TAGS = [
    {
        "name": "health",
        "description": "Service liveness/readiness probes used by infrastructure checks.",
    },
    {
        "name": "applications",
        "description": (
            "Application drafting, submission, review transitions, decisions, and "
            "program tracking."
        ),
    },
    {
        "name": "votes",
        "description": "Board member ballots and the derived voting summary.",
    },
    {
        "name": "comments",
        "description": "Reviewer discussion, information requests, and applicant replies.",
    },
    {
        "name": "notifications",
        "description": "Per-user in-app notification inbox.",
    },
    {
        "name": "statistics",
        "description": "Aggregate intake and reviewer participation figures.",
    },
    {
        "name": "users",
        "description": "User directory and the active reviewer roster.",
    },
]
_HEALTH_RESPONSES = {
    status.HTTP_200_OK: {
        "description": "Service is alive.",
        "content": {"application/json": {"example": {"ok": True}}},
    }
}
_WORKFLOW_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status_code: {"model": WorkflowErrorResponse, "description": description}
    for status_code, description in (
        (status.HTTP_403_FORBIDDEN, "Caller may not perform this operation."),
        (status.HTTP_404_NOT_FOUND, "Application or related record not found."),
        (status.HTTP_409_CONFLICT, "Not allowed in the current application status."),
    )
}


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Initialize application resources before serving requests."""
    logger.info(
        "app.lifecycle.starting environment=%s db_auto_migrate=%s",
        settings.environment,
        settings.db_auto_migrate,
    )
    await init_db()
    logger.info("app.lifecycle.started")
    try:
        yield
    finally:
        logger.info("app.lifecycle.stopped")


app = FastAPI(
    title="Intake Board API",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=OPENAPI_TAGS,
)

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    logger.info("app.cors.enabled origins_count=%s", len(origins))
else:
    logger.info("app.cors.disabled")

install_error_handling(app)


@app.get(
    "/health",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Health Check",
    responses=_HEALTH_RESPONSES,
)
def health() -> HealthStatusResponse:
    """Lightweight liveness probe endpoint."""
    return HealthStatusResponse(ok=True)


@app.get(
    "/healthz",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Health Alias Check",
    responses=_HEALTH_RESPONSES,
)
def healthz() -> HealthStatusResponse:
    return HealthStatusResponse(ok=True)


@app.get(
    "/readyz",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Readiness Check",
    responses=_HEALTH_RESPONSES,
)
def readyz() -> HealthStatusResponse:
    """Readiness probe endpoint for service orchestration checks."""
    return HealthStatusResponse(ok=True)


api_v1 = APIRouter(prefix="/api/v1", responses=_WORKFLOW_ERROR_RESPONSES)
api_v1.include_router(applications_router)
api_v1.include_router(votes_router)
api_v1.include_router(comments_router)
api_v1.include_router(notifications_router)
api_v1.include_router(statistics_router)
api_v1.include_router(users_router)
app.include_router(api_v1)
add_pagination(app)

logger.debug("app.routes.registered count=%s", len(app.routes))
