"""Main FastAPI application for the agenda planner."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from agenda.api.routes.plan import router as plan_router
from agenda.api.routes.project import router as project_router
from agenda.core.config import settings
from agenda.core.logging import configure_logging
from agenda.core.middleware import RequestIDMiddleware
from agenda.observability.client import init_opik
from agenda.observability.tracing import trace
from agenda.planning.errors import InvalidArgumentError

configure_logging(log_level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="0.1.0", debug=settings.debug)
app.add_middleware(RequestIDMiddleware)
app.include_router(project_router)
app.include_router(plan_router)


@app.on_event("startup")
async def startup() -> None:
    """Initialize observability and, when asked, the schema."""
    init_opik()
    if settings.db_create_all:
        from agenda.db.session import init_db

        init_db()


@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(request: Request, exc: InvalidArgumentError) -> JSONResponse:
    logger.info("Rejected planning input: %s", exc)
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
