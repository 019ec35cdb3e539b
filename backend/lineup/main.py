"""Main FastAPI application for the Lineup backend."""
from fastapi import FastAPI, Request

from lineup.api.routes.admin import router as admin_router
from lineup.api.routes.auth import router as auth_router
from lineup.api.routes.profile import router as profile_router
from lineup.api.routes.task import router as task_router
from lineup.api.routes.youtube import router as youtube_router
from lineup.core.config import settings
from lineup.core.errors import install_error_handling
from lineup.core.logging import configure_logging
from lineup.core.middleware import RequestIDMiddleware
from lineup.observability.client import flush_opik, init_opik
from lineup.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
install_error_handling(app)
app.include_router(auth_router)
app.include_router(profile_router)
app.include_router(task_router)
app.include_router(admin_router)
app.include_router(youtube_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.on_event("shutdown")
async def shutdown_observability() -> None:
    flush_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
