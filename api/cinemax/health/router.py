"""Health check endpoints."""

from fastapi import APIRouter, Request, status
from fastapi.responses import ORJSONResponse

from cinemax.config import get_settings
from cinemax.storage import AsyncDocumentStore


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> ORJSONResponse:
    """Readiness check - ready once the comment service is wired up."""
    settings = get_settings()
    ready = getattr(request.app.state, "comment_service", None) is not None
    return ORJSONResponse(
        status_code=status.HTTP_200_OK
        if ready
        else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "starting",
            "environment": settings.environment,
            "debug": settings.debug,
        },
    )


@router.get("")
async def health(request: Request) -> ORJSONResponse:
    """General health check, including a write check on the data directory."""
    settings = get_settings()
    store: AsyncDocumentStore | None = getattr(
        request.app.state, "document_store", None
    )

    if store is None:
        storage = {"can_write": False, "error": "Storage not initialized"}
    else:
        check = await store.check_write_access()
        storage = {"can_write": check.can_write, "error": check.error}

    healthy = storage["can_write"]
    return ORJSONResponse(
        status_code=status.HTTP_200_OK
        if healthy
        else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "storage": storage,
        },
    )
