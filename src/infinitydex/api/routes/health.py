"""Health check endpoints."""

from fastapi import APIRouter, Request

from infinitydex import __version__
from infinitydex.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "infinitydex"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration info."""
    settings = get_settings()
    service = request.app.state.swap_service
    return {
        "status": "healthy",
        "service": "infinitydex",
        "version": __version__,
        "bridge": service.bridge.name,
        "active_swaps": len(service.list_request_ids()),
        "config": settings.get_safe_dict(),
    }
