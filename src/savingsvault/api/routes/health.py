"""Health check endpoints."""

from fastapi import APIRouter, Request

from savingsvault.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "savingsvault"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration and wallet info."""
    settings = get_settings()
    session = request.app.state.session
    return {
        "status": "healthy",
        "service": "savingsvault",
        "version": "0.1.0",
        "wallet": session.provider.name if session.provider else None,
        "connected": session.account is not None,
        "config": settings.get_safe_dict(),
    }
