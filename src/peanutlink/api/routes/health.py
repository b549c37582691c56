"""Health check endpoints."""

from fastapi import APIRouter, Request

from peanutlink import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "Server is running."}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with redacted configuration."""
    settings = request.app.state.settings
    workflow = getattr(request.app.state, "workflow", None)

    return {
        "status": "Server is running.",
        "service": "peanutlink",
        "version": __version__,
        "wallet_address": workflow.wallet.address if workflow else None,
        "config": settings.get_safe_dict(),
    }
