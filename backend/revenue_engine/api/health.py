"""
Health Check Endpoints
"""

from fastapi import APIRouter

from revenue_engine import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint for Docker/Kubernetes"""
    return {
        "status": "healthy",
        "service": "revenue-engine",
        "version": __version__,
    }
