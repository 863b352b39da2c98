"""Health check endpoints."""

from typing import Any, Dict

from fastapi import APIRouter

from recipekeeper.middleware.performance import metrics

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check() -> Dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check() -> Dict[str, Any]:
    """Readiness check; the LLM is optional so it is not checked here."""
    return {"status": "ready", "dependencies": {"recipe_store": "ok"}}


@router.get("/metrics")
async def performance_metrics() -> Dict[str, Any]:
    """Request counts, durations and error rates since startup."""
    return {"status": "ok", **metrics.get_summary()}
