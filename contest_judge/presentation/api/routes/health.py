"""
Health check
"""
from fastapi import APIRouter, Request

from contest_judge.core.config import settings


router = APIRouter(tags=["Health"])


@router.get("/health", summary="Liveness check")
async def health(request: Request) -> dict:
    backend = getattr(request.app.state, "judge_backend", None)
    queue = getattr(request.app.state, "queue", None)
    return {
        "status": "ok",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "judge_backend": backend.name if backend else None,
        "queue_size": await queue.size() if queue else None,
    }
