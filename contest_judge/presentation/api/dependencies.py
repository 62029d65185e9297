"""
FastAPI dependencies
Process-wide objects live on app.state and are created in the lifespan.
"""
from fastapi import Request

from contest_judge.application.services.judging_service import JudgingService


def get_judging_service(request: Request) -> JudgingService:
    return request.app.state.judging_service
