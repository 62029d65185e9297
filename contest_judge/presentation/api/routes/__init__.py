from contest_judge.presentation.api.routes.competition import router as competition_router
from contest_judge.presentation.api.routes.health import router as health_router

__all__ = ["competition_router", "health_router"]
