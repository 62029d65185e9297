"""
FastAPI application
Contest Judge Service
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contest_judge.application.services.judging_service import JudgingService
from contest_judge.application.workers.judge_worker import JudgeWorkerPool
from contest_judge.core.config import settings
from contest_judge.domain.judging.backends import create_judge_backend
from contest_judge.domain.queue import create_queue_adapter
from contest_judge.infrastructure.cache.redis_client import redis_client
from contest_judge.infrastructure.persistence.session import AsyncSessionLocal, close_db, init_db
from contest_judge.presentation.api.routes import competition_router, health_router

# Logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle
    - startup: database, queue, judge backend, judging service, worker pool
    - shutdown: worker pool, HTTP clients, Redis, database
    """
    logger.info(f"Starting {settings.APP_NAME}...")

    if settings.USE_REDIS_QUEUE:
        try:
            await redis_client.connect()
            logger.info("Redis connected")
        except Exception as e:
            logger.error(f"Redis connection failed: {str(e)}")
            raise

    if settings.DEBUG:
        # Development only; production schemas come from migrations
        await init_db()
        logger.info("Database tables created")

    backend = await create_judge_backend(settings)
    queue = create_queue_adapter(redis_client)
    judging_service = JudgingService(backend, queue, AsyncSessionLocal)

    app.state.judge_backend = backend
    app.state.queue = queue
    app.state.judging_service = judging_service

    worker_pool = None
    if settings.ENABLE_JUDGE_WORKER:
        if settings.RECOVER_UNFINISHED_ON_STARTUP:
            await judging_service.recover_unfinished(settings.JUDGE_STALE_RUNNING_SECONDS)
        worker_pool = JudgeWorkerPool(queue, judging_service)
        await worker_pool.start()
    else:
        logger.info("[JudgeWorker] Disabled (ENABLE_JUDGE_WORKER=false)")
    app.state.worker_pool = worker_pool

    logger.info(f"Server ready: http://{settings.API_HOST}:{settings.API_PORT}")

    yield

    logger.info("Shutting down...")

    if worker_pool:
        await worker_pool.stop()
    await backend.close()
    if settings.USE_REDIS_QUEUE:
        await redis_client.close()
    await close_db()

    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## Contest Judge Service

Judges competition code submissions with Judge0 or a local execution service.

### Features
- Competition registration and per-participant time windows
- Asynchronous judging through a bounded worker pool
- Partial scores and first-solve crediting
- Scoreboard
""",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(health_router)
app.include_router(competition_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "contest_judge.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
