"""
Judge backend factory
Picks the backend once at startup from the environment.
"""
import logging
from typing import Optional

from contest_judge.core.config import Settings, settings as default_settings
from contest_judge.core.exceptions import Judge0Error
from contest_judge.domain.judging.backends.base import JudgeBackend
from contest_judge.domain.judging.backends.judge0 import Judge0Backend
from contest_judge.domain.judging.backends.local import LocalExecutionBackend
from contest_judge.domain.judging.backends.passthrough import PassthroughBackend, UnavailableBackend
from contest_judge.infrastructure.execution.client import ExecutionServiceClient
from contest_judge.infrastructure.judge0.client import Judge0Client

logger = logging.getLogger(__name__)


async def create_judge_backend(settings: Optional[Settings] = None) -> JudgeBackend:
    """
    Choose the judge backend

    Order:
    - JUDGE0_API_URL set (and GET /about answers when JUDGE0_PROBE_ON_STARTUP): Judge0
    - USE_EXECUTION_SERVICE=True: local execution service
    - ALLOW_PASSTHROUGH_JUDGE=True: pass-through (development only)
    - otherwise: unavailable, every submission ends as runtime_error

    Returns:
        JudgeBackend instance
    """
    settings = settings or default_settings

    if settings.JUDGE0_API_URL:
        client = Judge0Client(
            api_url=settings.JUDGE0_API_URL,
            api_key=settings.JUDGE0_API_KEY,
            use_rapidapi=settings.JUDGE0_USE_RAPIDAPI,
            rapidapi_host=settings.JUDGE0_RAPIDAPI_HOST,
            timeout=settings.JUDGE0_REQUEST_TIMEOUT,
        )
        if not settings.JUDGE0_PROBE_ON_STARTUP:
            logger.info(f"[JudgeBackend] Using Judge0 at {settings.JUDGE0_API_URL} (probe skipped)")
            return Judge0Backend(client)

        try:
            about = await client.about()
            logger.info(
                f"[JudgeBackend] Using Judge0 at {settings.JUDGE0_API_URL} "
                f"(version: {about.get('version', 'unknown')})"
            )
            return Judge0Backend(client)
        except Judge0Error as e:
            logger.warning(f"[JudgeBackend] Judge0 probe failed, trying fallbacks: {str(e)}")
            await client.close()

    if settings.USE_EXECUTION_SERVICE:
        logger.info(f"[JudgeBackend] Using local execution service at {settings.EXECUTION_SERVICE_URL}")
        return LocalExecutionBackend(
            ExecutionServiceClient(
                base_url=settings.EXECUTION_SERVICE_URL,
                timeout=settings.EXECUTION_SERVICE_TIMEOUT,
            )
        )

    if settings.ALLOW_PASSTHROUGH_JUDGE:
        logger.warning("[JudgeBackend] Using pass-through judge: submissions are accepted without running")
        return PassthroughBackend()

    logger.error("[JudgeBackend] No judge backend configured: submissions will fail with runtime_error")
    return UnavailableBackend()
