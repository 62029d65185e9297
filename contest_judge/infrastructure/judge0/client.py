"""
Judge0 API client
Synchronous ("wait") submission of one test case and result lookup
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from contest_judge.core.config import settings
from contest_judge.core.exceptions import Judge0Error


logger = logging.getLogger(__name__)

# 1: In Queue, 2: Processing
IN_PROGRESS_STATUS_IDS = (1, 2)


class Judge0Client:
    """Judge0 API client"""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        use_rapidapi: Optional[bool] = None,
        rapidapi_host: Optional[str] = None,
        timeout: Optional[float] = None,
        poll_interval: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_url: Judge0 API URL (default: settings.JUDGE0_API_URL)
            api_key: Judge0 API key (default: settings.JUDGE0_API_KEY)
            use_rapidapi: send RapidAPI headers (default: settings.JUDGE0_USE_RAPIDAPI)
            rapidapi_host: RapidAPI host (default: settings.JUDGE0_RAPIDAPI_HOST)
            timeout: per request timeout in seconds (default: settings.JUDGE0_REQUEST_TIMEOUT)
            poll_interval: seconds between result polls when wait=true is ignored
            transport: httpx transport override (tests)
        """
        self.api_url = (api_url or settings.JUDGE0_API_URL or "").rstrip('/')
        self.api_key = api_key or settings.JUDGE0_API_KEY
        self.use_rapidapi = use_rapidapi if use_rapidapi is not None else settings.JUDGE0_USE_RAPIDAPI
        self.rapidapi_host = rapidapi_host or settings.JUDGE0_RAPIDAPI_HOST
        self.timeout = timeout or settings.JUDGE0_REQUEST_TIMEOUT
        self.poll_interval = poll_interval
        self.client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    def _get_headers(self) -> Dict[str, str]:
        """Request headers"""
        headers = {
            "Content-Type": "application/json",
        }

        if self.use_rapidapi:
            if self.api_key:
                headers["x-rapidapi-key"] = self.api_key
            headers["x-rapidapi-host"] = self.rapidapi_host
        else:
            if self.api_key:
                headers["X-Auth-Token"] = self.api_key

        return headers

    async def about(self) -> Dict[str, Any]:
        """GET /about, used as a reachability probe"""
        try:
            response = await self.client.get(
                f"{self.api_url}/about",
                headers=self._get_headers()
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise Judge0Error(f"Judge0 not reachable at {self.api_url}: {e}") from e

    async def submit_and_wait(
        self,
        code: str,
        language_id: int,
        stdin: str = "",
        expected_output: Optional[str] = None,
        cpu_time_limit: float = 2,
        memory_limit: int = 128,  # MB
    ) -> Dict[str, Any]:
        """
        Submit one run with wait=true and return the finished result

        Args:
            code: source code
            language_id: Judge0 language id
            stdin: test case input
            expected_output: expected stdout, compared by Judge0
            cpu_time_limit: CPU time limit (seconds)
            memory_limit: memory limit (MB)

        Returns:
            Judge0 result dict ({status: {id, description}, time, memory, stdout, stderr, compile_output})

        Raises:
            Judge0Error: network error, HTTP error or malformed response
        """
        payload = {
            "source_code": code,
            "language_id": language_id,
            "stdin": stdin,
            "cpu_time_limit": cpu_time_limit,
            "memory_limit": memory_limit * 1024,  # MB -> KB
        }

        if expected_output is not None:
            payload["expected_output"] = expected_output

        params = {
            "base64_encoded": "false",
            "wait": "true",
        }

        try:
            response = await self.client.post(
                f"{self.api_url}/submissions",
                json=payload,
                params=params,
                headers=self._get_headers()
            )
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[Judge0] HTTP error - status: {e.response.status_code}, response: {e.response.text}")
            raise Judge0Error(f"HTTP {e.response.status_code}: {e.response.text}") from e
        except httpx.TimeoutException as e:
            logger.error(f"[Judge0] Request timed out after {self.timeout}s")
            raise Judge0Error("No response from Judge0 service. The service may be down.") from e
        except httpx.HTTPError as e:
            logger.error(f"[Judge0] Request failed: {str(e)}")
            raise Judge0Error(f"Judge0 request failed: {e}") from e
        except ValueError as e:
            raise Judge0Error(f"Malformed Judge0 response: {e}") from e

        if not isinstance(result, dict):
            raise Judge0Error(f"Malformed Judge0 response: {result!r}")

        if "status" not in result:
            # Server has wait mode disabled and answered with a token only
            token = result.get("token")
            if not token:
                raise Judge0Error(f"Judge0 response has neither status nor token: {result}")
            logger.info(f"[Judge0] wait=true ignored by server, polling token: {token}")
            return await self.wait_for_result(token)

        return result

    async def get_result(self, token: str) -> Dict[str, Any]:
        """
        Fetch a submission result

        Args:
            token: submission token

        Returns:
            Judge0 result dict
        """
        try:
            response = await self.client.get(
                f"{self.api_url}/submissions/{token}",
                params={"base64_encoded": "false"},
                headers=self._get_headers()
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[Judge0] Result lookup HTTP error - token: {token}, status: {e.response.status_code}")
            raise Judge0Error(f"HTTP {e.response.status_code}: {e.response.text}") from e
        except httpx.HTTPError as e:
            logger.error(f"[Judge0] Result lookup failed - token: {token}, error: {str(e)}")
            raise Judge0Error(f"Judge0 request failed: {e}") from e
        except ValueError as e:
            raise Judge0Error(f"Malformed Judge0 response: {e}") from e

    async def wait_for_result(
        self,
        token: str,
        max_wait: Optional[float] = None,
        poll_interval: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Poll until the submission leaves the queue

        Args:
            token: submission token
            max_wait: maximum wait in seconds (default: request timeout)
            poll_interval: seconds between polls (default: self.poll_interval)

        Raises:
            Judge0Error: still queued after max_wait
        """
        max_wait = max_wait or self.timeout
        poll_interval = self.poll_interval if poll_interval is None else poll_interval
        start_time = datetime.now().timestamp()

        while True:
            result = await self.get_result(token)
            status_id = (result.get("status") or {}).get("id")

            if status_id is not None and status_id not in IN_PROGRESS_STATUS_IDS:
                return result

            elapsed = datetime.now().timestamp() - start_time
            if elapsed >= max_wait:
                logger.warning(f"[Judge0] Result wait timed out - token: {token}, elapsed: {elapsed:.1f}s")
                raise Judge0Error(f"Judge0 did not finish within {max_wait}s (token: {token})")

            await asyncio.sleep(poll_interval)

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
