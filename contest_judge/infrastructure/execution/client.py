"""
Local execution service client
Runs every test case of a submission in one batched call.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from contest_judge.core.config import settings
from contest_judge.core.exceptions import ExecutionServiceError


logger = logging.getLogger(__name__)

EXECUTE_TESTS_PATH = "/api/code-execution/execute-tests"


class ExecutionServiceClient:
    """Client for the sandboxed execution service"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.EXECUTION_SERVICE_URL).rstrip('/')
        self.timeout = timeout or settings.EXECUTION_SERVICE_TIMEOUT
        self.client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def execute_tests(
        self,
        code: str,
        language: str,
        test_cases: List[Dict[str, str]],
    ) -> Dict[str, Any]:
        """
        POST /api/code-execution/execute-tests

        Args:
            code: source code
            language: local service language name (python, javascript, cpp, java)
            test_cases: [{"input": "...", "output": "..."}, ...]

        Returns:
            the "data" payload: {passedCount, totalCount, results: [...]}

        Raises:
            ExecutionServiceError: unreachable, HTTP error, or no usable data
        """
        payload = {
            "code": code,
            "language": language,
            "testCases": test_cases,
        }

        try:
            response = await self.client.post(f"{self.base_url}{EXECUTE_TESTS_PATH}", json=payload)
            body = response.json()
        except httpx.TimeoutException as e:
            raise ExecutionServiceError(f"Execution service timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise ExecutionServiceError(f"Execution service unreachable: {e}") from e
        except ValueError as e:
            raise ExecutionServiceError(
                f"Malformed execution service response (HTTP {response.status_code})"
            ) from e

        if not isinstance(body, dict):
            raise ExecutionServiceError(f"Malformed execution service response: {body!r}")

        data = body.get("data")
        if response.status_code >= 400 or not isinstance(data, dict):
            message = body.get("message") or body.get("error") or "Execution service error"
            logger.error(f"[ExecutionService] Request failed - status: {response.status_code}, message: {message}")
            raise ExecutionServiceError(f"HTTP {response.status_code}: {message}")

        if not body.get("success"):
            # Compile failures come back as success=false with every case failed
            logger.info(f"[ExecutionService] success=false with data - passed: {data.get('passedCount')}/{data.get('totalCount')}")

        return data

    async def close(self):
        await self.client.aclose()
