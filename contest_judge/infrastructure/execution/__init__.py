from contest_judge.infrastructure.execution.client import ExecutionServiceClient

__all__ = ["ExecutionServiceClient"]
