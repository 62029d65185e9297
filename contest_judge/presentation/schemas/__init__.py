from contest_judge.presentation.schemas.common import ErrorResponse

__all__ = ["ErrorResponse"]
