"""
Judge backends
"""
from contest_judge.domain.judging.backends.base import JudgeBackend
from contest_judge.domain.judging.backends.factory import create_judge_backend
from contest_judge.domain.judging.backends.judge0 import Judge0Backend
from contest_judge.domain.judging.backends.local import LocalExecutionBackend
from contest_judge.domain.judging.backends.passthrough import PassthroughBackend, UnavailableBackend

__all__ = [
    "JudgeBackend",
    "Judge0Backend",
    "LocalExecutionBackend",
    "PassthroughBackend",
    "UnavailableBackend",
    "create_judge_backend",
]
