"""
Railway-Oriented Programming (ROP) framework.

Explicit, composable error handling for the CRL update pipeline — stages
return Result values instead of raising, and the first failure short-circuits
the rest of the chain.

    from railway import Result, ErrorCode

    def check_limit(limit: int) -> Result[int]:
        if limit <= 0:
            return Result.failure(ErrorCode.PREPARATION_ERROR, "size limit must be positive")
        return Result.success(limit)
"""

from railway.result import Result, Success, Failure
from railway.failure import ErrorCode, FailureDescription
from railway.execution import (
    ExecutionContext,
    NoOpExecutionContext,
    LoggingExecutionContext,
)
from railway.result_failures import ResultFailures
from railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultFailures",
    "ResultAssertions",
]

__version__ = "1.1.0"
