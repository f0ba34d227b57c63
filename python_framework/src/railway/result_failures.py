"""
Convenience factory methods for common Result failures.

One factory per error kind, so adapters read as the stage they belong to:

    # Instead of:
    Result.failure(ErrorCode.FORMAT_ERROR, "source is not a DER or PEM encoded CRL")

    # Write:
    ResultFailures.format_error("source is not a DER or PEM encoded CRL")
"""

from __future__ import annotations

from typing import TypeVar

from railway.failure import ErrorCode
from railway.result import Result

T = TypeVar("T")


class ResultFailures:
    """Factory methods for the CRL update failure kinds."""

    @staticmethod
    def preparation_error(message: str, exception: BaseException | None = None) -> Result:
        """Job descriptor rejected at registration time."""
        return Result.failure(ErrorCode.PREPARATION_ERROR, message, exception)

    @staticmethod
    def network_error(message: str, exception: BaseException | None = None) -> Result:
        """Transport, timeout or HTTP status failure during the download."""
        return Result.failure(ErrorCode.NETWORK_ERROR, message, exception)

    @staticmethod
    def format_error(message: str) -> Result:
        """Payload prefix not recognised as a CRL."""
        return Result.failure(ErrorCode.FORMAT_ERROR, message)

    @staticmethod
    def size_limit_exceeded(limit: int) -> Result:
        """Payload exceeded the configured size limit."""
        return Result.failure(
            ErrorCode.SIZE_LIMIT_EXCEEDED,
            f"input stream too large (limit {limit} bytes)",
        )

    @staticmethod
    def comparison_error(message: str, exception: BaseException | None = None) -> Result:
        return Result.failure(ErrorCode.COMPARISON_ERROR, message, exception)

    @staticmethod
    def replace_error(message: str, exception: BaseException | None = None) -> Result:
        return Result.failure(ErrorCode.REPLACE_ERROR, message, exception)

    @staticmethod
    def configuration_error(message: str, exception: BaseException | None = None) -> Result:
        return Result.failure(ErrorCode.CONFIGURATION_ERROR, message, exception)

    @staticmethod
    def technical_error(message: str, exception: BaseException | None = None) -> Result:
        return Result.failure(ErrorCode.TECHNICAL_ERROR, message, exception)
