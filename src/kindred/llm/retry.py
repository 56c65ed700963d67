"""Backoff for transient LLM API failures.

Only the vendor's own transient failures are retried (rate limits, 5xx,
overload, dropped connections). Timeouts are not: every caller wraps the
call in ``asyncio.wait_for`` and that deadline is final.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})

RETRYABLE_PATTERN = re.compile(
    r"overloaded|rate.?limit|too many requests|"
    r"429|500|502|503|504|"
    r"service.?unavailable|server error|internal error|"
    r"connection.?error",
    re.IGNORECASE,
)

# Matched against the lowercased exception class name, e.g. APIConnectionError
RETRYABLE_TYPE_HINTS = ("connection", "overloaded", "ratelimit", "rate_limit")


@dataclass
class RetryConfig:
    """Short delays: a slow retry only burns the caller's timeout budget."""

    enabled: bool = True
    max_retries: int = 2
    base_delay_ms: int = 500
    max_delay_ms: int = 4000

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
        return min(self.base_delay_ms * 2**attempt, self.max_delay_ms) / 1000


def is_retryable_error(error: Exception) -> bool:
    if isinstance(error, TimeoutError | asyncio.CancelledError):
        return False
    if getattr(error, "status_code", None) in RETRYABLE_STATUS:
        return True
    type_name = type(error).__name__.lower()
    if any(hint in type_name for hint in RETRYABLE_TYPE_HINTS):
        return True
    return RETRYABLE_PATTERN.search(str(error)) is not None


async def with_retry(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    operation_name: str = "API call",
) -> T:
    """Await ``func()``, retrying transient failures with exponential backoff.

    Raises:
        The error itself when it is not transient, else the last error once
        ``max_retries`` retries are spent.
    """
    config = config or RetryConfig()
    attempts = config.max_retries + 1 if config.enabled else 1

    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if not config.enabled or not is_retryable_error(e):
                raise
            attempt += 1
            if attempt >= attempts:
                logger.warning(
                    "retry_exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": attempts,
                        "error.type": type(e).__name__,
                        "error.message": str(e),
                    },
                )
                raise

            delay = config.delay_for(attempt - 1)
            logger.info(
                "retry_attempt",
                extra={
                    "operation": operation_name,
                    "attempt": attempt,
                    "max_attempts": attempts,
                    "retry_delay_s": round(delay, 2),
                    "error.type": type(e).__name__,
                },
            )
            await asyncio.sleep(delay)
