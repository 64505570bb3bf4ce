"""
Async retry with exponential backoff for calls to the optional vector service.
Sleeps suspend only the calling coroutine.
"""

import asyncio
from typing import Awaitable, Callable, Tuple, Type, TypeVar

import httpx

from util.logging import logger

T = TypeVar("T")

# Failures worth another attempt. Anything else propagates immediately.
RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    httpx.TransportError,
    ConnectionError,
    asyncio.TimeoutError,
)


def describe_connection_error(exc: BaseException) -> str:
    """Classify a transport failure for log output."""
    if isinstance(exc, (httpx.ConnectError, ConnectionRefusedError)) or "ECONNREFUSED" in str(exc):
        return "connection refused"
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return "timeout"
    if isinstance(exc, httpx.TransportError):
        return "fetch failed"
    if isinstance(exc, httpx.HTTPStatusError):
        return f"http {exc.response.status_code}"
    return type(exc).__name__


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 2,
    initial_delay: float = 1.0,
    backoff_multiplier: float = 2.0,
    label: str = "operation",
    retry_on: Tuple[Type[BaseException], ...] = RETRYABLE_ERRORS,
) -> T:
    """
    Run `operation` and retry it on transient failures.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        initial_delay: Delay before the first retry, in seconds
        backoff_multiplier: Factor applied to the delay after every retry
        label: Name used in retry log lines
        retry_on: Exception types that trigger a retry

    Returns:
        Whatever the operation returns on its first successful attempt

    Raises:
        The last exception once retries are exhausted, or any non-retryable
        exception straight away.
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0: {max_retries}")

    delay = initial_delay
    max_attempts = max_retries + 1

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= max_attempts:
                raise
            logger.log_retry(label, attempt, max_attempts, describe_connection_error(exc), delay)
            await asyncio.sleep(delay)
            delay *= backoff_multiplier

    # Unreachable: the loop either returns or raises
    raise RuntimeError(f"{label}: retry loop exited without a result")
