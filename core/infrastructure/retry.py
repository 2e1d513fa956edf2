"""
Bounded retry for calls to external collaborators.

Only TransientExternalServiceError is retried. Declines and other
definitive failures propagate on the first attempt.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from core.conf import renewal_setting
from core.domain.exceptions import TransientExternalServiceError
from core.metrics import external_call_duration_seconds, external_call_retries_total

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_retry(
    operation: str,
    func: Callable[[], Awaitable[T]],
    attempts: Optional[int] = None,
    backoff: Optional[float] = None,
) -> T:
    """
    Await ``func`` with exponential backoff on transient failures.

    Args:
        operation: Name used in logs and metrics (e.g. "payment.charge")
        func: Zero-argument coroutine factory
        attempts: Total attempts, defaults to EXTERNAL_RETRY_ATTEMPTS
        backoff: Base delay in seconds, defaults to EXTERNAL_RETRY_BACKOFF_SECONDS

    Returns:
        Whatever ``func`` returns

    Raises:
        TransientExternalServiceError: If every attempt failed transiently
    """
    if attempts is None:
        attempts = renewal_setting("EXTERNAL_RETRY_ATTEMPTS")
    if backoff is None:
        backoff = renewal_setting("EXTERNAL_RETRY_BACKOFF_SECONDS")
    attempts = max(1, int(attempts))

    for attempt in range(attempts):
        started = time.monotonic()
        try:
            return await func()
        except TransientExternalServiceError as e:
            if attempt + 1 >= attempts:
                logger.error(
                    "%s failed after %d attempt(s): %s", operation, attempts, e.message
                )
                raise
            delay = backoff * (2**attempt)
            external_call_retries_total.labels(operation=operation).inc()
            logger.warning(
                "%s failed transiently, retrying in %.2fs (attempt %d/%d): %s",
                operation,
                delay,
                attempt + 1,
                attempts,
                e.message,
            )
            await asyncio.sleep(delay)
        finally:
            external_call_duration_seconds.labels(operation=operation).observe(
                time.monotonic() - started
            )
