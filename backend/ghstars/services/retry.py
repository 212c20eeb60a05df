"""Bounded retries for calls into external collaborators."""

import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ghstars.services.exceptions import DependencyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_retry(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    what: str,
    max_attempts: int = 3,
    wait_seconds: float = 1.0,
) -> T:
    """Await fn(*args), retrying up to max_attempts times.

    Args:
        fn: Collaborator coroutine function
        what: Short description used in logs and the raised error
        max_attempts: Total attempts, including the first
        wait_seconds: Base of the exponential backoff (0 disables waiting)

    Raises:
        DependencyError: When every attempt failed
    """
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=wait_seconds, max=30),
            retry=retry_if_exception_type(Exception),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await fn(*args)
    except DependencyError:
        raise
    except Exception as e:
        logger.error(f"{what} failed after {max_attempts} attempts: {e}")
        raise DependencyError(f"{what} failed after {max_attempts} attempts: {e}") from e
    raise DependencyError(f"{what} did not run")
