"""Connection stability utilities: retry with backoff and blocking poll loops."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import paramiko
from tenacity import (
    AsyncRetrying,
    retry,
    stop_after_attempt,
    stop_never,
    stop_when_event_set,
    wait_exponential,
    wait_fixed,
    retry_if_exception_type,
    retry_if_not_exception_type,
    retry_if_result,
    before_sleep_log,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Common network exceptions to retry on
RETRYABLE_EXCEPTIONS = (
    ConnectionRefusedError,
    ConnectionResetError,
    TimeoutError,
    OSError,
    EOFError,
    paramiko.SSHException,
)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry a connect-style call with exponential backoff.

    Works on plain and async functions alike. Authentication failures are
    never retried even though paramiko derives them from SSHException, and
    the last exception is re-raised once attempts run out.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait between attempts (seconds)
        max_wait: Maximum wait between attempts (seconds)
        exceptions: Exception types worth another attempt
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=(
            retry_if_exception_type(exceptions)
            & retry_if_not_exception_type(paramiko.AuthenticationException)
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


async def poll_until_granted(
    attempt: Callable[[], Awaitable[bool]],
    interval: float,
    cancel: Optional[asyncio.Event] = None,
    max_attempts: Optional[int] = None,
) -> bool:
    """Call ``attempt`` every ``interval`` seconds until it returns True.

    The loop has no deadline unless ``max_attempts`` is given. Setting
    ``cancel`` stops it between polls and interrupts the current sleep.
    Exceptions raised by ``attempt`` propagate immediately.

    Raises:
        tenacity.RetryError: the loop was cancelled or ran out of attempts
    """
    stop = stop_never
    if cancel is not None:
        stop = stop_when_event_set(cancel)
    if max_attempts is not None:
        bound = stop_after_attempt(max_attempts)
        stop = bound if cancel is None else stop | bound

    async def _sleep(seconds: float) -> None:
        if cancel is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(cancel.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _attempt() -> bool:
        if cancel is not None and cancel.is_set():
            return False
        return await attempt()

    retrying = AsyncRetrying(
        retry=retry_if_result(lambda granted: not granted),
        wait=wait_fixed(interval),
        stop=stop,
        sleep=_sleep,
        before_sleep=before_sleep_log(logger, logging.INFO),
    )
    return await retrying(_attempt)
