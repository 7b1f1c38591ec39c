"""
Module: polling.py
Description: Wait for eventually-consistent service state.

Some operations (purge in particular) take effect asynchronously on
the service side; eventually() polls a probe until it reports the
expected state or a deadline passes.
"""

from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_delay, wait_fixed

from sqs_harness.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


async def eventually(
    probe: Callable[[], Awaitable[T]],
    timeout_seconds: float = 5.0,
    interval_seconds: float = 0.2
) -> T:
    """
    Await ``probe`` until it returns a truthy value.

    Exceptions raised by the probe propagate immediately.

    Args:
        probe: Async callable checking the condition
        timeout_seconds: Give up after this long
        interval_seconds: Pause between probes

    Returns:
        The first truthy probe result

    Raises:
        TimeoutError: If the condition was not met in time

    Example:
        >>> async def queue_empty():
        ...     return not await client.receive_message(queue.url)
        >>> await eventually(queue_empty, timeout_seconds=10)
    """
    retrying = AsyncRetrying(
        stop=stop_after_delay(timeout_seconds),
        wait=wait_fixed(interval_seconds),
        retry=retry_if_result(lambda result: not result),
    )
    try:
        return await retrying(probe)
    except RetryError as e:
        logger.warning(
            "Condition not met before deadline",
            probe=getattr(probe, '__name__', repr(probe)),
            timeout_seconds=timeout_seconds,
            attempts=e.last_attempt.attempt_number
        )
        raise TimeoutError(
            f"condition not met within {timeout_seconds} seconds"
        ) from e
