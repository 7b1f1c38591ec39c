"""
Module: sqs_queue/retry.py
Description: Retry policy for queue service calls.

Transport failures, timeouts and 5xx responses surface as
ServiceUnavailableError. Idempotent actions retry all of them with
exponential backoff before letting the last error through. Actions that
change state (send, delete) retry only failures where the request never
reached the service; a timeout or 5xx on those may already have been
applied, so it is raised on the first attempt. Every other error is
raised on the first attempt.

Dependencies: tenacity, structlog
"""

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sqs_harness.sqs_queue.exceptions import ServiceUnavailableError
from sqs_harness.utils.logger import get_logger

logger = get_logger(__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Queue service call failed, retrying",
        attempt=retry_state.attempt_number,
        next_wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(error)
    )


def _never_sent(error: BaseException) -> bool:
    return isinstance(error, ServiceUnavailableError) and not error.request_sent


def service_retrying(
    max_attempts: int,
    backoff_seconds: float,
    max_backoff_seconds: float,
    idempotent: bool = True
) -> AsyncRetrying:
    """
    Build the retry controller for one service call.

    Args:
        max_attempts: Total attempts, including the first
        backoff_seconds: Exponential backoff multiplier (0 disables waiting)
        max_backoff_seconds: Upper bound for a single wait
        idempotent: False for actions that must not be applied twice

    Example:
        >>> async for attempt in service_retrying(3, 0.5, 5):
        ...     with attempt:
        ...         response = await send()
    """
    if idempotent:
        retry = retry_if_exception_type(ServiceUnavailableError)
    else:
        retry = retry_if_exception(_never_sent)

    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=backoff_seconds, min=0, max=max_backoff_seconds),
        retry=retry,
        before_sleep=_log_retry,
        reraise=True
    )
