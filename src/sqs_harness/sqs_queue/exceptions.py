"""
Module: exceptions.py
Description: Error taxonomy for queue service calls.

Maps service error codes onto a small exception hierarchy so callers
and tests can react to "queue not found" or "bad receipt handle"
without parsing error strings.

Author: Queue Harness Team
"""

from typing import Optional


class QueueServiceError(Exception):
    """Base class for every error raised by the queue client."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        if self.code:
            return f"{self.code}: {self.message}"
        return self.message


class QueueNotFoundError(QueueServiceError):
    """A queue name or url is unknown to the service."""


class InvalidPayloadError(QueueServiceError, ValueError):
    """Message body or request parameters are missing or malformed."""


class InvalidReceiptError(QueueServiceError):
    """A receipt handle is unknown or expired."""


class ServiceUnavailableError(QueueServiceError):
    """
    The service could not be reached or kept failing after retries.

    ``request_sent`` is False only when the request never left the
    client (connect failure or pool timeout); otherwise the service may
    have applied it.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_sent: bool = True
    ):
        self.request_sent = request_sent
        super().__init__(message, code=code, status_code=status_code)


class DigestMismatchError(QueueServiceError):
    """The service-reported MD5 digest does not match the local one."""

    def __init__(self, expected: str, reported: Optional[str], context: str):
        self.expected = expected
        self.reported = reported
        super().__init__(
            f"MD5 mismatch for {context}: computed {expected}, service reported {reported}",
            code="DigestMismatch"
        )


class AmbiguousQueueError(QueueServiceError):
    """A lookup by name matched more than one queue."""


class QueueNameCollisionError(QueueServiceError):
    """No unused queue name was found within the allowed attempts."""


class FixtureStateError(RuntimeError):
    """A queue fixture was used outside the state that allows it."""


NOT_FOUND_CODES = frozenset({
    "QueueDoesNotExist",
    "AWS.SimpleQueueService.NonExistentQueue",
    "NonExistentQueue",
})

INVALID_PAYLOAD_CODES = frozenset({
    "MissingParameter",
    "InvalidParameterValue",
    "InvalidParameterValueException",
    "InvalidMessageContents",
    "EmptyBatchRequest",
    "AWS.SimpleQueueService.EmptyBatchRequest",
    "TooManyEntriesInBatchRequest",
    "AWS.SimpleQueueService.TooManyEntriesInBatchRequest",
    "BatchEntryIdsNotDistinct",
    "AWS.SimpleQueueService.BatchEntryIdsNotDistinct",
    "InvalidBatchEntryId",
    "AWS.SimpleQueueService.InvalidBatchEntryId",
})

INVALID_RECEIPT_CODES = frozenset({
    "ReceiptHandleIsInvalid",
    "InvalidReceiptHandle",
    "ReceiptHandleIsInvalidException",
})

QUEUE_EXISTS_CODES = frozenset({
    "QueueAlreadyExists",
    "QueueNameExists",
    "AWS.SimpleQueueService.QueueNameExists",
})


def error_for_code(
    code: Optional[str],
    message: str,
    status_code: Optional[int] = None
) -> QueueServiceError:
    """
    Build the exception matching a service error code.

    Unknown codes with a 5xx status become ServiceUnavailableError;
    anything else unknown is a plain QueueServiceError.
    """
    if code in NOT_FOUND_CODES:
        return QueueNotFoundError(message, code=code, status_code=status_code)
    if code in INVALID_RECEIPT_CODES:
        return InvalidReceiptError(message, code=code, status_code=status_code)
    if code in INVALID_PAYLOAD_CODES:
        return InvalidPayloadError(message, code=code, status_code=status_code)
    if status_code is not None and status_code >= 500:
        return ServiceUnavailableError(message, code=code, status_code=status_code)
    return QueueServiceError(message, code=code, status_code=status_code)
