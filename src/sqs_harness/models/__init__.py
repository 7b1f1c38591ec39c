"""
Module: models
Description: Pydantic models for queue service requests and responses.
"""

from .queue import (
    BatchEntry,
    BatchResultEntry,
    BatchResultErrorEntry,
    Message,
    QueueDescriptor,
    ResponseMetadata,
    SendMessageBatchResult,
    SendMessageResult,
)

__all__ = [
    "QueueDescriptor",
    "Message",
    "BatchEntry",
    "BatchResultEntry",
    "BatchResultErrorEntry",
    "SendMessageResult",
    "SendMessageBatchResult",
    "ResponseMetadata",
]
