"""
Module: queue.py
Description: Data models for queue service requests and responses.

Defines the queue descriptor, received message and send/batch result
models. Response models accept the service's wire field names
(``MessageId``, ``MD5OfBody`` ...) through aliases, so raw JSON
responses validate directly.

Key Components:
- QueueDescriptor: name + url of a queue, with url derivation helpers
- Message: received message carrying its receipt handle
- BatchEntry: one entry of a batch send request
- SendMessageResult / SendMessageBatchResult: send outcomes
- ResponseMetadata: HTTP status and request id of a call

Dependencies: pydantic, re, typing
Author: Queue Harness Team
"""

import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

QUEUE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,80}$")
FIFO_QUEUE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,75}\.fifo$")
MAX_DELAY_SECONDS = 900


def is_valid_queue_name(name: str) -> bool:
    """Check a queue name against the service naming rules."""
    if not isinstance(name, str):
        return False
    return bool(QUEUE_NAME_PATTERN.match(name) or FIFO_QUEUE_NAME_PATTERN.match(name))


def expected_queue_url(base_url: str, queue_url_path: str, name: str) -> str:
    """
    Derive the url the service assigns to a queue name.

    Example:
        >>> expected_queue_url("http://localhost:9324/", "queue", "TestQueue1")
        'http://localhost:9324/queue/TestQueue1'
    """
    parts = [base_url.rstrip('/')]
    if queue_url_path.strip('/'):
        parts.append(queue_url_path.strip('/'))
    parts.append(name)
    return '/'.join(parts)


class ResponseMetadata(BaseModel):
    """HTTP status code and request id reported for a service call."""

    http_status_code: int = Field(..., description="HTTP status code of the response")
    request_id: Optional[str] = Field(default=None, description="Service request id")

    @property
    def ok(self) -> bool:
        return self.http_status_code == 200


class QueueDescriptor(BaseModel):
    """
    A queue known to the service.

    Attributes:
        name: Queue name, unique within a test run
        url: Queue url assigned by the service on creation
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Queue name")
    url: str = Field(..., min_length=1, description="Queue url assigned by the service")

    @classmethod
    def from_url(cls, url: str) -> "QueueDescriptor":
        """Build a descriptor from a queue url; the name is its last path segment."""
        name = url.rstrip('/').rsplit('/', 1)[-1]
        return cls(name=name, url=url)


class Message(BaseModel):
    """
    A message delivered by a receive call.

    The receipt handle is only valid for the receive that produced it.
    """

    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(..., alias="MessageId")
    body: str = Field(..., alias="Body")
    md5_of_body: Optional[str] = Field(default=None, alias="MD5OfBody")
    receipt_handle: str = Field(..., alias="ReceiptHandle")
    attributes: Dict[str, str] = Field(default_factory=dict, alias="Attributes")


class BatchEntry(BaseModel):
    """One message of a batch send request."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., pattern=r"^[A-Za-z0-9_-]{1,80}$", alias="Id")
    body: str = Field(..., min_length=1, alias="MessageBody")
    delay_seconds: int = Field(default=0, ge=0, le=MAX_DELAY_SECONDS, alias="DelaySeconds")

    def to_wire(self) -> Dict[str, object]:
        """Serialize to the request shape the service expects."""
        entry: Dict[str, object] = {"Id": self.id, "MessageBody": self.body}
        if self.delay_seconds:
            entry["DelaySeconds"] = self.delay_seconds
        return entry


class SendMessageResult(BaseModel):
    """Outcome of a single send."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(..., alias="MessageId")
    md5_of_message_body: str = Field(..., alias="MD5OfMessageBody")
    response: Optional[ResponseMetadata] = None


class BatchResultEntry(BaseModel):
    """A successfully sent batch entry."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="Id")
    message_id: str = Field(..., alias="MessageId")
    md5_of_message_body: str = Field(..., alias="MD5OfMessageBody")


class BatchResultErrorEntry(BaseModel):
    """A batch entry the service rejected."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="Id")
    code: str = Field(..., alias="Code")
    message: Optional[str] = Field(default=None, alias="Message")
    sender_fault: bool = Field(default=False, alias="SenderFault")


class SendMessageBatchResult(BaseModel):
    """
    Per-entry outcome of a batch send.

    Partial failure is normal: ``successful`` and ``failed`` together
    cover every submitted entry.
    """

    model_config = ConfigDict(populate_by_name=True)

    successful: List[BatchResultEntry] = Field(default_factory=list, alias="Successful")
    failed: List[BatchResultErrorEntry] = Field(default_factory=list, alias="Failed")
    response: Optional[ResponseMetadata] = None

    @property
    def all_successful(self) -> bool:
        return not self.failed

    def result_for(self, entry_id: str):
        """Return the success or error entry for an id, or None."""
        for entry in [*self.successful, *self.failed]:
            if entry.id == entry_id:
                return entry
        return None
