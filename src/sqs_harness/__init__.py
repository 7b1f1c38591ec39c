"""
sqs_harness - async client and test fixtures for SQS-compatible queue emulators.

Provides an httpx-based queue client (create/list/send/receive/delete,
purge, batch send) with MD5 body verification, and a per-scenario
fixture that guarantees best-effort cleanup of every queue it creates.
"""

from .fixtures.lifecycle import FixtureState, QueueFixture
from .models.queue import Message, QueueDescriptor
from .sqs_queue.sqs import SQSClient

__version__ = "0.1.0"

__all__ = [
    "SQSClient",
    "QueueFixture",
    "FixtureState",
    "QueueDescriptor",
    "Message",
]
