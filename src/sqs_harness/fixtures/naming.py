"""
Module: naming.py
Description: Unique queue names for test scenarios.

Names are ``prefix + 12 hex characters``. The suffix makes collisions
unlikely, not impossible; QueueFixture checks each candidate and
retries with a new suffix.

Author: Queue Harness Team
"""

from typing import Callable
from uuid import uuid4

from sqs_harness.models.queue import is_valid_queue_name

SUFFIX_LENGTH = 12


def queue_name_suffix() -> str:
    return uuid4().hex[:SUFFIX_LENGTH]


def unique_queue_name(prefix: str, suffix_factory: Callable[[], str] = queue_name_suffix) -> str:
    """
    Build a queue name from a prefix and a random suffix.

    Raises:
        ValueError: If the result is not a valid queue name
    """
    name = f"{prefix}{suffix_factory()}"
    if not is_valid_queue_name(name):
        raise ValueError(f"'{name}' is not a valid queue name")
    return name
