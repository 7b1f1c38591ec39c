"""
Module: lifecycle.py
Description: Per-scenario queue fixture with guaranteed cleanup.

QueueFixture hands out unique queue names, records every queue a
scenario creates and deletes everything under its prefix when the
scenario ends, whether it passed or failed.

Key Components:
- FixtureState: INIT -> RUNNING -> CLEANUP -> DONE
- QueueFixture: async context manager driving the lifecycle
- CleanupFailure: one queue (or listing) that could not be cleaned up

Dependencies: structlog, typing
Author: Queue Harness Team
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Set

from sqs_harness.config.settings import settings
from sqs_harness.fixtures.naming import queue_name_suffix, unique_queue_name
from sqs_harness.models.queue import QueueDescriptor
from sqs_harness.sqs_queue.exceptions import (
    FixtureStateError,
    QueueNameCollisionError,
    QueueNotFoundError,
)
from sqs_harness.sqs_queue.sqs import SQSClient
from sqs_harness.utils.logger import get_logger

logger = get_logger(__name__)


class FixtureState(str, Enum):
    INIT = "init"
    RUNNING = "running"
    CLEANUP = "cleanup"
    DONE = "done"


class CleanupFailure(NamedTuple):
    queue_url: Optional[str]
    error: Exception


class QueueFixture:
    """
    Queue resources for one test scenario.

    A fixture is used once: enter it, create queues through it, and
    leave it. Leaving lists every queue whose name starts with the
    prefix, adds the queues this fixture recorded, and deletes each
    one. A failed delete is logged and recorded in
    ``cleanup_failures``; it never stops the remaining deletes.

    The prefix is a cleanup selector, not an isolation boundary:
    concurrent scenarios sharing a prefix clean up each other's queues.

    Example:
        >>> async with QueueFixture(client, scenario="send") as fixture:
        ...     queue = await fixture.create_queue()
        ...     await client.send_message(queue.url, "hello")
    """

    def __init__(
        self,
        client: SQSClient,
        prefix: str = settings.queue_prefix,
        name_attempts: int = settings.name_attempts,
        suffix_factory: Callable[[], str] = queue_name_suffix,
        scenario: Optional[str] = None
    ):
        if not isinstance(client, SQSClient):
            raise ValueError("client must be an SQSClient instance")
        if not prefix or not isinstance(prefix, str):
            raise ValueError("prefix must be a non-empty string")
        if name_attempts < 1:
            raise ValueError("name_attempts must be at least 1")

        self.client = client
        self.prefix = prefix
        self.name_attempts = name_attempts
        self.scenario = scenario
        self.state = FixtureState.INIT
        self.created: List[QueueDescriptor] = []
        self.cleanup_failures: List[CleanupFailure] = []

        self._suffix_factory = suffix_factory
        self._used_names: Set[str] = set()
        self._log = logger.bind(prefix=prefix, scenario=scenario)

    async def __aenter__(self) -> "QueueFixture":
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        # The scenario may already have cleaned up explicitly
        if self.state is not FixtureState.DONE:
            await self.cleanup()

    def start(self) -> None:
        self._require(FixtureState.INIT)
        self.state = FixtureState.RUNNING
        self._log.debug("Queue fixture started")

    def new_queue_name(self) -> str:
        """Return a candidate name under this fixture's prefix (unchecked)."""
        self._require(FixtureState.RUNNING)
        return unique_queue_name(self.prefix, self._suffix_factory)

    async def create_queue(
        self,
        name: Optional[str] = None,
        attributes: Optional[Mapping[str, Any]] = None
    ) -> QueueDescriptor:
        """
        Create a queue and record it for cleanup.

        Args:
            name: Explicit name; a fresh unused name is picked when omitted
            attributes: Optional queue attributes

        Raises:
            QueueNameCollisionError: If no unused name was found
            FixtureStateError: If the fixture is not running
        """
        self._require(FixtureState.RUNNING)
        if name is None:
            name = await self._fresh_name()

        descriptor = await self.client.create_queue(name, attributes)
        self._used_names.add(name)
        if all(known.url != descriptor.url for known in self.created):
            self.created.append(descriptor)
        return descriptor

    async def cleanup(self) -> List[CleanupFailure]:
        """
        Delete every queue under the prefix and every recorded queue.

        Returns:
            The failures encountered; an empty list on full success

        Raises:
            FixtureStateError: If cleanup already ran
        """
        if self.state in (FixtureState.CLEANUP, FixtureState.DONE):
            raise FixtureStateError(f"Queue fixture cleanup already ran (state: {self.state.value})")
        self.state = FixtureState.CLEANUP

        targets: Dict[str, QueueDescriptor] = {queue.url: queue for queue in self.created}
        try:
            for queue in await self.client.list_queues(self.prefix):
                if queue.name.startswith(self.prefix):
                    targets.setdefault(queue.url, queue)
        except Exception as e:
            self._log.warning("Failed to list queues for cleanup", error=str(e))
            self.cleanup_failures.append(CleanupFailure(None, e))

        deleted = 0
        for url in targets:
            try:
                await self.client.delete_queue(url)
                deleted += 1
            except QueueNotFoundError:
                self._log.debug("Queue already gone", queue_url=url)
            except Exception as e:
                self._log.warning(
                    "Failed to clean up queue",
                    queue_url=url,
                    error=str(e),
                    error_type=type(e).__name__
                )
                self.cleanup_failures.append(CleanupFailure(url, e))

        self.state = FixtureState.DONE
        self._log.info(
            "Queue fixture cleaned up",
            deleted=deleted,
            failed=len(self.cleanup_failures)
        )
        return self.cleanup_failures

    async def _fresh_name(self) -> str:
        for attempt in range(1, self.name_attempts + 1):
            candidate = unique_queue_name(self.prefix, self._suffix_factory)
            if candidate in self._used_names:
                self._log.info("Queue name already used by fixture", queue_name=candidate, attempt=attempt)
                continue
            existing = await self.client.list_queues(candidate)
            if any(queue.name == candidate for queue in existing):
                self._log.info("Queue name already exists on service", queue_name=candidate, attempt=attempt)
                continue
            return candidate

        raise QueueNameCollisionError(
            f"No unused queue name under prefix '{self.prefix}' after {self.name_attempts} attempts",
            code="QueueNameCollision"
        )

    def _require(self, state: FixtureState) -> None:
        if self.state is not state:
            raise FixtureStateError(
                f"Queue fixture is {self.state.value}, expected {state.value}"
            )
