"""
Module: conftest.py
Description: Shared pytest fixtures for queue harness tests.

Provides an in-process fake of an SQS JSON-protocol emulator served
through httpx.MockTransport, so client and fixture tests run without
a live service. Scenario tests switch to a live emulator when
SQS_HARNESS_EMULATOR=1 is set.
"""

import json
import os
import time
from hashlib import md5
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio

from sqs_harness.config.settings import Settings
from sqs_harness.fixtures.lifecycle import QueueFixture
from sqs_harness.sqs_queue.sqs import SQSClient

FAKE_SERVICE_URL = "http://localhost:9324/"


class FakeServiceError(Exception):
    """Error response the fake service sends back."""

    def __init__(self, code: str, message: str, legacy_code: Optional[str] = None, status: int = 400):
        self.code = code
        self.message = message
        self.legacy_code = legacy_code or code
        self.status = status
        super().__init__(message)


class FakeQueueService:
    """
    Minimal in-memory SQS JSON-protocol service.

    Mirrors ElasticMQ's behavior for the actions the client uses:
    queue urls are ``<base>/queue/<name>``, creating an existing queue
    returns it, received messages stay in flight until deleted and
    stale receipt handles are rejected.
    """

    def __init__(self, base_url: str = FAKE_SERVICE_URL):
        self.base_url = base_url.rstrip('/')
        self.queues: Dict[str, Dict[str, Any]] = {}
        self.requests: List[Tuple[str, Dict[str, Any]]] = []
        self.request_headers: List[httpx.Headers] = []
        # Each entry is an HTTP status or an exception raised before handling
        self.failures: List[Any] = []
        # Same, but returned after the action has been applied
        self.failures_after_apply: List[Any] = []
        self.reject_duplicate_create = False
        self.corrupt_digests = False

    def url_for(self, name: str) -> str:
        return f"{self.base_url}/queue/{name}"

    def actions(self) -> List[str]:
        return [action for action, _ in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        action = request.headers["X-Amz-Target"].split(".", 1)[1]
        payload = json.loads(request.content or b"{}")
        self.requests.append((action, payload))
        self.request_headers.append(request.headers)

        if self.failures:
            return self._injected(self.failures.pop(0))

        method = getattr(self, "_" + "".join(
            "_" + char.lower() if char.isupper() else char for char in action
        ).lstrip("_"))
        try:
            data = method(payload)
        except FakeServiceError as e:
            return httpx.Response(
                e.status,
                json={"__type": f"com.amazonaws.sqs#{e.code}", "message": e.message},
                headers={"x-amzn-query-error": f"{e.legacy_code};Sender"}
            )

        if self.failures_after_apply:
            return self._injected(self.failures_after_apply.pop(0))

        return httpx.Response(200, json=data, headers={"x-amzn-RequestId": str(uuid4())})

    @staticmethod
    def _injected(failure: Any) -> httpx.Response:
        if isinstance(failure, Exception):
            raise failure
        return httpx.Response(
            failure,
            json={"__type": "com.amazonaws.sqs#InternalFailure", "message": "injected failure"}
        )

    def _digest(self, body: str) -> str:
        if self.corrupt_digests:
            body = body + "corrupted"
        return md5(body.encode("utf-8")).hexdigest()

    def _queue(self, url: Optional[str]) -> Dict[str, Any]:
        for queue in self.queues.values():
            if queue["url"] == url:
                return queue
        raise FakeServiceError(
            "QueueDoesNotExist",
            "The specified queue does not exist.",
            legacy_code="AWS.SimpleQueueService.NonExistentQueue"
        )

    def _create_queue(self, payload):
        name = payload["QueueName"]
        if name in self.queues:
            if self.reject_duplicate_create:
                raise FakeServiceError(
                    "QueueAlreadyExists",
                    f"A queue already exists with the same name: {name}",
                    legacy_code="QueueAlreadyExists"
                )
            return {"QueueUrl": self.queues[name]["url"]}
        self.queues[name] = {
            "url": self.url_for(name),
            "attributes": payload.get("Attributes", {}),
            "messages": [],
            "in_flight": {},
        }
        return {"QueueUrl": self.queues[name]["url"]}

    def _list_queues(self, payload):
        prefix = payload.get("QueueNamePrefix", "")
        urls = [queue["url"] for name, queue in self.queues.items() if name.startswith(prefix)]
        start = int(payload.get("NextToken", 0))
        page_size = payload.get("MaxResults")
        if page_size:
            page = urls[start:start + page_size]
            result: Dict[str, Any] = {"QueueUrls": page} if page else {}
            if start + page_size < len(urls):
                result["NextToken"] = str(start + page_size)
            return result
        return {"QueueUrls": urls} if urls else {}

    def _get_queue_url(self, payload):
        name = payload["QueueName"]
        if name not in self.queues:
            raise FakeServiceError(
                "QueueDoesNotExist",
                "The specified queue does not exist.",
                legacy_code="AWS.SimpleQueueService.NonExistentQueue"
            )
        return {"QueueUrl": self.queues[name]["url"]}

    def _store_message(self, queue, body: str, delay: int) -> Dict[str, str]:
        message = {
            "MessageId": str(uuid4()),
            "Body": body,
            "visible_at": time.monotonic() + delay,
        }
        queue["messages"].append(message)
        return {"MessageId": message["MessageId"], "MD5OfMessageBody": self._digest(body)}

    def _send_message(self, payload):
        queue = self._queue(payload.get("QueueUrl"))
        body = payload.get("MessageBody")
        if not body:
            raise FakeServiceError("MissingParameter", "The request must contain the parameter MessageBody.")
        return self._store_message(queue, body, payload.get("DelaySeconds", 0))

    def _send_message_batch(self, payload):
        queue = self._queue(payload.get("QueueUrl"))
        successful, failed = [], []
        for entry in payload.get("Entries", []):
            if "\u0000" in entry["MessageBody"]:
                failed.append({
                    "Id": entry["Id"],
                    "Code": "InvalidMessageContents",
                    "Message": "Message contains invalid characters",
                    "SenderFault": True,
                })
                continue
            sent = self._store_message(queue, entry["MessageBody"], entry.get("DelaySeconds", 0))
            successful.append({"Id": entry["Id"], **sent})
        return {"Successful": successful, "Failed": failed}

    def _receive_message(self, payload):
        queue = self._queue(payload.get("QueueUrl"))
        limit = payload.get("MaxNumberOfMessages", 1)
        now = time.monotonic()
        delivered = []
        for message in list(queue["messages"]):
            if len(delivered) >= limit:
                break
            if message["visible_at"] > now:
                continue
            queue["messages"].remove(message)
            handle = uuid4().hex
            queue["in_flight"][handle] = message
            delivered.append({
                "MessageId": message["MessageId"],
                "ReceiptHandle": handle,
                "Body": message["Body"],
                "MD5OfBody": self._digest(message["Body"]),
            })
        return {"Messages": delivered} if delivered else {}

    def _delete_message(self, payload):
        queue = self._queue(payload.get("QueueUrl"))
        if queue["in_flight"].pop(payload.get("ReceiptHandle"), None) is None:
            raise FakeServiceError(
                "ReceiptHandleIsInvalid",
                "The input receipt handle is invalid."
            )
        return {}

    def _purge_queue(self, payload):
        queue = self._queue(payload.get("QueueUrl"))
        queue["messages"].clear()
        queue["in_flight"].clear()
        return {}

    def _delete_queue(self, payload):
        queue = self._queue(payload.get("QueueUrl"))
        del self.queues[queue["url"].rsplit("/", 1)[-1]]
        return {}


@pytest.fixture
def test_settings():
    """
    Provide test configuration settings.

    Disables .env loading and backoff waits for predictable, fast tests.
    """
    return Settings(
        _env_file=None,
        service_url=FAKE_SERVICE_URL,
        log_level="DEBUG",
        max_attempts=3,
        retry_backoff_seconds=0,
        retry_max_backoff_seconds=0,
    )


@pytest.fixture
def fake_service():
    """Provide a fresh in-memory queue service."""
    return FakeQueueService()


@pytest_asyncio.fixture
async def sqs_client(test_settings, fake_service):
    """Provide an open SQSClient wired to the fake service."""
    client = SQSClient.from_settings(
        test_settings,
        transport=httpx.MockTransport(fake_service.handler)
    )
    async with client:
        yield client


def live_emulator_enabled() -> bool:
    return os.environ.get("SQS_HARNESS_EMULATOR") == "1"


@pytest_asyncio.fixture
async def queue_client(test_settings, fake_service):
    """
    Provide the client scenario tests run against.

    Uses the live emulator from SQS_HARNESS_* settings when
    SQS_HARNESS_EMULATOR=1, otherwise the fake service.
    """
    if live_emulator_enabled():
        client = SQSClient.from_settings(Settings())
    else:
        client = SQSClient.from_settings(
            test_settings,
            transport=httpx.MockTransport(fake_service.handler)
        )
    async with client:
        yield client


@pytest.fixture
def scenario_prefix(test_settings):
    """Queue name prefix unique to one scenario."""
    return f"{test_settings.queue_prefix}-{uuid4().hex[:8]}-"


@pytest_asyncio.fixture
async def queue_fixture(queue_client, scenario_prefix, request):
    """Provide a running QueueFixture; cleanup runs after the test."""
    async with QueueFixture(
        queue_client,
        prefix=scenario_prefix,
        scenario=request.node.name
    ) as fixture:
        yield fixture
