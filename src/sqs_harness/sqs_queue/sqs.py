"""
Module: sqs.py
Description: Async client for SQS-compatible queue services.

Speaks the AWS JSON 1.0 protocol over httpx: every operation is a
signed POST to the service endpoint with an ``X-Amz-Target`` header
naming the action. Responses are parsed into pydantic models, service
errors are mapped onto the exceptions in ``sqs_queue.exceptions`` and
every body the service reports a digest for is checked locally.

Key Components:
- SQSClient: queue CRUD, send/batch send/receive/delete, purge
- Transport failures retried with backoff, then ServiceUnavailableError;
  send and delete actions are retried only when never sent
- Idempotent create: an existing queue name returns the existing queue

Dependencies: httpx, botocore (signing), tenacity, pydantic, structlog
"""

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import httpx

from sqs_harness.config.settings import Settings, settings
from sqs_harness.models.queue import (
    MAX_DELAY_SECONDS,
    BatchEntry,
    Message,
    QueueDescriptor,
    ResponseMetadata,
    SendMessageBatchResult,
    SendMessageResult,
    expected_queue_url,
    is_valid_queue_name,
)
from sqs_harness.sqs_queue.checksum import verify_digest
from sqs_harness.sqs_queue.exceptions import (
    INVALID_PAYLOAD_CODES,
    INVALID_RECEIPT_CODES,
    NOT_FOUND_CODES,
    QUEUE_EXISTS_CODES,
    AmbiguousQueueError,
    InvalidPayloadError,
    InvalidReceiptError,
    QueueNotFoundError,
    QueueServiceError,
    ServiceUnavailableError,
    error_for_code,
)
from sqs_harness.sqs_queue.retry import service_retrying
from sqs_harness.sqs_queue.signing import RequestSigner
from sqs_harness.utils.batch_helpers import duplicate_ids, validate_batch_size
from sqs_harness.utils.logger import get_logger

logger = get_logger(__name__)

JSON_CONTENT_TYPE = "application/x-amz-json-1.0"
TARGET_PREFIX = "AmazonSQS."
MAX_BATCH_ENTRIES = 10
MAX_RECEIVE_MESSAGES = 10
MAX_WAIT_TIME_SECONDS = 20

_KNOWN_CODES = NOT_FOUND_CODES | INVALID_PAYLOAD_CODES | INVALID_RECEIPT_CODES | QUEUE_EXISTS_CODES


class SQSClient:
    """
    Async client for one queue service endpoint.

    The underlying HTTP connection pool is opened by ``async with``
    (or ``open()``) and released on exit. No queue state is cached:
    every call goes to the service.

    Example:
        >>> async with SQSClient("http://localhost:9324/") as client:
        ...     queue = await client.create_queue("TestQueue1")
        ...     await client.send_message(queue.url, "hello")
    """

    def __init__(
        self,
        service_url: str,
        region: str = "elasticmq",
        access_key_id: str = "x",
        secret_access_key: str = "x",
        queue_url_path: str = "queue",
        timeout_seconds: float = 10,
        max_attempts: int = 3,
        retry_backoff_seconds: float = 0.5,
        retry_max_backoff_seconds: float = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            service_url: Base URL of the queue service
            region: Region used for request signing
            access_key_id: Access key (placeholder for emulators)
            secret_access_key: Secret key (placeholder for emulators)
            queue_url_path: Path segment between base URL and queue name
            timeout_seconds: HTTP timeout for each call
            max_attempts: Attempts per call for transport failures
            retry_backoff_seconds: Exponential backoff multiplier
            retry_max_backoff_seconds: Upper bound for a single wait
            transport: Optional httpx transport (tests use MockTransport)

        Raises:
            ValueError: If service_url is invalid
        """
        if not service_url or not isinstance(service_url, str):
            raise ValueError("service_url must be a non-empty string")
        if not service_url.startswith(('http://', 'https://')):
            raise ValueError("service_url must be a valid HTTP/HTTPS URL")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.service_url = service_url
        self.endpoint = service_url.rstrip('/') + '/'
        self.queue_url_path = queue_url_path
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.retry_backoff_seconds = retry_backoff_seconds
        self.retry_max_backoff_seconds = retry_max_backoff_seconds

        self._signer = RequestSigner(access_key_id, secret_access_key, region)
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

        logger.info(
            "SQS client initialized",
            service_url=service_url,
            region=region,
            timeout_seconds=timeout_seconds,
            max_attempts=max_attempts
        )

    @classmethod
    def from_settings(
        cls,
        config: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "SQSClient":
        """Build a client from harness settings."""
        return cls(
            service_url=config.service_url,
            region=config.region,
            access_key_id=config.access_key_id,
            secret_access_key=config.secret_access_key,
            queue_url_path=config.queue_url_path,
            timeout_seconds=config.request_timeout_seconds,
            max_attempts=config.max_attempts,
            retry_backoff_seconds=config.retry_backoff_seconds,
            retry_max_backoff_seconds=config.retry_max_backoff_seconds,
            transport=transport
        )

    async def open(self) -> "SQSClient":
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds, connect=self.timeout_seconds),
                transport=self._transport
            )
        return self

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "SQSClient":
        return await self.open()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def expected_queue_url(self, name: str) -> str:
        """Url the service is expected to assign to ``name``; no request is made."""
        return expected_queue_url(self.service_url, self.queue_url_path, name)

    # Queue operations

    async def create_queue(
        self,
        name: str,
        attributes: Optional[Mapping[str, Any]] = None
    ) -> QueueDescriptor:
        """
        Create a queue, or return the existing one with the same name.

        Args:
            name: Queue name (letters, numbers, hyphens, underscores; max 80)
            attributes: Optional queue attributes (e.g. DelaySeconds)

        Returns:
            Descriptor with the service-assigned url

        Raises:
            InvalidPayloadError: If the name is invalid
            QueueServiceError: If the service rejects the request
        """
        if not is_valid_queue_name(name):
            raise InvalidPayloadError(
                "name must be 1-80 letters, numbers, hyphens or underscores",
                code="InvalidParameterValue"
            )

        payload: Dict[str, Any] = {"QueueName": name}
        if attributes:
            payload["Attributes"] = {key: str(value) for key, value in attributes.items()}

        try:
            data, _ = await self._call("CreateQueue", payload)
        except QueueServiceError as e:
            if e.code not in QUEUE_EXISTS_CODES:
                raise
            # Duplicate name: keep the existing queue
            logger.info(
                "Queue already exists, using existing queue",
                queue_name=name,
                error_code=e.code
            )
            return QueueDescriptor(name=name, url=await self.get_queue_url(name))

        descriptor = QueueDescriptor(name=name, url=data["QueueUrl"])
        logger.info("Queue created", queue_name=name, queue_url=descriptor.url)
        return descriptor

    async def list_queues(
        self,
        name_prefix: Optional[str] = None,
        page_size: Optional[int] = None
    ) -> List[QueueDescriptor]:
        """
        List queues, optionally filtered by name prefix.

        Args:
            name_prefix: Only return queues whose name starts with this
            page_size: Request pages of this size and follow NextToken

        Returns:
            Descriptors in service order; empty list when nothing matches
        """
        payload: Dict[str, Any] = {}
        if name_prefix:
            payload["QueueNamePrefix"] = name_prefix
        if page_size:
            payload["MaxResults"] = page_size

        queues: List[QueueDescriptor] = []
        while True:
            data, _ = await self._call("ListQueues", payload)
            queues.extend(QueueDescriptor.from_url(url) for url in data.get("QueueUrls") or [])
            next_token = data.get("NextToken")
            if not next_token:
                break
            payload = {**payload, "NextToken": next_token}

        logger.debug("Queues listed", name_prefix=name_prefix, count=len(queues))
        return queues

    async def find_queue(self, name: str) -> QueueDescriptor:
        """
        Look up a queue by exact name.

        Raises:
            QueueNotFoundError: If no queue has this name
            AmbiguousQueueError: If the service lists more than one
        """
        matches = [queue for queue in await self.list_queues(name) if queue.name == name]
        if not matches:
            raise QueueNotFoundError(f"Queue '{name}' does not exist", code="QueueDoesNotExist")
        if len(matches) > 1:
            raise AmbiguousQueueError(
                f"Queue name '{name}' matched {len(matches)} queues: "
                f"{', '.join(queue.url for queue in matches)}"
            )
        return matches[0]

    async def get_queue_url(self, name: str) -> str:
        """
        Resolve a queue name to its url.

        Raises:
            QueueNotFoundError: If no queue has this name
        """
        if not name or not isinstance(name, str):
            raise InvalidPayloadError("name must be a non-empty string", code="MissingParameter")

        data, _ = await self._call("GetQueueUrl", {"QueueName": name})
        return data["QueueUrl"]

    async def purge_queue(self, queue_url: str) -> ResponseMetadata:
        """
        Delete every message in a queue.

        The service purges asynchronously: a receive issued right after
        may still see messages.
        """
        self._require_url(queue_url)
        _, metadata = await self._call("PurgeQueue", {"QueueUrl": queue_url})
        logger.info("Queue purge requested", queue_url=queue_url)
        return metadata

    async def delete_queue(self, queue_url: str) -> ResponseMetadata:
        """
        Delete a queue.

        Raises:
            QueueNotFoundError: If the queue does not exist
        """
        self._require_url(queue_url)
        _, metadata = await self._call(
            "DeleteQueue",
            {"QueueUrl": queue_url},
            idempotent=False
        )
        logger.info("Queue deleted", queue_url=queue_url)
        return metadata

    # Message operations

    async def send_message(
        self,
        queue_url: str,
        body: Optional[str],
        delay_seconds: int = 0
    ) -> SendMessageResult:
        """
        Send one message.

        Args:
            queue_url: Target queue url
            body: Message body; must be a non-empty string
            delay_seconds: Seconds before the message becomes visible (0-900)

        Returns:
            Message id and the verified body digest

        Raises:
            InvalidPayloadError: If body or delay is invalid
            DigestMismatchError: If the reported digest does not match body
        """
        self._require_url(queue_url)
        if body is None or not isinstance(body, str) or not body:
            raise InvalidPayloadError("body must be a non-empty string", code="MissingParameter")
        self._require_delay(delay_seconds)

        payload: Dict[str, Any] = {"QueueUrl": queue_url, "MessageBody": body}
        if delay_seconds:
            payload["DelaySeconds"] = delay_seconds

        data, metadata = await self._call("SendMessage", payload, idempotent=False)
        verify_digest(body, data.get("MD5OfMessageBody"), "sent message body")

        result = SendMessageResult(
            message_id=data["MessageId"],
            md5_of_message_body=data["MD5OfMessageBody"],
            response=metadata
        )
        logger.info(
            "Message sent",
            queue_url=queue_url,
            message_id=result.message_id,
            delay_seconds=delay_seconds
        )
        return result

    async def send_message_batch(
        self,
        queue_url: str,
        entries: Iterable[Union[BatchEntry, Mapping[str, Any]]]
    ) -> SendMessageBatchResult:
        """
        Send up to ten messages in one request.

        Entries fail individually: the result lists successful and
        failed entries side by side instead of raising for partial
        failure.

        Raises:
            InvalidPayloadError: If the batch is empty, too large, has
                duplicate ids or an invalid entry
            DigestMismatchError: If a successful entry's digest is wrong
        """
        self._require_url(queue_url)
        try:
            batch = [
                entry if isinstance(entry, BatchEntry) else BatchEntry.model_validate(entry)
                for entry in list(entries or [])
            ]
            validate_batch_size(batch, MAX_BATCH_ENTRIES)
        except ValueError as e:
            raise InvalidPayloadError(str(e), code="InvalidParameterValue") from e

        duplicates = duplicate_ids(entry.id for entry in batch)
        if duplicates:
            raise InvalidPayloadError(
                f"batch entry ids must be distinct: {', '.join(duplicates)}",
                code="BatchEntryIdsNotDistinct"
            )

        data, metadata = await self._call(
            "SendMessageBatch",
            {"QueueUrl": queue_url, "Entries": [entry.to_wire() for entry in batch]},
            idempotent=False
        )
        result = SendMessageBatchResult.model_validate(data)
        result.response = metadata

        bodies = {entry.id: entry.body for entry in batch}
        reported = [entry.id for entry in result.successful] + [entry.id for entry in result.failed]
        if sorted(reported) != sorted(bodies):
            raise QueueServiceError(
                f"SendMessageBatch reported ids {sorted(reported)}, submitted {sorted(bodies)}",
                code="InvalidResponse",
                status_code=metadata.http_status_code
            )
        for sent in result.successful:
            verify_digest(bodies[sent.id], sent.md5_of_message_body, f"batch entry '{sent.id}'")

        if result.failed:
            logger.warning(
                "Batch send partially failed",
                queue_url=queue_url,
                failed_ids=[entry.id for entry in result.failed],
                error_codes=[entry.code for entry in result.failed]
            )
        logger.info(
            "Message batch sent",
            queue_url=queue_url,
            successful=len(result.successful),
            failed=len(result.failed)
        )
        return result

    async def receive_message(
        self,
        queue_url: str,
        max_messages: int = 1,
        wait_time_seconds: int = 0,
        visibility_timeout: Optional[int] = None
    ) -> List[Message]:
        """
        Receive up to ``max_messages`` messages.

        Args:
            queue_url: Source queue url
            max_messages: 1-10
            wait_time_seconds: Long-poll duration (0-20)
            visibility_timeout: Optional per-receive visibility timeout

        Returns:
            Received messages; an empty list when none are available

        Raises:
            DigestMismatchError: If any message body fails its digest check
        """
        self._require_url(queue_url)
        if not isinstance(max_messages, int) or not 1 <= max_messages <= MAX_RECEIVE_MESSAGES:
            raise InvalidPayloadError(
                f"max_messages must be between 1 and {MAX_RECEIVE_MESSAGES}",
                code="InvalidParameterValue"
            )
        if not isinstance(wait_time_seconds, int) or not 0 <= wait_time_seconds <= MAX_WAIT_TIME_SECONDS:
            raise InvalidPayloadError(
                f"wait_time_seconds must be between 0 and {MAX_WAIT_TIME_SECONDS}",
                code="InvalidParameterValue"
            )

        payload: Dict[str, Any] = {"QueueUrl": queue_url, "MaxNumberOfMessages": max_messages}
        if wait_time_seconds:
            payload["WaitTimeSeconds"] = wait_time_seconds
        if visibility_timeout is not None:
            payload["VisibilityTimeout"] = visibility_timeout

        data, _ = await self._call(
            "ReceiveMessage",
            payload,
            timeout=self.timeout_seconds + wait_time_seconds
        )
        messages = [Message.model_validate(raw) for raw in data.get("Messages") or []]
        for message in messages:
            verify_digest(message.body, message.md5_of_body, f"received message '{message.message_id}'")

        logger.debug("Messages received", queue_url=queue_url, count=len(messages))
        return messages

    async def delete_message(self, queue_url: str, receipt_handle: str) -> ResponseMetadata:
        """
        Delete a received message by its receipt handle.

        Raises:
            InvalidReceiptError: If the handle is unknown or expired
        """
        self._require_url(queue_url)
        if not receipt_handle or not isinstance(receipt_handle, str):
            raise InvalidReceiptError(
                "receipt_handle must be a non-empty string",
                code="ReceiptHandleIsInvalid"
            )

        _, metadata = await self._call(
            "DeleteMessage",
            {"QueueUrl": queue_url, "ReceiptHandle": receipt_handle},
            idempotent=False
        )
        logger.info("Message deleted", queue_url=queue_url)
        return metadata

    # Transport

    async def _call(
        self,
        action: str,
        payload: Dict[str, Any],
        timeout: Optional[float] = None,
        idempotent: bool = True
    ) -> Tuple[Dict[str, Any], ResponseMetadata]:
        """
        Send one action to the service, retrying transport failures.

        Non-idempotent actions are retried only when the request never
        reached the service.

        Returns:
            Parsed JSON body and response metadata
        """
        if self._http is None:
            raise RuntimeError("SQSClient is not open; use 'async with SQSClient(...)'")

        body = json.dumps(payload).encode("utf-8")
        headers = {
            "Content-Type": JSON_CONTENT_TYPE,
            "X-Amz-Target": TARGET_PREFIX + action,
        }

        async for attempt in service_retrying(
            self.max_attempts,
            self.retry_backoff_seconds,
            self.retry_max_backoff_seconds,
            idempotent
        ):
            with attempt:
                return await self._send_once(action, body, headers, timeout)

    async def _send_once(
        self,
        action: str,
        body: bytes,
        headers: Dict[str, str],
        timeout: Optional[float]
    ) -> Tuple[Dict[str, Any], ResponseMetadata]:
        signed_headers = self._signer.sign(self.endpoint, body, headers)
        request_timeout = httpx.Timeout(timeout, connect=self.timeout_seconds) if timeout else httpx.USE_CLIENT_DEFAULT

        logger.debug("Calling queue service", action=action, service_url=self.endpoint)

        try:
            response = await self._http.post(
                self.endpoint,
                content=body,
                headers=signed_headers,
                timeout=request_timeout
            )

        except (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout) as e:
            logger.warning(
                "Queue service connection failed",
                action=action,
                service_url=self.endpoint,
                error=str(e)
            )
            raise ServiceUnavailableError(
                f"{action} could not connect to {self.endpoint}: {e}",
                code="ServiceUnavailable",
                request_sent=False
            ) from e

        except httpx.TimeoutException as e:
            logger.warning("Queue service call timed out", action=action, service_url=self.endpoint)
            raise ServiceUnavailableError(
                f"{action} timed out calling {self.endpoint}",
                code="RequestTimeout"
            ) from e

        except httpx.TransportError as e:
            logger.warning(
                "Queue service unreachable",
                action=action,
                service_url=self.endpoint,
                error=str(e)
            )
            raise ServiceUnavailableError(
                f"{action} could not reach {self.endpoint}: {e}",
                code="ServiceUnavailable"
            ) from e

        metadata = ResponseMetadata(
            http_status_code=response.status_code,
            request_id=response.headers.get("x-amzn-RequestId")
        )

        if response.is_success:
            try:
                data = response.json() if response.content else {}
            except ValueError as e:
                raise QueueServiceError(
                    f"{action} returned a body that is not JSON: {response.text[:200]}",
                    code="InvalidResponse",
                    status_code=response.status_code
                ) from e
            if not isinstance(data, dict):
                raise QueueServiceError(
                    f"{action} returned JSON that is not an object: {response.text[:200]}",
                    code="InvalidResponse",
                    status_code=response.status_code
                )
            return data, metadata

        error = self._error_from_response(response)
        log = logger.error if isinstance(error, ServiceUnavailableError) else logger.warning
        log(
            "Queue service call failed",
            action=action,
            status_code=response.status_code,
            error_code=error.code,
            error_message=error.message
        )
        raise error

    @staticmethod
    def _error_from_response(response: httpx.Response) -> QueueServiceError:
        code = None
        message = response.text[:500] or f"HTTP {response.status_code}"

        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            raw_type = data.get("__type") or data.get("code") or data.get("Code")
            if raw_type:
                code = str(raw_type).rsplit('#', 1)[-1]
            message = data.get("message") or data.get("Message") or message

        # x-amzn-query-error: "<legacy code>;Sender"
        query_error = response.headers.get("x-amzn-query-error")
        if query_error and code not in _KNOWN_CODES:
            code = query_error.split(';', 1)[0] or code

        return error_for_code(code, message, response.status_code)

    @staticmethod
    def _require_url(queue_url: str) -> None:
        if not queue_url or not isinstance(queue_url, str):
            raise InvalidPayloadError("queue_url must be a non-empty string", code="MissingParameter")

    @staticmethod
    def _require_delay(delay_seconds: int) -> None:
        if not isinstance(delay_seconds, int) or not 0 <= delay_seconds <= MAX_DELAY_SECONDS:
            raise InvalidPayloadError(
                f"delay_seconds must be between 0 and {MAX_DELAY_SECONDS}",
                code="InvalidParameterValue"
            )
