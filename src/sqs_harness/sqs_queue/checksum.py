"""
Module: checksum.py
Description: Message body digests.

The service reports an MD5 of every body it accepts or delivers; these
helpers compute the same digest locally and compare. The digest is a
transmission check, not a security primitive.

Author: Queue Harness Team
"""

from hashlib import md5
from typing import Optional

from sqs_harness.sqs_queue.exceptions import DigestMismatchError


def body_digest(body: str) -> str:
    """Lowercase hex MD5 over the UTF-8 bytes of a message body."""
    return md5(body.encode("utf-8")).hexdigest()


def digest_matches(body: str, reported: Optional[str]) -> bool:
    if not reported:
        return False
    return body_digest(body) == reported.lower()


def verify_digest(body: str, reported: Optional[str], context: str = "message body") -> str:
    """
    Check a service-reported digest against the body.

    Args:
        body: Exact body that was sent or received
        reported: Digest field from the service response
        context: Short description used in the error message

    Returns:
        The locally computed digest

    Raises:
        DigestMismatchError: If the digests differ or none was reported
    """
    expected = body_digest(body)
    if not digest_matches(body, reported):
        raise DigestMismatchError(expected, reported, context)
    return expected
