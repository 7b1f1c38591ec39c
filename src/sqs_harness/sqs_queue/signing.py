"""
Module: signing.py
Description: SigV4 signing for queue service requests.

Local emulators accept any credentials, but requests are still signed
so the same client works against services that check them. botocore's
signer does the work; the signed headers are copied onto the httpx
request.
"""

from typing import Dict

from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

SERVICE_NAME = "sqs"


class RequestSigner:
    """Signs JSON-protocol POST requests with static credentials."""

    def __init__(self, access_key_id: str, secret_access_key: str, region: str):
        if not region or not isinstance(region, str):
            raise ValueError("region must be a non-empty string")

        self.region = region
        self._auth = SigV4Auth(
            Credentials(access_key_id, secret_access_key),
            SERVICE_NAME,
            region
        )

    def sign(self, url: str, body: bytes, headers: Dict[str, str]) -> Dict[str, str]:
        """
        Return ``headers`` plus the SigV4 Authorization and X-Amz-Date headers.

        Args:
            url: Full request url
            body: Exact request body bytes
            headers: Headers to be sent and signed
        """
        request = AWSRequest(method="POST", url=url, data=body, headers=dict(headers))
        self._auth.add_auth(request)
        return dict(request.headers.items())
