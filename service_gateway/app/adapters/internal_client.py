"""
Client for the private internal domain APIs.
"""

from typing import Any

import httpx

from shared.errors import ServiceError, TransportError, UpstreamStatusError
from shared.logging import get_logger
from shared.signing import SignedRequest


class InternalApiClient:
    """Sends signed envelopes over the private network and reads the result.

    Exactly one attempt per call; there is no retry or circuit breaking.
    """

    def __init__(self, http_client: httpx.AsyncClient):
        self.http_client = http_client
        self.logger = get_logger("gateway.internal_client")

    async def send(self, signed: SignedRequest, target: str) -> Any:
        """Send one signed request and return the decoded JSON body."""
        try:
            response = await self.http_client.request(
                signed.method,
                signed.url,
                content=signed.body,
                headers=signed.headers,
            )
        except httpx.HTTPError as e:
            self.logger.error("Internal API transport error", target=target, error=str(e))
            raise TransportError(target, details={"error": type(e).__name__})

        if not response.is_success:
            self.logger.error(
                "Internal API returned an error status",
                target=target,
                status_code=response.status_code
            )
            raise UpstreamStatusError(target, response.status_code)

        try:
            return response.json()
        except ValueError:
            self.logger.error("Internal API response is not JSON", target=target)
            raise ServiceError(f"{target}: unparseable response")
