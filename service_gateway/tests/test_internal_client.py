"""
Unit tests for the internal API client.
"""

import httpx
import pytest

from service_gateway.app.adapters.internal_client import InternalApiClient
from shared.errors import ServiceError, TransportError, UpstreamStatusError
from shared.test_helpers import make_signer

URL = "https://stock.example.com/prod/stock"


def client_with(handler):
    return InternalApiClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestInternalApiClient:
    """Test cases for InternalApiClient."""

    @pytest.fixture
    def signed(self):
        return make_signer().sign("POST", URL, b'{"productId": "p1", "quantity": 1}', headers={"x-consumer-id": "c"})

    @pytest.mark.asyncio
    async def test_send_transmits_envelope(self, signed):
        """Test the signed method, URL, body and headers go out unchanged."""
        seen = {}

        def handler(request: httpx.Request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = request.content
            seen["headers"] = dict(request.headers)
            return httpx.Response(201, json={"id": "stock-1"})

        result = await client_with(handler).send(signed, target="stock")

        assert result == {"id": "stock-1"}
        assert seen["method"] == "POST"
        assert seen["url"] == URL
        assert seen["body"] == signed.body
        assert seen["headers"]["authorization"] == signed.authorization
        assert seen["headers"]["x-amz-date"] == signed.timestamp
        assert seen["headers"]["x-consumer-id"] == "c"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 403, 404, 500, 503])
    async def test_error_status_raises(self, signed, status):
        """Test non-success statuses are surfaced."""
        client = client_with(lambda request: httpx.Response(status, json={"message": "nope"}))

        with pytest.raises(UpstreamStatusError) as exc_info:
            await client.send(signed, target="stock")

        assert exc_info.value.upstream_status == status

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, signed):
        """Test connection failures are surfaced."""
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError):
            await client_with(handler).send(signed, target="stock")

    @pytest.mark.asyncio
    async def test_timeout_raises_transport_error(self, signed):
        """Test timeouts are surfaced as transport failures."""
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransportError):
            await client_with(handler).send(signed, target="stock")

    @pytest.mark.asyncio
    async def test_unparseable_body_raises(self, signed):
        """Test a non-JSON success body is surfaced."""
        client = client_with(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(ServiceError):
            await client.send(signed, target="stock")
