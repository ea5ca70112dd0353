"""
Public API Gateway service for the Relay Access Layer.
"""

from typing import Dict, Optional, Tuple

import httpx
from fastapi import Request, Response

from shared.base_service import BaseService
from shared.boundaries import BoundaryResponse
from shared.config import ServiceConfig, get_config
from shared.logging import CorrelationIdFactory, default_correlation_id
from shared.secrets_manager import load_signing_credentials
from shared.signing import RequestSigner

from .adapters.internal_client import InternalApiClient
from .models import ORDERS_TARGET, RELAY_TARGETS, STOCK_TARGET, RelayTarget
from .relay import RelayHandler, RelayOperation

GATEWAY_PORT = 8000


class GatewayService(BaseService):
    """Public create/get endpoints relayed to the internal domain APIs."""

    # Caller-supplied correlation ids are never trusted at the public edge.
    adopt_inbound_correlation_id = False

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        signer: Optional[RequestSigner] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        correlation_ids: CorrelationIdFactory = default_correlation_id,
    ):
        config = config or get_config("gateway", GATEWAY_PORT)
        super().__init__("gateway", GATEWAY_PORT, config=config, correlation_ids=correlation_ids)

        self.signer = signer or RequestSigner(
            load_signing_credentials(self.config),
            region=self.config.region,
            service=self.config.signing_service,
        )
        self.http_client = http_client or httpx.AsyncClient(timeout=self.config.relay_timeout_seconds)
        self.internal_client = InternalApiClient(self.http_client)
        self.relays: Dict[Tuple[str, RelayOperation], RelayHandler] = {}

        for target in RELAY_TARGETS:
            for operation in RelayOperation:
                self.relays[(target.domain, operation)] = RelayHandler(
                    target,
                    operation,
                    base_url=self._base_url(target),
                    signer=self.signer,
                    client=self.internal_client,
                    consumer_id=self.config.consumer_id,
                    correlation_ids=self.correlation_ids,
                    metrics=self.metrics,
                )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.http_client.aclose()

        self._setup_gateway_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    def _base_url(self, target: RelayTarget) -> str:
        if target.domain == ORDERS_TARGET.domain:
            return self.config.orders_api_url
        return self.config.stock_api_url

    def relay(self, target: RelayTarget, operation: RelayOperation) -> RelayHandler:
        return self.relays[(target.domain, operation)]

    @staticmethod
    def _to_response(result: BoundaryResponse) -> Response:
        headers = dict(result.headers)
        media_type = headers.pop("content-type", "text/plain")
        return Response(
            content=result.body,
            status_code=result.status_code,
            headers=headers,
            media_type=media_type,
        )

    def _setup_gateway_routes(self):
        """Set up the public relay routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "gateway",
                "message": "Relay Access Layer - API Gateway",
                "version": "1.0.0",
                "domains": [target.domain for target in RELAY_TARGETS]
            }

        @self.app.post("/stock", name="create_stock_item")
        async def create_stock_item(request: Request):
            """Create a stock item through the internal stock API."""
            body = await request.body()
            result = await self.relay(STOCK_TARGET, RelayOperation.CREATE).handle(body=body)
            return self._to_response(result)

        @self.app.get("/stock/{item_id}", name="get_stock_item")
        async def get_stock_item(item_id: str):
            """Fetch a stock item through the internal stock API."""
            result = await self.relay(STOCK_TARGET, RelayOperation.GET).handle(path_params={"id": item_id})
            return self._to_response(result)

        @self.app.post("/orders", name="create_order")
        async def create_order(request: Request):
            """Create an order through the internal orders API."""
            body = await request.body()
            result = await self.relay(ORDERS_TARGET, RelayOperation.CREATE).handle(body=body)
            return self._to_response(result)

        @self.app.get("/orders/{item_id}", name="get_order")
        async def get_order(item_id: str):
            """Fetch an order through the internal orders API."""
            result = await self.relay(ORDERS_TARGET, RelayOperation.GET).handle(path_params={"id": item_id})
            return self._to_response(result)

    async def _check_dependencies(self):
        return {
            "signing": "configured" if self.signer.credentials else "missing",
            "orders_api": self.config.orders_api_url,
            "stock_api": self.config.stock_api_url,
        }


def create_app():
    """Create FastAPI application."""
    service = GatewayService()
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
