"""
Internal domain API service.

Each internal domain (orders, stock) runs one of these behind three layers:
the private network boundary, signed-request authorization against the
resource policy, and finally the domain handler. Handler failures are not
caught here; they propagate to the service's exception handlers.
"""

import json
from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from shared.authorizer import SignedRequestAuthorizer
from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.domain_handler import DomainDefinition, DomainHandler, utc_now
from shared.logging import CorrelationIdFactory, default_correlation_id
from shared.network import PrivateNetworkMiddleware
from shared.policy import PolicyDocument, build_domain_policy, load_policy_file
from shared.signing import CredentialRegistry, SignatureVerifier
from shared.store import DomainStore, build_store

EXEMPT_PATHS = ("/health", "/metrics")


class InternalDomainService(BaseService):
    """Private create/get API for one domain."""

    def __init__(
        self,
        definition: DomainDefinition,
        port: int,
        config: Optional[ServiceConfig] = None,
        store: Optional[DomainStore] = None,
        registry: Optional[CredentialRegistry] = None,
        policy: Optional[PolicyDocument] = None,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Callable[[], datetime] = utc_now,
        correlation_ids: CorrelationIdFactory = default_correlation_id,
    ):
        config = config or get_config(definition.name, port)
        self.definition = definition
        self.store = store or build_store(
            config.store_backend,
            config.table_name or definition.name,
            config.redis_url,
        )
        self.policy = policy or self._load_policy(config)
        self.verifier = SignatureVerifier(
            registry or CredentialRegistry.from_mapping(config.caller_credentials),
            region=config.region,
            service=config.signing_service,
            max_skew=timedelta(seconds=config.signature_window_seconds),
            clock=clock,
        )

        super().__init__(definition.name, port, config=config, correlation_ids=correlation_ids)

        handler_kwargs = {"clock": clock, "metrics": self.metrics}
        if id_factory is not None:
            handler_kwargs["id_factory"] = id_factory
        self.handler = DomainHandler(definition, self.store, **handler_kwargs)

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.store.close()

        self._setup_domain_routes()

    def _load_policy(self, config: ServiceConfig) -> PolicyDocument:
        if config.policy_file:
            return load_policy_file(config.policy_file)
        return build_domain_policy(
            principal=config.allowed_principal,
            region=config.region,
            account_id=config.account_id,
            api_id=config.rest_api_id,
            stage=config.stage,
            resource=self.definition.resource,
        )

    def _setup_authorization(self):
        self.app.add_middleware(
            SignedRequestAuthorizer,
            verifier=self.verifier,
            policy=self.policy,
            api_id=self.config.rest_api_id,
            exempt_paths=EXEMPT_PATHS,
            metrics=self.metrics,
        )

    def _setup_network_boundary(self):
        self.app.add_middleware(
            PrivateNetworkMiddleware,
            allowed_networks=self.config.private_network_cidrs,
            metrics=self.metrics,
        )

    def _setup_domain_routes(self):
        """Set up the create/get routes under the stage prefix."""
        collection = f"/{self.config.stage}/{self.definition.resource}"

        @self.app.post(collection, status_code=201)
        async def create_item(request: Request):
            """Create an entity from the JSON body."""
            body = await request.body()
            payload = json.loads(body) if body else None
            item = await self.handler.create(payload)
            return JSONResponse(status_code=201, content=item)

        @self.app.get(collection + "/{item_id}")
        async def get_item(item_id: str):
            """Fetch the external projection of one entity."""
            item = await self.handler.get(item_id)
            return JSONResponse(status_code=200, content=item)

    async def _check_dependencies(self):
        return {"store": type(self.store).__name__}
