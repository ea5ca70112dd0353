"""
Gateway relay handler.

One handler per (domain, operation). Each invocation moves through
VALIDATING -> SIGNING -> SENDING -> RESPONDING; a failure in any state ends
the invocation in FAILED with the masked response. Nothing is retried.
"""

import json
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from shared.base_service import CORRELATION_HEADER
from shared.boundaries import BoundaryResponse, masked_boundary
from shared.errors import ValidationError
from shared.logging import CorrelationIdFactory, default_correlation_id, get_logger, get_request_id, set_request_id
from shared.metrics import MetricsCollector
from shared.signing import RequestSigner

from .adapters.internal_client import InternalApiClient
from .models import RelayTarget

CONSUMER_HEADER = "x-consumer-id"


class RelayOperation(str, Enum):
    CREATE = "create"
    GET = "get"


class RelayState(str, Enum):
    VALIDATING = "validating"
    SIGNING = "signing"
    SENDING = "sending"
    RESPONDING = "responding"
    FAILED = "failed"


class RelayInvocation:
    """State of a single relay invocation. Never shared between calls."""

    def __init__(self, correlation_id: str):
        self.correlation_id = correlation_id
        self.state = RelayState.VALIDATING
        self.history: List[RelayState] = [RelayState.VALIDATING]

    def advance(self, state: RelayState):
        self.state = state
        self.history.append(state)


class RelayHandler:
    """Relays one public operation to its internal domain API."""

    def __init__(
        self,
        target: RelayTarget,
        operation: RelayOperation,
        base_url: str,
        signer: RequestSigner,
        client: InternalApiClient,
        consumer_id: str = "external-rest-api",
        correlation_ids: CorrelationIdFactory = default_correlation_id,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.target = target
        self.operation = operation
        self.base_url = base_url.rstrip("/")
        self.signer = signer
        self.client = client
        self.consumer_id = consumer_id
        self.correlation_ids = correlation_ids
        self.metrics = metrics
        self.name = f"{operation.value}-{target.entity_label.replace(' ', '-')}.handler"
        self.logger = get_logger(f"gateway.relay.{target.domain}")

        self._relay = masked_boundary(self.name)(self._relay_once)

    async def handle(self, body: Optional[bytes] = None,
                     path_params: Optional[Dict[str, str]] = None) -> BoundaryResponse:
        """Run one relay invocation; always returns a response."""
        correlation_id = get_request_id() or set_request_id(factory=self.correlation_ids)
        invocation = RelayInvocation(correlation_id)
        start_time = time.time()

        response = await self._relay(invocation, body, path_params or {})

        failed_in = None
        if invocation.state != RelayState.RESPONDING:
            failed_in = invocation.state
            invocation.advance(RelayState.FAILED)

        self.logger.info(
            "Relay finished",
            handler=self.name,
            status_code=response.status_code,
            failed_in=failed_in.value if failed_in else None,
            states=[state.value for state in invocation.history]
        )
        if self.metrics:
            self.metrics.record_relay(
                domain=self.target.domain,
                operation=self.operation.value,
                outcome="failed" if failed_in else "success",
                duration=time.time() - start_time
            )
            if failed_in == RelayState.SIGNING:
                self.metrics.record_signing_failure(self.target.domain)

        return response

    async def _relay_once(self, invocation: RelayInvocation, body: Optional[bytes],
                          path_params: Dict[str, str]) -> BoundaryResponse:
        self.logger.info(f"{invocation.correlation_id} - {self.name} - started")

        if self.operation == RelayOperation.CREATE:
            method, url, payload = self._build_create(body)
            success_status = 201
        else:
            method, url, payload = self._build_get(path_params)
            success_status = 200

        invocation.advance(RelayState.SIGNING)
        signed = self.signer.sign(method, url, payload, headers={
            CONSUMER_HEADER: self.consumer_id,
            CORRELATION_HEADER: invocation.correlation_id,
        })

        invocation.advance(RelayState.SENDING)
        result = await self.client.send(signed, target=self.target.domain)

        invocation.advance(RelayState.RESPONDING)
        return BoundaryResponse(
            status_code=success_status,
            body=json.dumps(result),
            headers={"content-type": "application/json"},
        )

    def _build_create(self, body: Optional[bytes]) -> Tuple[str, str, bytes]:
        label = self.target.entity_label
        if not body:
            raise ValidationError(f"no {label} supplied")

        item: Any = json.loads(body)
        if not isinstance(item, dict):
            raise ValidationError(f"{label} must be a JSON object")

        payload = {name: item[name] for name in self.target.input_fields if name in item}
        return "POST", self.base_url, json.dumps(payload).encode("utf-8")

    def _build_get(self, path_params: Dict[str, str]) -> Tuple[str, str, bytes]:
        item_id = path_params.get("id")
        if not item_id:
            raise ValidationError(f"no {self.target.entity_label} id supplied")

        return "GET", f"{self.base_url}/{quote(item_id, safe='')}", b""
