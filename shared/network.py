"""
Private network boundary for internal services.

Internal APIs must only be reachable from inside the designated private
network. The check looks at the transport peer address only; headers such as
X-Forwarded-For are never consulted and no request content is read before
the decision. It runs outermost, so it still holds if signing or policy
evaluation were bypassed.
"""

import ipaddress
from typing import Iterable, List, Optional, Union

from shared.logging import get_logger
from shared.metrics import MetricsCollector

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def parse_networks(cidrs: Iterable[str]) -> List[IPNetwork]:
    return [ipaddress.ip_network(cidr, strict=False) for cidr in cidrs]


def is_private_origin(host: Optional[str], networks: List[IPNetwork]) -> bool:
    """True when the peer address falls inside one of the networks."""
    if not host:
        return False
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return any(address in network for network in networks)


class PrivateNetworkMiddleware:
    """ASGI middleware refusing connections from outside the private network."""

    def __init__(self, app, allowed_networks: Iterable[str], metrics: Optional[MetricsCollector] = None):
        self.app = app
        self.networks = parse_networks(allowed_networks)
        self.metrics = metrics
        self.logger = get_logger("network.boundary")

    async def __call__(self, scope, receive, send):
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        host = client[0] if client else None

        if is_private_origin(host, self.networks):
            await self.app(scope, receive, send)
            return

        self.logger.warning("Connection refused outside private network", peer=host)
        if self.metrics:
            self.metrics.record_network_refusal()

        if scope["type"] == "websocket":
            await send({"type": "websocket.close", "code": 1008})
            return

        await send({
            "type": "http.response.start",
            "status": 403,
            "headers": [(b"content-length", b"0"), (b"connection", b"close")],
        })
        await send({"type": "http.response.body", "body": b""})
