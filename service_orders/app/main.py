"""
Internal Orders service for the Relay Access Layer.
"""

from shared.domain_service import InternalDomainService

from .models import ORDERS

ORDERS_PORT = 8021


class OrdersService(InternalDomainService):
    """Internal orders API."""

    def __init__(self, **kwargs):
        super().__init__(ORDERS, ORDERS_PORT, **kwargs)


def create_app():
    """Create FastAPI application."""
    service = OrdersService()
    return service.app


if __name__ == "__main__":
    service = OrdersService()
    service.run()
