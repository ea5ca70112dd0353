"""
Internal Stock service for the Relay Access Layer.
"""

from shared.domain_service import InternalDomainService

from .models import STOCK

STOCK_PORT = 8022


class StockService(InternalDomainService):
    """Internal stock API."""

    def __init__(self, **kwargs):
        super().__init__(STOCK, STOCK_PORT, **kwargs)


def create_app():
    """Create FastAPI application."""
    service = StockService()
    return service.app


if __name__ == "__main__":
    service = StockService()
    service.run()
