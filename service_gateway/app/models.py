"""
Relay targets: the internal domains the gateway fronts and their input shapes.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class RelayTarget:
    """One internal domain as seen from the public gateway."""
    domain: str
    entity_label: str
    input_fields: Tuple[str, ...]


STOCK_TARGET = RelayTarget(
    domain="stock",
    entity_label="stock item",
    input_fields=("productId", "quantity"),
)

ORDERS_TARGET = RelayTarget(
    domain="orders",
    entity_label="order",
    input_fields=("productId", "quantity", "storeId"),
)

RELAY_TARGETS = (STOCK_TARGET, ORDERS_TARGET)
