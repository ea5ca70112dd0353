"""
Order domain definition.
"""

from shared.domain_handler import DomainDefinition

ORDER_FIELDS = ("id", "quantity", "productId", "storeId", "created", "type")

ORDERS = DomainDefinition(
    name="orders",
    resource="orders",
    entity_type="Orders",
    entity_label="order",
    required_fields=("productId", "quantity", "storeId"),
    projection_fields=ORDER_FIELDS,
)
