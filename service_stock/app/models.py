"""
Stock item domain definition.
"""

from shared.domain_handler import DomainDefinition

# Stock items never carry a storeId externally.
STOCK_ITEM_FIELDS = ("id", "quantity", "productId", "created", "type")

STOCK = DomainDefinition(
    name="stock",
    resource="stock",
    entity_type="Stock",
    entity_label="stock item",
    required_fields=("productId", "quantity"),
    projection_fields=STOCK_ITEM_FIELDS,
)
