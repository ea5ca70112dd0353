"""
Unit tests for the domain create/get handlers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from shared.domain_handler import CreationClock, DomainHandler, format_timestamp
from shared.errors import NotFoundError, ServiceError, ValidationError
from shared.metrics import MetricsCollector
from shared.store import InMemoryDomainStore
from shared.test_helpers import FixedClock, sample_order, sample_stock_item, sequential_ids
from service_orders.app.models import ORDERS
from service_stock.app.models import STOCK


class TestFormatting:
    """Test cases for timestamp helpers."""

    def test_format_timestamp_uses_milliseconds_and_z(self):
        """Test the creation timestamp format."""
        moment = datetime(2024, 3, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(moment) == "2024-03-01T12:00:00.123Z"

    def test_format_timestamp_converts_to_utc(self):
        """Test non-UTC moments are converted."""
        moment = datetime(2024, 3, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(moment) == "2024-03-01T12:00:00.000Z"

    def test_creation_clock_never_goes_backwards(self):
        """Test a clock stepping back yields the last reading."""
        clock = FixedClock()
        creation = CreationClock(clock)
        first = creation()
        clock.advance(seconds=-30)
        assert creation() == first
        clock.advance(seconds=60)
        assert creation() > first


class TestDomainHandler:
    """Test cases for DomainHandler."""

    @pytest.fixture
    def store(self):
        return InMemoryDomainStore("stock")

    @pytest.fixture
    def handler(self, store):
        return DomainHandler(STOCK, store, id_factory=sequential_ids("stock"), clock=FixedClock())

    @pytest.mark.asyncio
    async def test_create_assigns_id_type_and_created(self, handler, store):
        """Test create stamps the generated fields and persists the entity."""
        item = await handler.create(sample_stock_item())

        assert item == {
            "productId": "prod-001",
            "quantity": 25,
            "id": "stock-1",
            "type": "Stock",
            "created": "2024-03-01T12:00:00.000Z",
        }
        assert await store.get("stock-1") == item

    @pytest.mark.asyncio
    async def test_create_ignores_client_supplied_identity(self, handler):
        """Test clients cannot choose id, type or created."""
        item = await handler.create(sample_stock_item(id="mine", type="Other", created="yesterday"))

        assert item["id"] == "stock-1"
        assert item["type"] == "Stock"
        assert item["created"] == "2024-03-01T12:00:00.000Z"

    @pytest.mark.asyncio
    async def test_create_generates_unique_ids(self, store):
        """Test the default id factory gives distinct ids."""
        handler = DomainHandler(STOCK, store, clock=FixedClock())
        first = await handler.create(sample_stock_item())
        second = await handler.create(sample_stock_item())
        assert first["id"] != second["id"]
        assert len(store) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [None, {}, [], "text"])
    async def test_create_without_payload_fails(self, handler, store, payload):
        """Test absent or non-object input is rejected."""
        with pytest.raises(ValidationError):
            await handler.create(payload)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_create_missing_required_field_fails(self, handler, store):
        """Test required fields are enforced."""
        with pytest.raises(ValidationError) as exc_info:
            await handler.create({"quantity": 5})

        assert exc_info.value.details == {"missing": ["productId"]}
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_orders_require_store_id(self):
        """Test orders need a storeId."""
        handler = DomainHandler(ORDERS, InMemoryDomainStore("orders"), clock=FixedClock())
        with pytest.raises(ValidationError):
            await handler.create({"productId": "p", "quantity": 1})

    @pytest.mark.asyncio
    async def test_get_returns_projection(self, store):
        """Test get returns only the projected fields."""
        handler = DomainHandler(ORDERS, store, id_factory=sequential_ids("order"), clock=FixedClock())
        await handler.create(sample_order(note="internal only"))

        item = await handler.get("order-1")

        assert item == {
            "id": "order-1",
            "quantity": 2,
            "productId": "prod-001",
            "storeId": "store-42",
            "created": "2024-03-01T12:00:00.000Z",
            "type": "Orders",
        }

    @pytest.mark.asyncio
    async def test_get_unknown_id_raises_not_found(self, handler):
        """Test a missing entity is reported as not found."""
        with pytest.raises(NotFoundError) as exc_info:
            await handler.get("nope")
        assert exc_info.value.message == "stock item id nope is not found"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("item_id", [None, ""])
    async def test_get_without_id_fails(self, handler, item_id):
        """Test an absent id is rejected."""
        with pytest.raises(ValidationError):
            await handler.get(item_id)

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, store):
        """Test a failed write reaches the caller unchanged."""
        handler = DomainHandler(STOCK, store, id_factory=lambda: "same", clock=FixedClock())
        await handler.create(sample_stock_item())

        with pytest.raises(ServiceError):
            await handler.create(sample_stock_item())

    @pytest.mark.asyncio
    async def test_operations_are_counted(self, store):
        """Test outcomes are recorded in the metrics."""
        metrics = MetricsCollector("stock")
        handler = DomainHandler(STOCK, store, id_factory=sequential_ids(), clock=FixedClock(), metrics=metrics)

        await handler.create(sample_stock_item())
        with pytest.raises(NotFoundError):
            await handler.get("missing")

        registry = metrics.registry
        assert registry.get_sample_value(
            "domain_operations_total", {"operation": "create", "outcome": "created"}
        ) == 1
        assert registry.get_sample_value(
            "domain_operations_total", {"operation": "get", "outcome": "not_found"}
        ) == 1
