"""
Create/get operations over a domain store.

Handlers raise on invalid input and missing entities; they never build an
error response themselves. The hosting service decides how each failure
is reported.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from shared.boundaries import propagate_failures
from shared.errors import NotFoundError, ValidationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.store import DomainStore


@dataclass(frozen=True)
class DomainDefinition:
    """Shape of one domain's entities."""
    name: str
    resource: str
    entity_type: str
    entity_label: str
    required_fields: Tuple[str, ...]
    projection_fields: Tuple[str, ...]

    @property
    def create_operation(self) -> str:
        return f"create-{self.entity_label.replace(' ', '-')}.handler"

    @property
    def get_operation(self) -> str:
        return f"get-{self.entity_label.replace(' ', '-')}.handler"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CreationClock:
    """Clock whose readings never go backwards within one process."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock
        self._last: Optional[datetime] = None

    def __call__(self) -> datetime:
        now = self.clock()
        if self._last is not None and now < self._last:
            now = self._last
        self._last = now
        return now


class DomainHandler:
    """Internal create/get for one domain."""

    def __init__(
        self,
        definition: DomainDefinition,
        store: DomainStore,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        clock: Callable[[], datetime] = utc_now,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.definition = definition
        self.store = store
        self.id_factory = id_factory
        self.clock = CreationClock(clock)
        self.metrics = metrics
        self.logger = get_logger(f"{definition.name}.handler")

        self.create = propagate_failures(definition.create_operation)(self._create)
        self.get = propagate_failures(definition.get_operation)(self._get)

    async def _create(self, payload: Any) -> Dict[str, Any]:
        label = self.definition.entity_label
        if not payload or not isinstance(payload, dict):
            self._record("create", "invalid")
            raise ValidationError(f"no {label} supplied")

        missing = [name for name in self.definition.required_fields if name not in payload]
        if missing:
            self._record("create", "invalid")
            raise ValidationError(f"{label} is missing required fields", details={"missing": missing})

        entity = {
            **payload,
            "id": self.id_factory(),
            "type": self.definition.entity_type,
            "created": format_timestamp(self.clock()),
        }

        self.logger.info(f"create {label}", entity_id=entity["id"])
        await self.store.put(entity)
        self._record("create", "created")

        return entity

    async def _get(self, item_id: Optional[str]) -> Dict[str, Any]:
        label = self.definition.entity_label
        if not item_id:
            self._record("get", "invalid")
            raise ValidationError(f"no {label} id supplied")

        item = await self.store.get(item_id)
        if item is None:
            self._record("get", "not_found")
            raise NotFoundError(f"{label} id {item_id} is not found")

        self._record("get", "found")
        return {name: item.get(name) for name in self.definition.projection_fields}

    def _record(self, operation: str, outcome: str):
        if self.metrics:
            self.metrics.record_domain_operation(operation, outcome)
