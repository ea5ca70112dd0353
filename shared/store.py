"""
Key-value persistence for domain entities.

Entities are written once and read back by id; there is no update or
delete path. Both backends make `put` atomic per key and refuse to
overwrite an existing id.
"""

import json
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import ServiceError
from shared.logging import get_logger


class DomainStore:
    """Interface for entity stores."""

    async def put(self, item: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def get(self, item_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class InMemoryDomainStore(DomainStore):
    """Process-local store, used for local runs and tests."""

    def __init__(self, table_name: str = "local"):
        self.table_name = table_name
        self._items: Dict[str, Dict[str, Any]] = {}

    async def put(self, item: Dict[str, Any]) -> None:
        item_id = item["id"]
        if item_id in self._items:
            raise ServiceError("Item already exists", details={"id": item_id})
        self._items[item_id] = dict(item)

    async def get(self, item_id: str) -> Optional[Dict[str, Any]]:
        item = self._items.get(item_id)
        return dict(item) if item is not None else None

    def __len__(self) -> int:
        return len(self._items)


class RedisDomainStore(DomainStore):
    """Redis-backed store; one JSON document per key."""

    def __init__(self, redis_url: str, table_name: str, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.table_name = table_name
        self.logger = get_logger("store.redis")
        self.redis: Optional[redis.Redis] = client

    def _client(self) -> redis.Redis:
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30
            )
        return self.redis

    def _key(self, item_id: str) -> str:
        return f"{self.table_name}:{item_id}"

    async def put(self, item: Dict[str, Any]) -> None:
        try:
            created = await self._client().set(self._key(item["id"]), json.dumps(item), nx=True)
        except RedisError as e:
            self.logger.error("Error writing item", table=self.table_name, error=str(e))
            raise ServiceError("Store write failed", details={"table": self.table_name})

        if not created:
            raise ServiceError("Item already exists", details={"id": item["id"]})

    async def get(self, item_id: str) -> Optional[Dict[str, Any]]:
        try:
            data = await self._client().get(self._key(item_id))
        except RedisError as e:
            self.logger.error("Error reading item", table=self.table_name, error=str(e))
            raise ServiceError("Store read failed", details={"table": self.table_name})

        if data is None:
            return None
        return json.loads(data)

    async def close(self) -> None:
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis store closed")


def build_store(backend: str, table_name: str, redis_url: str) -> DomainStore:
    """Create the configured store backend."""
    if backend == "memory":
        return InMemoryDomainStore(table_name)
    if backend == "redis":
        return RedisDomainStore(redis_url, table_name)
    raise ValueError(f"Unknown store backend: {backend}")
