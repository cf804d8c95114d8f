"""
Per-tenant feature snapshot cache.

A snapshot holds what the resolution engine needs about one tenant: its
edition id and its explicit overrides. The cache is keyed by tenant id.

The engine itself only issues point evictions (remove). Population and
expiry belong to the backends:
- InMemoryTenantFeatureCache: process-local dict, no expiry
- RedisTenantFeatureCache: JSON values with a fixed TTL, shared across processes

Every remove() bumps a per-tenant generation. A reader takes the generation
before loading a snapshot from the database and passes it to set(); the
snapshot is only stored if no eviction happened in between, so a load that
raced with a committed write can never be cached.

Usage:
    from tenantfeatures.cache import build_cache

    cache = build_cache(settings)
    cache.remove(tenant_id)
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import redis

from tenantfeatures.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class TenantFeatureSnapshot:
    """Cached feature state of one tenant."""

    tenant_id: int
    edition_id: Optional[int]
    overrides: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "edition_id": self.edition_id,
            "overrides": self.overrides,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TenantFeatureSnapshot:
        return cls(
            tenant_id=int(data["tenant_id"]),
            edition_id=data.get("edition_id"),
            overrides=dict(data.get("overrides") or {}),
        )


class TenantFeatureCache(Protocol):
    def get(self, tenant_id: int) -> Optional[TenantFeatureSnapshot]: ...

    def generation(self, tenant_id: int) -> int: ...

    def set(self, snapshot: TenantFeatureSnapshot, generation: Optional[int] = None) -> None: ...

    def remove(self, tenant_id: int) -> None: ...


class InMemoryTenantFeatureCache:
    """Thread-safe process-local cache."""

    def __init__(self) -> None:
        self._items: dict[int, TenantFeatureSnapshot] = {}
        self._generations: dict[int, int] = {}
        self._lock = threading.Lock()

    def get(self, tenant_id: int) -> Optional[TenantFeatureSnapshot]:
        with self._lock:
            return self._items.get(tenant_id)

    def generation(self, tenant_id: int) -> int:
        with self._lock:
            return self._generations.get(tenant_id, 0)

    def set(self, snapshot: TenantFeatureSnapshot, generation: Optional[int] = None) -> None:
        """Store the snapshot, unless it was loaded before the latest eviction."""
        with self._lock:
            if generation is not None and generation != self._generations.get(snapshot.tenant_id, 0):
                logger.debug("Discarding stale feature snapshot for tenant %s", snapshot.tenant_id)
                return
            self._items[snapshot.tenant_id] = snapshot

    def remove(self, tenant_id: int) -> None:
        with self._lock:
            self._items.pop(tenant_id, None)
            self._generations[tenant_id] = self._generations.get(tenant_id, 0) + 1

    def __contains__(self, tenant_id: object) -> bool:
        with self._lock:
            return tenant_id in self._items


class RedisTenantFeatureCache:
    """
    Redis-backed cache shared by every process of the application.

    Snapshots are stored as JSON under "<prefix>:<tenant_id>" with a TTL; the
    eviction generation lives under "<prefix>:<tenant_id>:generation". A
    conditional set WATCHes the generation key, so an eviction from any
    process between load and store aborts the store.
    Connection errors propagate; callers decide whether a cache outage is fatal.
    """

    def __init__(self, client: redis.Redis, prefix: str = "tenant-features", ttl_seconds: int = 300):
        self.client = client
        self.prefix = prefix
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, redis_url: str, prefix: str = "tenant-features", ttl_seconds: int = 300) -> RedisTenantFeatureCache:
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client, prefix=prefix, ttl_seconds=ttl_seconds)

    def _key(self, tenant_id: int) -> str:
        return f"{self.prefix}:{tenant_id}"

    def _generation_key(self, tenant_id: int) -> str:
        return f"{self.prefix}:{tenant_id}:generation"

    def get(self, tenant_id: int) -> Optional[TenantFeatureSnapshot]:
        cached = self.client.get(self._key(tenant_id))
        if not cached:
            return None
        return TenantFeatureSnapshot.from_dict(json.loads(cached))

    def generation(self, tenant_id: int) -> int:
        return int(self.client.get(self._generation_key(tenant_id)) or 0)

    def set(self, snapshot: TenantFeatureSnapshot, generation: Optional[int] = None) -> None:
        """Store the snapshot, unless it was loaded before the latest eviction."""
        key = self._key(snapshot.tenant_id)
        payload = json.dumps(snapshot.to_dict())
        if generation is None:
            self.client.setex(key, self.ttl_seconds, payload)
            return

        generation_key = self._generation_key(snapshot.tenant_id)
        with self.client.pipeline() as pipe:
            try:
                pipe.watch(generation_key)
                if int(pipe.get(generation_key) or 0) != generation:
                    logger.debug("Discarding stale feature snapshot for tenant %s", snapshot.tenant_id)
                    return
                pipe.multi()
                pipe.setex(key, self.ttl_seconds, payload)
                pipe.execute()
            except redis.WatchError:
                logger.debug("Tenant %s evicted while caching its snapshot", snapshot.tenant_id)

    def remove(self, tenant_id: int) -> None:
        pipe = self.client.pipeline(transaction=True)
        pipe.incr(self._generation_key(tenant_id), 1)
        pipe.delete(self._key(tenant_id))
        pipe.execute()


def build_cache(config: Settings) -> TenantFeatureCache:
    """Create the cache backend selected by settings."""
    if config.cache_backend == "redis":
        if not config.redis_url:
            raise ValueError("redis_url must be set when cache_backend is 'redis'")
        logger.info("Using Redis tenant feature cache (prefix=%s)", config.cache_key_prefix)
        return RedisTenantFeatureCache.from_url(
            config.redis_url,
            prefix=config.cache_key_prefix,
            ttl_seconds=config.cache_ttl_seconds,
        )
    return InMemoryTenantFeatureCache()
