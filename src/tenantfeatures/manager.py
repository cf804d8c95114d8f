"""
Tenant feature management facades.

TenantFeatureManager is the single entry point for reading and writing
tenant feature values with a caller-provided session. AsyncTenantFeatureManager
exposes the same operations as coroutines for asyncio callers.

Usage:
    with get_session() as db:
        manager = TenantFeatureManager(db, catalog, cache=cache)
        manager.set_feature_value(7, "Chat", "true")
        manager.get_effective_value(7, "Chat")      # "true"

    async_manager = AsyncTenantFeatureManager(get_session_factory(), catalog, cache=cache)
    await async_manager.get_feature_values(7)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import Any, Optional

from sqlalchemy.orm import Session, sessionmaker

from tenantfeatures.cache import TenantFeatureCache
from tenantfeatures.db.models import Tenant
from tenantfeatures.db.session import get_session
from tenantfeatures.events import LifecycleBus
from tenantfeatures.features.catalog import FeatureCatalog
from tenantfeatures.features.editions import EditionDefaultResolver
from tenantfeatures.features.resolution import FeatureValue, FeatureValueResolver
from tenantfeatures.features.writer import FeatureOverrideWriter


class TenantFeatureManager:
    """Resolve, set and reset tenant feature values."""

    def __init__(
        self,
        db: Session,
        catalog: FeatureCatalog,
        editions: Optional[EditionDefaultResolver] = None,
        cache: Optional[TenantFeatureCache] = None,
        bus: Optional[LifecycleBus] = None,
    ):
        self.db = db
        self.resolver = FeatureValueResolver(db, catalog, editions=editions, cache=cache)
        self.writer = FeatureOverrideWriter(db, catalog, editions=editions, cache=cache, bus=bus)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_feature_value_or_none(self, tenant_id: int, name: str) -> Optional[str]:
        return self.resolver.get_value_or_none(tenant_id, name)

    def get_effective_value(self, tenant_id: int, name: str) -> Optional[str]:
        return self.resolver.get_effective_value(tenant_id, name)

    def get_feature_values(self, tenant_id: int) -> list[FeatureValue]:
        return self.resolver.get_all_effective_values(tenant_id)

    # =========================================================================
    # Writes
    # =========================================================================

    def set_feature_value(self, tenant: Tenant | int, name: str, value: str) -> bool:
        """Set one value; an int tenant is loaded first (TenantNotFoundError if missing)."""
        if isinstance(tenant, Tenant):
            return self.writer.set_value(tenant, name, value)
        return self.writer.set_value_for_tenant_id(tenant, name, value)

    def set_feature_values(self, tenant_id: int, values: Optional[Iterable[tuple[str, str]]]) -> int:
        return self.writer.set_values(tenant_id, values)

    def reset_all_features(self, tenant_id: int) -> int:
        return self.writer.reset_all_features(tenant_id)


class AsyncTenantFeatureManager:
    """
    Non-blocking variant of TenantFeatureManager.

    Each call runs in a worker thread with its own session and transaction,
    so results are committed by the time the coroutine returns. Tenant
    entities are passed by id and reloaded in the worker session.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        catalog: FeatureCatalog,
        editions_factory: Optional[Callable[[Session], EditionDefaultResolver]] = None,
        cache: Optional[TenantFeatureCache] = None,
        bus: Optional[LifecycleBus] = None,
    ):
        self.session_factory = session_factory
        self.catalog = catalog
        self.editions_factory = editions_factory
        self.cache = cache
        self.bus = bus

    async def get_feature_value_or_none(self, tenant_id: int, name: str) -> Optional[str]:
        return await self._run("get_feature_value_or_none", tenant_id, name)

    async def get_effective_value(self, tenant_id: int, name: str) -> Optional[str]:
        return await self._run("get_effective_value", tenant_id, name)

    async def get_feature_values(self, tenant_id: int) -> list[FeatureValue]:
        return await self._run("get_feature_values", tenant_id)

    async def set_feature_value(self, tenant: Tenant | int, name: str, value: str) -> bool:
        tenant_id = tenant.id if isinstance(tenant, Tenant) else tenant
        return await self._run("set_feature_value", tenant_id, name, value)

    async def set_feature_values(self, tenant_id: int, values: Optional[Iterable[tuple[str, str]]]) -> int:
        pairs = list(values or ())
        return await self._run("set_feature_values", tenant_id, pairs)

    async def reset_all_features(self, tenant_id: int) -> int:
        return await self._run("reset_all_features", tenant_id)

    async def _run(self, method: str, *args: Any) -> Any:
        return await asyncio.to_thread(self._call, method, *args)

    def _call(self, method: str, *args: Any) -> Any:
        with get_session(self.session_factory) as db:
            editions = self.editions_factory(db) if self.editions_factory is not None else None
            manager = TenantFeatureManager(db, self.catalog, editions=editions, cache=self.cache, bus=self.bus)
            return getattr(manager, method)(*args)
