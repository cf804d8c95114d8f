"""Cache invalidation driven by tenant and edition lifecycle events."""

from __future__ import annotations

import logging

from sqlalchemy.orm import sessionmaker

from tenantfeatures.cache import TenantFeatureCache
from tenantfeatures.db.models import Tenant
from tenantfeatures.db.session import get_session, unit_of_work
from tenantfeatures.events import (
    EditionDeleted,
    LifecycleBus,
    LifecycleEvent,
    TenantChanged,
    TenantFeaturesChanged,
    tenant_ids_to_evict,
)

logger = logging.getLogger(__name__)


class TenantFeatureCacheInvalidator:
    """
    Evicts cached tenant feature snapshots when tenants or editions change.

    Only point evictions are issued; how and when snapshots are repopulated
    is up to the cache backend and the resolution engine.
    """

    def __init__(self, cache: TenantFeatureCache, session_factory: sessionmaker | None = None):
        self.cache = cache
        self.session_factory = session_factory

    def subscribe(self, bus: LifecycleBus) -> None:
        bus.subscribe(TenantChanged, self.handle_tenant_changed)
        bus.subscribe(TenantFeaturesChanged, self.handle_tenant_features_changed)
        bus.subscribe(EditionDeleted, self.handle_edition_deleted)

    def handle_tenant_changed(self, event: TenantChanged) -> list[int]:
        return self._evict(event)

    def handle_tenant_features_changed(self, event: TenantFeaturesChanged) -> list[int]:
        return self._evict(event)

    def handle_edition_deleted(self, event: EditionDeleted) -> list[int]:
        """
        Detach every tenant from the deleted edition, then evict them.

        The tenants fall back to catalog defaults for features they do not
        override. Eviction happens here, after the commit, rather than
        relying on a separate tenant-changed notification.

        Returns:
            Ids of the tenants that were detached
        """
        with get_session(self.session_factory) as db:
            with unit_of_work(db):
                tenants = db.query(Tenant).filter(Tenant.edition_id == event.edition_id).all()
                for tenant in tenants:
                    tenant.edition_id = None
                db.flush()
                tenant_ids = [tenant.id for tenant in tenants]

        logger.info(
            "Detached %d tenant(s) from deleted edition %s",
            len(tenant_ids),
            event.edition_id,
        )
        for tenant_id in tenant_ids:
            self._evict(TenantChanged(tenant_id=tenant_id, change="updated"))
        return tenant_ids

    def _evict(self, event: LifecycleEvent) -> list[int]:
        tenant_ids = tenant_ids_to_evict(event)
        for tenant_id in tenant_ids:
            logger.debug("Evicting feature snapshot of tenant %s", tenant_id)
            self.cache.remove(tenant_id)
        return tenant_ids
