"""
Writing tenant feature overrides.

The writer keeps tenant_feature_settings minimal: a row exists only while
the tenant's value differs from the default it would otherwise inherit.
Setting a feature back to its default deletes the row, so later changes to
the edition's defaults reach the tenant automatically.

Decision order for set_value(tenant, name, value):
1. Value already in effect          -> nothing to do
2. Feature unknown to the catalog   -> delete any stored override
3. Value equals the inherited default (edition, else catalog)
                                    -> delete any stored override
4. Otherwise                        -> insert the override, or update it in place

Every operation runs as one unit of work; the cached snapshot of an affected
tenant is evicted once the outermost transaction commits, and a
TenantFeaturesChanged event is published on the lifecycle bus when one is
given.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional

from sqlalchemy.orm import Session

from tenantfeatures.cache import TenantFeatureCache
from tenantfeatures.db.models import Tenant
from tenantfeatures.db.session import after_commit, unit_of_work
from tenantfeatures.events import LifecycleBus, TenantFeaturesChanged
from tenantfeatures.features.catalog import FeatureCatalog, FeatureDefinition
from tenantfeatures.features.editions import EditionDefaultResolver, EditionFeatureStore
from tenantfeatures.features.resolution import FeatureValueResolver
from tenantfeatures.features.store import TenantFeatureStore
from tenantfeatures.tenants import get_tenant_or_raise

logger = logging.getLogger(__name__)


class FeatureOverrideWriter:
    """Decides whether to insert, update or delete a tenant's feature override."""

    def __init__(
        self,
        db: Session,
        catalog: FeatureCatalog,
        editions: Optional[EditionDefaultResolver] = None,
        cache: Optional[TenantFeatureCache] = None,
        bus: Optional[LifecycleBus] = None,
    ):
        self.db = db
        self.catalog = catalog
        self.editions = editions if editions is not None else EditionFeatureStore(db)
        self.store = TenantFeatureStore(db)
        # Decisions are made on uncached reads inside the unit of work
        self.resolver = FeatureValueResolver(db, catalog, editions=self.editions)
        self.cache = cache
        self.bus = bus

    # =========================================================================
    # Public API
    # =========================================================================

    def set_value(self, tenant: Tenant, name: str, value: str) -> bool:
        """
        Make value the effective value of the feature for the tenant.

        Returns:
            True if a stored override was inserted, updated or deleted
        """
        if value is None:
            raise ValueError(f"Feature value for {name!r} cannot be None")

        with unit_of_work(self.db):
            return self._apply(tenant, name, value)

    def set_value_for_tenant_id(self, tenant_id: int, name: str, value: str) -> bool:
        """
        Load the tenant, then set_value().

        Raises:
            TenantNotFoundError: no tenant has this id
        """
        if value is None:
            raise ValueError(f"Feature value for {name!r} cannot be None")

        with unit_of_work(self.db):
            tenant = get_tenant_or_raise(self.db, tenant_id)
            return self._apply(tenant, name, value)

    def set_values(self, tenant_id: int, values: Optional[Iterable[tuple[str, str]]]) -> int:
        """
        Apply (name, value) pairs in order, all or nothing.

        Returns:
            Number of pairs that changed stored overrides
        """
        pairs = list(values or ())
        if not pairs:
            return 0

        changed = 0
        with unit_of_work(self.db):
            for name, value in pairs:
                if self.set_value_for_tenant_id(tenant_id, name, value):
                    changed += 1
        return changed

    def reset_all_features(self, tenant_id: int) -> int:
        """
        Delete every override of the tenant.

        Afterwards all its features resolve to edition or catalog defaults.

        Returns:
            Number of overrides deleted
        """
        with unit_of_work(self.db):
            deleted = self.store.delete_all(tenant_id)
            logger.info("Reset %d feature override(s) for tenant %s", deleted, tenant_id)
            self._evict_after_commit(tenant_id)
        return deleted

    # =========================================================================
    # Decision
    # =========================================================================

    def _apply(self, tenant: Tenant, name: str, value: str) -> bool:
        if self.resolver.get_effective_value(tenant.id, name) == value:
            logger.debug("Feature %s already %r for tenant %s", name, value, tenant.id)
            return False

        current = self.store.find(tenant.id, name)

        feature = self.catalog.get_or_none(name)
        if feature is None:
            # Unknown features cannot hold overrides
            return self._delete_if_present(tenant, current)

        if value == self._default_value(tenant, feature):
            return self._delete_if_present(tenant, current)

        if current is None:
            self.store.insert(tenant.id, name, value)
            logger.info("Added feature override %s=%r for tenant %s", name, value, tenant.id)
        else:
            self.store.update(current, value)
            logger.info("Updated feature override %s=%r for tenant %s", name, value, tenant.id)
        self._evict_after_commit(tenant.id)
        return True

    def _default_value(self, tenant: Tenant, feature: FeatureDefinition) -> str:
        """Value the tenant inherits without an override."""
        if tenant.edition_id is not None:
            edition_value = self.editions.get_feature_value_or_none(tenant.edition_id, feature.name)
            if edition_value is not None:
                return edition_value
        return feature.default_value

    def _delete_if_present(self, tenant: Tenant, current) -> bool:
        if current is None:
            return False
        name = current.name
        self.store.delete(current)
        logger.info("Removed feature override %s for tenant %s", name, tenant.id)
        self._evict_after_commit(tenant.id)
        return True

    def _evict_after_commit(self, tenant_id: int) -> None:
        if self.cache is None and self.bus is None:
            return
        cache, bus = self.cache, self.bus

        def _on_commit() -> None:
            if cache is not None:
                cache.remove(tenant_id)
            if bus is not None:
                bus.publish(TenantFeaturesChanged(tenant_id=tenant_id))

        after_commit(self.db, _on_commit)
