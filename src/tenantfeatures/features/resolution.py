"""
Feature value resolution.

The effective value of a feature for a tenant comes from the first layer
that has one:

1. The tenant's explicit override (tenant_feature_settings)
2. The default of the tenant's edition, if it has one
3. The catalog default of the feature

Each layer is a zero-argument lookup returning a value or None; the layers
are tried in order and the first non-None result wins. An empty string is a
value, not an absence.

Usage:
    resolver = FeatureValueResolver(db_session, catalog)

    resolver.get_effective_value(tenant_id=7, name="Chat")   # "true"
    resolver.get_all_effective_values(tenant_id=7)           # [FeatureValue("Chat", "true"), ...]
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from functools import partial
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from tenantfeatures.cache import TenantFeatureCache, TenantFeatureSnapshot
from tenantfeatures.db.models import Tenant
from tenantfeatures.features.catalog import FeatureCatalog
from tenantfeatures.features.editions import EditionDefaultResolver, EditionFeatureStore
from tenantfeatures.features.store import TenantFeatureStore

logger = logging.getLogger(__name__)

Lookup = Callable[[], Optional[str]]


class FeatureValue(NamedTuple):
    """Effective value of one feature for one tenant."""

    name: str
    value: Optional[str]


def first_present(lookups: Iterable[Lookup]) -> Optional[str]:
    """Return the first non-None result, calling lookups lazily in order."""
    for lookup in lookups:
        value = lookup()
        if value is not None:
            return value
    return None


class FeatureValueResolver:
    """
    Computes effective feature values for tenants.

    When a cache is given, a tenant's overrides and edition id are read from
    its cached snapshot (loaded from the database on a miss). Without a cache
    every lookup reads the database; the write path always resolves this way.
    """

    def __init__(
        self,
        db: Session,
        catalog: FeatureCatalog,
        editions: Optional[EditionDefaultResolver] = None,
        cache: Optional[TenantFeatureCache] = None,
    ):
        self.db = db
        self.catalog = catalog
        self.editions = editions if editions is not None else EditionFeatureStore(db)
        self.store = TenantFeatureStore(db)
        self.cache = cache

    # =========================================================================
    # Public API
    # =========================================================================

    def get_value_or_none(self, tenant_id: int, name: str) -> Optional[str]:
        """Tenant override, else edition default. Ignores the catalog default."""
        return first_present((
            partial(self._tenant_override, tenant_id, name),
            partial(self._edition_default, tenant_id, name),
        ))

    def get_effective_value(self, tenant_id: int, name: str) -> Optional[str]:
        """
        Resolve the value in effect for (tenant, feature).

        Unknown features still resolve to an existing override; with no value
        at any layer the result is None. Never raises for missing data.
        """
        return first_present((
            partial(self._tenant_override, tenant_id, name),
            partial(self._edition_default, tenant_id, name),
            partial(self._catalog_default, name),
        ))

    def get_all_effective_values(self, tenant_id: int) -> list[FeatureValue]:
        """
        Resolve every catalog feature, in catalog order.

        Overrides for features missing from the catalog are not listed.
        """
        snapshot = self._snapshot(tenant_id)
        values = []
        for feature in self.catalog.get_all():
            value = first_present((
                partial(snapshot.overrides.get, feature.name),
                partial(self._edition_value, snapshot.edition_id, feature.name),
                lambda feature=feature: feature.default_value,
            ))
            values.append(FeatureValue(feature.name, value))
        return values

    # =========================================================================
    # Lookups
    # =========================================================================

    def _tenant_override(self, tenant_id: int, name: str) -> Optional[str]:
        if self.cache is not None:
            return self._snapshot(tenant_id).overrides.get(name)
        setting = self.store.find(tenant_id, name)
        return setting.value if setting is not None else None

    def _edition_default(self, tenant_id: int, name: str) -> Optional[str]:
        return self._edition_value(self._edition_id(tenant_id), name)

    def _edition_value(self, edition_id: Optional[int], name: str) -> Optional[str]:
        if edition_id is None:
            return None
        return self.editions.get_feature_value_or_none(edition_id, name)

    def _catalog_default(self, name: str) -> Optional[str]:
        feature = self.catalog.get_or_none(name)
        return feature.default_value if feature is not None else None

    def _edition_id(self, tenant_id: int) -> Optional[int]:
        if self.cache is not None:
            return self._snapshot(tenant_id).edition_id
        tenant = self.db.get(Tenant, tenant_id)
        return tenant.edition_id if tenant is not None else None

    # =========================================================================
    # Snapshots
    # =========================================================================

    def _snapshot(self, tenant_id: int) -> TenantFeatureSnapshot:
        """
        Current feature state of a tenant.

        Served from the cache when possible. Loaded snapshots are cached,
        except for tenants that do not exist or that were evicted while
        loading.
        """
        generation = None
        if self.cache is not None:
            cached = self.cache.get(tenant_id)
            if cached is not None:
                return cached
            generation = self.cache.generation(tenant_id)

        tenant = self.db.get(Tenant, tenant_id)
        snapshot = TenantFeatureSnapshot(
            tenant_id=tenant_id,
            edition_id=tenant.edition_id if tenant is not None else None,
            overrides=self.store.as_dict(tenant_id),
        )
        if self.cache is not None and tenant is not None:
            logger.debug("Caching feature snapshot for tenant %s", tenant_id)
            self.cache.set(snapshot, generation=generation)
        return snapshot
