"""Unit tests for lifecycle events and cache invalidation."""

import pytest

from tenantfeatures.cache import TenantFeatureSnapshot
from tenantfeatures.db.models import Tenant
from tenantfeatures.db.session import get_session
from tenantfeatures.events import (
    EditionDeleted,
    LifecycleBus,
    TenantChanged,
    TenantFeaturesChanged,
    tenant_ids_to_evict,
)
from tenantfeatures.features.invalidation import TenantFeatureCacheInvalidator
from tenantfeatures.features.resolution import FeatureValueResolver
from tenantfeatures.tenants import TenantManager


@pytest.mark.parametrize(
    "event,expected",
    [
        (TenantChanged(tenant_id=7, change="created"), [7]),
        (TenantChanged(tenant_id=7, change="updated"), [7]),
        (TenantChanged(tenant_id=7, change="deleted"), []),
        (TenantChanged(tenant_id=7, change="updated", transient=True), []),
        (TenantChanged(tenant_id=None, change="created"), []),
        (TenantFeaturesChanged(tenant_id=7), [7]),
        (EditionDeleted(edition_id=3), []),
    ],
)
def test_tenant_ids_to_evict(event, expected):
    assert tenant_ids_to_evict(event) == expected


def _cache_tenants(cache, *tenant_ids):
    for tenant_id in tenant_ids:
        cache.set(TenantFeatureSnapshot(tenant_id=tenant_id, edition_id=None, overrides={}))


@pytest.fixture
def bus(cache, session_factory):
    bus = LifecycleBus()
    TenantFeatureCacheInvalidator(cache, session_factory).subscribe(bus)
    return bus


def test_tenant_updated_evicts_snapshot(bus, cache):
    _cache_tenants(cache, 7, 8)

    bus.publish(TenantChanged(tenant_id=7, change="updated"))

    assert 7 not in cache
    assert 8 in cache


def test_deleted_and_transient_tenants_are_ignored(bus, cache):
    _cache_tenants(cache, 7)

    bus.publish(TenantChanged(tenant_id=7, change="deleted"))
    bus.publish(TenantChanged(tenant_id=7, change="updated", transient=True))

    assert 7 in cache


def test_tenant_features_changed_evicts_snapshot(bus, cache):
    _cache_tenants(cache, 7)
    bus.publish(TenantFeaturesChanged(tenant_id=7))
    assert 7 not in cache


def test_edition_deleted_detaches_and_evicts_tenants(bus, cache, session_factory, catalog, tenant_7, tenant_9):
    with get_session(session_factory) as session:
        session.add(Tenant(id=10, tenancy_name="tenant10", name="Tenant Ten", edition_id=3))
    _cache_tenants(cache, 7, 9, 10)

    bus.publish(EditionDeleted(edition_id=3))

    with get_session(session_factory) as session:
        editions = {t.id: t.edition_id for t in session.query(Tenant).all()}
        assert editions == {7: None, 9: None, 10: None}
        # Tenant 9 falls back to the catalog default
        assert FeatureValueResolver(session, catalog).get_effective_value(9, "Chat") == "false"

    assert 7 in cache
    assert 9 not in cache
    assert 10 not in cache


def test_edition_deleted_handler_returns_detached_ids(cache, session_factory, tenant_9):
    invalidator = TenantFeatureCacheInvalidator(cache, session_factory)
    assert invalidator.handle_edition_deleted(EditionDeleted(edition_id=3)) == [9]
    assert invalidator.handle_edition_deleted(EditionDeleted(edition_id=3)) == []


def test_bus_unsubscribe():
    received = []
    bus = LifecycleBus()
    bus.subscribe(TenantFeaturesChanged, received.append)
    bus.unsubscribe(TenantFeaturesChanged, received.append)

    bus.publish(TenantFeaturesChanged(tenant_id=7))

    assert received == []


def test_bus_handler_errors_propagate():
    def failing(event):
        raise RuntimeError("handler failed")

    bus = LifecycleBus()
    bus.subscribe(TenantFeaturesChanged, failing)

    with pytest.raises(RuntimeError):
        bus.publish(TenantFeaturesChanged(tenant_id=7))


def test_tenant_manager_events_reach_invalidator(bus, cache, db_session):
    manager = TenantManager(db_session, bus=bus)
    tenant = manager.create(Tenant(tenancy_name="acme", name="Acme Corp"))
    tenant_id = tenant.id
    _cache_tenants(cache, tenant_id)
    db_session.commit()

    with db_session.begin():
        tenant.name = "Acme Inc"
        manager.update(tenant)
        assert tenant_id in cache

    assert tenant_id not in cache
