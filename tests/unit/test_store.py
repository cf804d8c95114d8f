"""Unit tests for TenantFeatureStore and EditionFeatureStore."""

import pytest
from sqlalchemy.exc import IntegrityError

from tenantfeatures.db.models import Tenant
from tenantfeatures.features.editions import EditionFeatureStore
from tenantfeatures.features.store import TenantFeatureStore


@pytest.fixture
def two_tenants(db_session):
    db_session.add_all([
        Tenant(id=1, tenancy_name="alpha", name="Alpha"),
        Tenant(id=2, tenancy_name="beta", name="Beta"),
    ])
    db_session.flush()


def test_insert_and_find_are_scoped_to_the_tenant(db_session, two_tenants):
    store = TenantFeatureStore(db_session)
    store.insert(1, "Chat", "true")

    assert store.find(1, "Chat").value == "true"
    assert store.find(2, "Chat") is None


def test_list_for_tenant_orders_by_name(db_session, two_tenants):
    store = TenantFeatureStore(db_session)
    store.insert(1, "Theme", "dark")
    store.insert(1, "Chat", "true")
    store.insert(2, "Chat", "false")

    assert [s.name for s in store.list_for_tenant(1)] == ["Chat", "Theme"]
    assert store.as_dict(1) == {"Chat": "true", "Theme": "dark"}


def test_update_and_delete(db_session, two_tenants):
    store = TenantFeatureStore(db_session)
    setting = store.insert(1, "Chat", "true")

    store.update(setting, "")
    assert store.find(1, "Chat").value == ""

    store.delete(setting)
    assert store.find(1, "Chat") is None


def test_delete_all_only_touches_one_tenant(db_session, two_tenants):
    store = TenantFeatureStore(db_session)
    store.insert(1, "Chat", "true")
    store.insert(1, "Theme", "dark")
    store.insert(2, "Chat", "true")

    assert store.delete_all(1) == 2
    assert store.as_dict(1) == {}
    assert store.as_dict(2) == {"Chat": "true"}


def test_duplicate_override_violates_unique_constraint(db_session, two_tenants):
    store = TenantFeatureStore(db_session)
    store.insert(1, "Chat", "true")

    with pytest.raises(IntegrityError):
        store.insert(1, "Chat", "false")


def test_edition_store_upsert(db_session, edition_3):
    editions = EditionFeatureStore(db_session)

    assert editions.get_feature_value_or_none(3, "Chat") == "true"
    assert editions.get_feature_value_or_none(3, "Theme") is None

    editions.set_feature_value(3, "Chat", "false")
    editions.set_feature_value(3, "Theme", "dark")

    assert editions.get_feature_value_or_none(3, "Chat") == "false"
    assert editions.get_feature_value_or_none(3, "Theme") == "dark"
