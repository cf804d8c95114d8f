"""Unit tests for TenantManager."""

import pytest

from tenantfeatures.db.models import Tenant
from tenantfeatures.errors import (
    InvalidTenancyNameError,
    TenancyNameConflictError,
    TenantNotFoundError,
    UserFriendlyError,
)
from tenantfeatures.events import LifecycleBus, TenantChanged
from tenantfeatures.tenants import TenantManager


@pytest.fixture
def published():
    return []


@pytest.fixture
def manager(db_session, published):
    bus = LifecycleBus()
    bus.subscribe(TenantChanged, published.append)
    return TenantManager(db_session, bus=bus)


def test_create_tenant_publishes_created(manager, published):
    tenant = manager.create(Tenant(tenancy_name="acme", name="Acme Corp"))

    assert tenant.id is not None
    assert manager.find_by_tenancy_name("acme").id == tenant.id
    assert published == [TenantChanged(tenant_id=tenant.id, change="created")]


@pytest.mark.parametrize("tenancy_name", ["", "a", "1acme", "acme corp", "acme!"])
def test_create_rejects_invalid_tenancy_names(manager, published, db_session, tenancy_name):
    with pytest.raises(InvalidTenancyNameError):
        manager.create(Tenant(tenancy_name=tenancy_name, name="Bad"))

    assert db_session.query(Tenant).count() == 0
    assert published == []


def test_create_rejects_taken_tenancy_name(manager, published, db_session):
    manager.create(Tenant(tenancy_name="acme", name="Acme Corp"))

    with pytest.raises(TenancyNameConflictError) as exc_info:
        manager.create(Tenant(tenancy_name="acme", name="Other Acme"))

    assert exc_info.value.message == "Tenancy name acme is already taken."
    assert db_session.query(Tenant).count() == 1
    assert len(published) == 1


def test_custom_tenancy_name_pattern(db_session):
    manager = TenantManager(db_session, tenancy_name_pattern=r"[a-z]+")

    manager.create(Tenant(tenancy_name="acme", name="Acme"))
    with pytest.raises(InvalidTenancyNameError):
        manager.create(Tenant(tenancy_name="Acme", name="Acme"))


def test_get_by_id_raises_user_friendly_not_found(manager):
    with pytest.raises(TenantNotFoundError) as exc_info:
        manager.get_by_id(42)

    assert isinstance(exc_info.value, UserFriendlyError)
    assert exc_info.value.message == "There is no tenant with id: 42"
    assert manager.find_by_id(42) is None


def test_event_published_only_after_outer_commit(manager, published, db_session):
    with db_session.begin():
        manager.create(Tenant(tenancy_name="acme", name="Acme Corp"))
        assert published == []

    assert [event.change for event in published] == ["created"]


def test_update_tenant(manager, published, db_session):
    tenant = manager.create(Tenant(tenancy_name="acme", name="Acme Corp"))
    tenant.name = "Acme Inc"

    manager.update(tenant)
    db_session.commit()

    assert manager.get_by_id(tenant.id).name == "Acme Inc"
    assert [event.change for event in published] == ["created", "updated"]


def test_update_rejects_name_of_another_tenant(manager, published, db_session):
    manager.create(Tenant(tenancy_name="acme", name="Acme Corp"))
    globex = manager.create(Tenant(tenancy_name="globex", name="Globex"))
    globex_id = globex.id
    globex.tenancy_name = "acme"

    with pytest.raises(TenancyNameConflictError):
        manager.update(globex)

    # Nothing was flushed, so the pending change is simply discarded
    assert db_session.is_modified(globex)
    db_session.rollback()
    assert manager.get_by_id(globex_id).tenancy_name == "globex"
    assert [event.change for event in published] == ["created", "created"]


def test_update_conflict_inside_callers_transaction(manager, db_session):
    manager.create(Tenant(tenancy_name="acme", name="Acme Corp"))
    globex = manager.create(Tenant(tenancy_name="globex", name="Globex"))

    with pytest.raises(TenancyNameConflictError):
        with db_session.begin():
            globex.tenancy_name = "acme"
            manager.update(globex)

    assert manager.find_by_tenancy_name("globex") is not None


def test_delete_tenant(manager, published, db_session):
    tenant = manager.create(Tenant(tenancy_name="acme", name="Acme Corp"))
    tenant_id = tenant.id

    manager.delete(tenant)
    db_session.commit()

    assert manager.find_by_id(tenant_id) is None
    assert published[-1] == TenantChanged(tenant_id=tenant_id, change="deleted")


def test_list_tenants_ordered_by_id(manager):
    manager.create(Tenant(tenancy_name="globex", name="Globex"))
    manager.create(Tenant(tenancy_name="acme", name="Acme Corp"))

    assert [t.tenancy_name for t in manager.list_tenants()] == ["globex", "acme"]
