"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.

Every test gets its own in-memory SQLite database. Seed fixtures write
through get_session() so their rows are committed and their session is
closed before the test starts; the in-memory engine shares one connection,
so only one transaction may be open on it at a time.
"""

import pytest

from tenantfeatures.cache import InMemoryTenantFeatureCache
from tenantfeatures.db.models import Base, Edition, EditionFeatureSetting, Tenant
from tenantfeatures.db.session import create_db_engine, get_session, make_session_factory
from tenantfeatures.features.catalog import FeatureCatalog, FeatureDefinition


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    """A plain session for the test; nothing is committed for you."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog():
    return FeatureCatalog([
        FeatureDefinition(name="Chat", default_value="false"),
        FeatureDefinition(name="MaxUsers", default_value="10"),
        FeatureDefinition(name="Theme", default_value="light"),
    ])


@pytest.fixture
def cache():
    return InMemoryTenantFeatureCache()


@pytest.fixture
def edition_3(session_factory):
    """Edition 3 turns Chat on by default."""
    with get_session(session_factory) as session:
        edition = Edition(id=3, name="standard", display_name="Standard")
        edition.feature_settings.append(EditionFeatureSetting(name="Chat", value="true"))
        session.add(edition)
    return 3


@pytest.fixture
def tenant_7(session_factory):
    """Tenant 7 has no edition."""
    with get_session(session_factory) as session:
        session.add(Tenant(id=7, tenancy_name="tenant7", name="Tenant Seven"))
    return 7


@pytest.fixture
def tenant_9(session_factory, edition_3):
    """Tenant 9 is on edition 3."""
    with get_session(session_factory) as session:
        session.add(Tenant(id=9, tenancy_name="tenant9", name="Tenant Nine", edition_id=edition_3))
    return 9
