"""
Database module for tenant-features.

Provides SQLAlchemy ORM models, engine/session management and the
transactional helpers used by the write path.

Usage:
    from tenantfeatures.db import get_session, Tenant, TenantFeatureSetting

    with get_session() as session:
        tenants = session.query(Tenant).all()
"""

from tenantfeatures.db.models import (
    Base,
    Edition,
    EditionFeatureSetting,
    Tenant,
    TenantFeatureSetting,
    TENANCY_NAME_REGEX,
)
from tenantfeatures.db.session import (
    after_commit,
    create_db_engine,
    get_db,
    get_engine,
    get_session,
    get_session_factory,
    make_session_factory,
    unit_of_work,
)

__all__ = [
    # Base
    "Base",
    # Models
    "Edition",
    "EditionFeatureSetting",
    "Tenant",
    "TenantFeatureSetting",
    "TENANCY_NAME_REGEX",
    # Session
    "after_commit",
    "create_db_engine",
    "get_db",
    "get_engine",
    "get_session",
    "get_session_factory",
    "make_session_factory",
    "unit_of_work",
]
