"""
Tenant lifecycle management.

TenantManager owns tenant creation, update and deletion. All validation
(tenancy name pattern, uniqueness) happens with queries before anything is
written, so a rejected tenant never leaves partial state behind.

Successful changes are announced as TenantChanged events on the lifecycle
bus once the surrounding transaction commits.

Usage:
    manager = TenantManager(db_session, bus=bus)
    tenant = manager.create(Tenant(tenancy_name="acme", name="Acme Corp"))
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy.orm import Session

from tenantfeatures.config import settings
from tenantfeatures.db.models import Tenant
from tenantfeatures.db.session import after_commit, unit_of_work
from tenantfeatures.errors import (
    InvalidTenancyNameError,
    TenancyNameConflictError,
    TenantNotFoundError,
)
from tenantfeatures.events import LifecycleBus, TenantChange, TenantChanged

logger = logging.getLogger(__name__)


def get_tenant_or_raise(db: Session, tenant_id: int) -> Tenant:
    """Load a tenant by id, raising TenantNotFoundError when it does not exist."""
    tenant = db.get(Tenant, tenant_id)
    if tenant is None:
        raise TenantNotFoundError(tenant_id)
    return tenant


class TenantManager:
    """Domain logic for creating, updating, deleting and finding tenants."""

    def __init__(
        self,
        db: Session,
        bus: Optional[LifecycleBus] = None,
        tenancy_name_pattern: Optional[str] = None,
    ):
        self.db = db
        self.bus = bus
        self.tenancy_name_pattern = re.compile(tenancy_name_pattern or settings.tenancy_name_pattern)

    # =========================================================================
    # Lookups
    # =========================================================================

    def find_by_id(self, tenant_id: int) -> Optional[Tenant]:
        return self.db.get(Tenant, tenant_id)

    def get_by_id(self, tenant_id: int) -> Tenant:
        return get_tenant_or_raise(self.db, tenant_id)

    def find_by_tenancy_name(self, tenancy_name: str) -> Optional[Tenant]:
        return self.db.query(Tenant).filter(Tenant.tenancy_name == tenancy_name).first()

    def list_tenants(self) -> list[Tenant]:
        return self.db.query(Tenant).order_by(Tenant.id).all()

    # =========================================================================
    # Mutations
    # =========================================================================

    def create(self, tenant: Tenant) -> Tenant:
        """
        Validate and insert a new tenant.

        Raises:
            InvalidTenancyNameError: tenancy name does not match the pattern
            TenancyNameConflictError: another tenant already uses the name
        """
        with unit_of_work(self.db):
            self.validate_tenancy_name(tenant.tenancy_name)
            if self.find_by_tenancy_name(tenant.tenancy_name) is not None:
                raise TenancyNameConflictError(tenant.tenancy_name)

            self.db.add(tenant)
            self.db.flush()
            logger.info("Created tenant %s (id=%s)", tenant.tenancy_name, tenant.id)
            self._publish_after_commit(tenant.id, "created")
        return tenant

    def update(self, tenant: Tenant) -> Tenant:
        """
        Persist changes to an existing tenant.

        Raises:
            TenancyNameConflictError: another tenant already uses the name
        """
        # Opening a SAVEPOINT flushes pending changes, so check first
        with self.db.no_autoflush:
            conflict = (
                self.db.query(Tenant)
                .filter(Tenant.tenancy_name == tenant.tenancy_name, Tenant.id != tenant.id)
                .first()
            )
        if conflict is not None:
            raise TenancyNameConflictError(tenant.tenancy_name)

        with unit_of_work(self.db):
            tenant = self.db.merge(tenant)
            self.db.flush()
            logger.info("Updated tenant %s (id=%s)", tenant.tenancy_name, tenant.id)
            self._publish_after_commit(tenant.id, "updated")
        return tenant

    def delete(self, tenant: Tenant) -> None:
        with unit_of_work(self.db):
            tenant_id = tenant.id
            self.db.delete(tenant)
            self.db.flush()
            logger.info("Deleted tenant id=%s", tenant_id)
            self._publish_after_commit(tenant_id, "deleted")

    def validate_tenancy_name(self, tenancy_name: Optional[str]) -> None:
        if not tenancy_name or not self.tenancy_name_pattern.fullmatch(tenancy_name):
            raise InvalidTenancyNameError(tenancy_name or "")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _publish_after_commit(self, tenant_id: int, change: TenantChange) -> None:
        if self.bus is None:
            return
        bus = self.bus
        after_commit(self.db, lambda: bus.publish(TenantChanged(tenant_id=tenant_id, change=change)))
