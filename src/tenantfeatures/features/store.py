"""Persistence of explicit per-tenant feature overrides."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from tenantfeatures.db.models import TenantFeatureSetting


class TenantFeatureStore:
    """
    Repository for TenantFeatureSetting rows.

    Every lookup takes the owning tenant id explicitly, so reading another
    tenant's overrides never depends on ambient request or tenant context.
    Writes flush immediately; committing is left to the caller's unit of work.
    """

    def __init__(self, db: Session):
        self.db = db

    def find(self, tenant_id: int, name: str) -> Optional[TenantFeatureSetting]:
        return (
            self.db.query(TenantFeatureSetting)
            .filter(
                TenantFeatureSetting.tenant_id == tenant_id,
                TenantFeatureSetting.name == name,
            )
            .first()
        )

    def list_for_tenant(self, tenant_id: int) -> list[TenantFeatureSetting]:
        return (
            self.db.query(TenantFeatureSetting)
            .filter(TenantFeatureSetting.tenant_id == tenant_id)
            .order_by(TenantFeatureSetting.name)
            .all()
        )

    def as_dict(self, tenant_id: int) -> dict[str, str]:
        """Return the tenant's overrides as a name -> value mapping."""
        return {row.name: row.value for row in self.list_for_tenant(tenant_id)}

    def insert(self, tenant_id: int, name: str, value: str) -> TenantFeatureSetting:
        setting = TenantFeatureSetting(tenant_id=tenant_id, name=name, value=value)
        self.db.add(setting)
        self.db.flush()
        return setting

    def update(self, setting: TenantFeatureSetting, value: str) -> TenantFeatureSetting:
        setting.value = value
        self.db.flush()
        return setting

    def delete(self, setting: TenantFeatureSetting) -> None:
        self.db.delete(setting)
        self.db.flush()

    def delete_all(self, tenant_id: int) -> int:
        """Delete every override owned by the tenant and return the row count."""
        return (
            self.db.query(TenantFeatureSetting)
            .filter(TenantFeatureSetting.tenant_id == tenant_id)
            .delete(synchronize_session="fetch")
        )
