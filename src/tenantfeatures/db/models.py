"""
SQLAlchemy ORM models for tenant-features.

The schema is built around explicit, minimal overrides: a tenant only has a
row in tenant_feature_settings for a feature whose value differs from the
default it would otherwise inherit (edition default, then catalog default).

Tables:
- editions: Named bundles of feature defaults
- edition_feature_settings: Per-edition feature values
- tenants: Customer/organization units, optionally assigned to an edition
- tenant_feature_settings: Explicit per-tenant feature overrides

Feature definitions themselves are not stored; they live in the in-memory
FeatureCatalog (see features/catalog.py).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# Tenancy names start with a letter, then at least one letter, digit, '_' or '-'
TENANCY_NAME_REGEX = r"^[a-zA-Z][a-zA-Z0-9_-]{1,}$"

# Upper bounds shared by the models and the Alembic migration
MAX_FEATURE_NAME_LENGTH = 128
MAX_FEATURE_VALUE_LENGTH = 2000


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Edition Models
# =============================================================================

class Edition(Base):
    """
    A named bundle of feature defaults assignable to tenants.

    Edition-level values sit between the catalog default and a tenant's own
    override in the resolution order.
    """
    __tablename__ = "editions"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    feature_settings: Mapped[list["EditionFeatureSetting"]] = relationship(
        back_populates="edition", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Edition(id={self.id}, name='{self.name}')>"


class EditionFeatureSetting(Base):
    """Feature value configured for an edition."""
    __tablename__ = "edition_feature_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    edition_id: Mapped[int] = mapped_column(
        ForeignKey("editions.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(MAX_FEATURE_NAME_LENGTH), nullable=False)
    value: Mapped[str] = mapped_column(String(MAX_FEATURE_VALUE_LENGTH), nullable=False)

    edition: Mapped["Edition"] = relationship(back_populates="feature_settings")

    __table_args__ = (
        UniqueConstraint("edition_id", "name", name="uq_edition_feature_name"),
    )

    def __repr__(self) -> str:
        return f"<EditionFeatureSetting(edition_id={self.edition_id}, name='{self.name}')>"


# =============================================================================
# Tenant Models
# =============================================================================

class Tenant(Base):
    """
    An isolated customer/organization unit.

    tenancy_name is the unique, URL-safe handle (validated against
    TENANCY_NAME_REGEX by TenantManager); name is for display.

    edition_id is cleared by the EditionDeleted handler before an edition
    row is removed; the tenant then falls back to catalog defaults for
    everything it does not override.
    """
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenancy_name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    edition_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("editions.id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    edition: Mapped[Optional["Edition"]] = relationship()

    __table_args__ = (
        Index("idx_tenants_edition", "edition_id"),
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, tenancy_name='{self.tenancy_name}')>"


class TenantFeatureSetting(Base):
    """
    Explicit per-tenant override of a feature value.

    At most one row per (tenant_id, name). The value may be an empty string
    but never NULL. Rows are only ever written by FeatureOverrideWriter, which
    removes them again as soon as they would duplicate the inherited default.
    """
    __tablename__ = "tenant_feature_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(MAX_FEATURE_NAME_LENGTH), nullable=False)
    value: Mapped[str] = mapped_column(String(MAX_FEATURE_VALUE_LENGTH), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_tenant_feature_name"),
        Index("idx_tenant_feature_settings_tenant", "tenant_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<TenantFeatureSetting(tenant_id={self.tenant_id}, "
            f"name='{self.name}', value='{self.value}')>"
        )
