"""
Feature value resolution and override management.

Components:
- catalog: Known features and their default values
- editions: Edition-level defaults (EditionDefaultResolver)
- store: Explicit per-tenant overrides
- resolution: Tenant -> edition -> catalog lookup chain
- writer: Insert/update/delete decisions for overrides
- invalidation: Cache eviction on tenant and edition lifecycle events

Usage:
    from tenantfeatures.features import (
        FeatureCatalog,
        FeatureDefinition,
        FeatureValueResolver,
        FeatureOverrideWriter,
    )
"""

from tenantfeatures.features.catalog import FeatureCatalog, FeatureDefinition
from tenantfeatures.features.editions import EditionDefaultResolver, EditionFeatureStore
from tenantfeatures.features.invalidation import TenantFeatureCacheInvalidator
from tenantfeatures.features.resolution import FeatureValue, FeatureValueResolver, first_present
from tenantfeatures.features.store import TenantFeatureStore
from tenantfeatures.features.writer import FeatureOverrideWriter

__all__ = [
    # Catalog
    "FeatureCatalog",
    "FeatureDefinition",
    # Editions
    "EditionDefaultResolver",
    "EditionFeatureStore",
    # Storage
    "TenantFeatureStore",
    # Resolution
    "FeatureValue",
    "FeatureValueResolver",
    "first_present",
    # Writes
    "FeatureOverrideWriter",
    # Invalidation
    "TenantFeatureCacheInvalidator",
]
