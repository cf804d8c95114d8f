"""
tenant-features - per-tenant feature values for multi-tenant applications

Resolves the value of each feature for a tenant by layering the tenant's own
override over its edition's default over the feature's catalog default, and
keeps stored overrides minimal and cached snapshots consistent.

Main components:
- features: Catalog, resolution engine, override writer, cache invalidation
- tenants: Tenant lifecycle (create, update, delete) with validation
- manager: Blocking and asyncio facades over the feature operations
- cache: In-memory and Redis snapshot caches
- events: Lifecycle bus for tenant and edition changes
- db: SQLAlchemy models and session management
- web: FastAPI routes
- cli: Command line interface
"""

__version__ = "1.0.0"
