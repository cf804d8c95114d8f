"""
HTTP API for tenants and their feature values.

Routes:
    POST   /tenants                           create a tenant
    GET    /tenants/{tenant_id}               tenant details
    GET    /tenants/{tenant_id}/features      effective value of every feature
    GET    /tenants/{tenant_id}/features/{n}  effective value of one feature
    PUT    /tenants/{tenant_id}/features/{n}  set one value
    PUT    /tenants/{tenant_id}/features      set several values
    DELETE /tenants/{tenant_id}/features      reset all overrides

Run with:
    uvicorn tenantfeatures.web.api:app
    python -m tenantfeatures.web.api
"""

from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from tenantfeatures.cache import TenantFeatureCache, build_cache
from tenantfeatures.config import settings
from tenantfeatures.db.models import Tenant
from tenantfeatures.db.session import get_db, unit_of_work
from tenantfeatures.errors import (
    InvalidTenancyNameError,
    TenancyNameConflictError,
    TenantNotFoundError,
)
from tenantfeatures.events import LifecycleBus
from tenantfeatures.features.catalog import FeatureCatalog
from tenantfeatures.features.invalidation import TenantFeatureCacheInvalidator
from tenantfeatures.manager import TenantFeatureManager
from tenantfeatures.tenants import TenantManager

app = FastAPI(title="Tenant Features")


# =============================================================================
# Schemas
# =============================================================================

class TenantCreate(BaseModel):
    tenancy_name: str
    name: str
    edition_id: Optional[int] = None


class TenantOut(BaseModel):
    id: int
    tenancy_name: str
    name: str
    edition_id: Optional[int] = None
    is_active: bool


class FeatureValueIn(BaseModel):
    value: str


class NamedFeatureValue(BaseModel):
    name: str
    value: Optional[str] = None


class FeatureAssignment(BaseModel):
    name: str
    value: str


class FeatureValuesIn(BaseModel):
    values: List[FeatureAssignment] = Field(default_factory=list)


class TenantFeaturesOut(BaseModel):
    tenant_id: int
    features: List[NamedFeatureValue]


def _tenant_out(tenant: Tenant) -> TenantOut:
    return TenantOut(
        id=tenant.id,
        tenancy_name=tenant.tenancy_name,
        name=tenant.name,
        edition_id=tenant.edition_id,
        is_active=tenant.is_active,
    )


# =============================================================================
# Dependencies
# =============================================================================

@lru_cache
def get_catalog() -> FeatureCatalog:
    return FeatureCatalog.from_mapping(settings.feature_defaults)


@lru_cache
def get_cache() -> TenantFeatureCache:
    return build_cache(settings)


@lru_cache
def get_bus() -> LifecycleBus:
    """Application lifecycle bus with cache invalidation subscribed."""
    bus = LifecycleBus()
    TenantFeatureCacheInvalidator(get_cache()).subscribe(bus)
    return bus


def get_feature_manager(
    db: Session = Depends(get_db),
    catalog: FeatureCatalog = Depends(get_catalog),
    cache: TenantFeatureCache = Depends(get_cache),
    bus: LifecycleBus = Depends(get_bus),
) -> TenantFeatureManager:
    return TenantFeatureManager(db, catalog, cache=cache, bus=bus)


def get_tenant_manager(
    db: Session = Depends(get_db),
    bus: LifecycleBus = Depends(get_bus),
) -> TenantManager:
    return TenantManager(db, bus=bus)


# =============================================================================
# Error handlers
# =============================================================================

def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message}})


@app.exception_handler(TenantNotFoundError)
async def tenant_not_found_handler(request: Request, exc: TenantNotFoundError):
    return _error(404, "TENANT_NOT_FOUND", exc.message)


@app.exception_handler(TenancyNameConflictError)
async def tenancy_name_conflict_handler(request: Request, exc: TenancyNameConflictError):
    return _error(409, "TENANCY_NAME_TAKEN", exc.message)


@app.exception_handler(InvalidTenancyNameError)
async def invalid_tenancy_name_handler(request: Request, exc: InvalidTenancyNameError):
    return _error(422, "INVALID_TENANCY_NAME", exc.message)


# =============================================================================
# Tenant routes
# =============================================================================

@app.post("/tenants", status_code=201, response_model=TenantOut)
def create_tenant(payload: TenantCreate, tenants: TenantManager = Depends(get_tenant_manager)):
    tenant = tenants.create(
        Tenant(
            tenancy_name=payload.tenancy_name,
            name=payload.name,
            edition_id=payload.edition_id,
        )
    )
    return _tenant_out(tenant)


@app.get("/tenants/{tenant_id}", response_model=TenantOut)
def get_tenant(tenant_id: int, tenants: TenantManager = Depends(get_tenant_manager)):
    return _tenant_out(tenants.get_by_id(tenant_id))


# =============================================================================
# Feature routes
# =============================================================================

def _features_out(tenant_id: int, features: TenantFeatureManager) -> TenantFeaturesOut:
    return TenantFeaturesOut(
        tenant_id=tenant_id,
        features=[
            NamedFeatureValue(name=item.name, value=item.value)
            for item in features.get_feature_values(tenant_id)
        ],
    )


@app.get("/tenants/{tenant_id}/features", response_model=TenantFeaturesOut)
def list_features(
    tenant_id: int,
    tenants: TenantManager = Depends(get_tenant_manager),
    features: TenantFeatureManager = Depends(get_feature_manager),
):
    tenants.get_by_id(tenant_id)
    return _features_out(tenant_id, features)


@app.get("/tenants/{tenant_id}/features/{name}", response_model=NamedFeatureValue)
def get_feature(
    tenant_id: int,
    name: str,
    tenants: TenantManager = Depends(get_tenant_manager),
    features: TenantFeatureManager = Depends(get_feature_manager),
):
    tenants.get_by_id(tenant_id)
    return NamedFeatureValue(name=name, value=features.get_effective_value(tenant_id, name))


@app.put("/tenants/{tenant_id}/features/{name}", response_model=NamedFeatureValue)
def set_feature(
    tenant_id: int,
    name: str,
    payload: FeatureValueIn,
    features: TenantFeatureManager = Depends(get_feature_manager),
):
    features.set_feature_value(tenant_id, name, payload.value)
    return NamedFeatureValue(name=name, value=features.get_effective_value(tenant_id, name))


@app.put("/tenants/{tenant_id}/features", response_model=TenantFeaturesOut)
def set_features(
    tenant_id: int,
    payload: FeatureValuesIn,
    db: Session = Depends(get_db),
    tenants: TenantManager = Depends(get_tenant_manager),
    features: TenantFeatureManager = Depends(get_feature_manager),
):
    with unit_of_work(db):
        tenants.get_by_id(tenant_id)
        features.set_feature_values(tenant_id, [(item.name, item.value) for item in payload.values])
    return _features_out(tenant_id, features)


@app.delete("/tenants/{tenant_id}/features", response_model=TenantFeaturesOut)
def reset_features(
    tenant_id: int,
    db: Session = Depends(get_db),
    tenants: TenantManager = Depends(get_tenant_manager),
    features: TenantFeatureManager = Depends(get_feature_manager),
):
    # One transaction: the existence check would otherwise leave it open
    with unit_of_work(db):
        tenants.get_by_id(tenant_id)
        features.reset_all_features(tenant_id)
    return _features_out(tenant_id, features)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tenantfeatures.web.api:app", host=settings.api_host, port=settings.api_port)
