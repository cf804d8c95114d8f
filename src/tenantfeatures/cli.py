"""
Command line interface for tenant feature management.

Usage:
    tenant-features list 7
    tenant-features get 7 Chat
    tenant-features set 7 Chat true
    tenant-features reset 7
    tenant-features create-tenant acme "Acme Corp" --edition-id 3

The feature catalog comes from the FEATURE_DEFAULTS setting and the database
from DATABASE_URL (see config.py).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from sqlalchemy.orm import sessionmaker

from tenantfeatures.cache import build_cache
from tenantfeatures.config import settings
from tenantfeatures.db.models import Tenant
from tenantfeatures.db.session import get_session, get_session_factory
from tenantfeatures.errors import UserFriendlyError
from tenantfeatures.events import LifecycleBus
from tenantfeatures.features.catalog import FeatureCatalog
from tenantfeatures.features.invalidation import TenantFeatureCacheInvalidator
from tenantfeatures.manager import TenantFeatureManager
from tenantfeatures.tenants import TenantManager

logger = logging.getLogger(__name__)


def load_catalog() -> FeatureCatalog:
    return FeatureCatalog.from_mapping(settings.feature_defaults)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tenant-features",
        description="Inspect and change per-tenant feature values.",
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="Effective value of every catalog feature.")
    list_parser.add_argument("tenant_id", type=int)

    get_parser = subparsers.add_parser("get", help="Effective value of one feature.")
    get_parser.add_argument("tenant_id", type=int)
    get_parser.add_argument("feature")

    set_parser = subparsers.add_parser("set", help="Set a feature value for a tenant.")
    set_parser.add_argument("tenant_id", type=int)
    set_parser.add_argument("feature")
    set_parser.add_argument("value")

    reset_parser = subparsers.add_parser("reset", help="Remove every override of a tenant.")
    reset_parser.add_argument("tenant_id", type=int)

    create_parser = subparsers.add_parser("create-tenant", help="Create a tenant.")
    create_parser.add_argument("tenancy_name")
    create_parser.add_argument("name")
    create_parser.add_argument("--edition-id", type=int, default=None)

    return parser


def _print(payload: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2))
        return
    for key, value in payload.items():
        print(f"{key}={value}")


def run(args: argparse.Namespace, factory: Optional[sessionmaker] = None) -> int:
    catalog = load_catalog()
    cache = build_cache(settings)
    bus = LifecycleBus()
    TenantFeatureCacheInvalidator(cache, factory).subscribe(bus)

    with get_session(factory) as session:
        features = TenantFeatureManager(session, catalog, cache=cache, bus=bus)
        tenants = TenantManager(session, bus=bus)

        if args.command in ("list", "get", "reset"):
            tenants.get_by_id(args.tenant_id)

        if args.command == "list":
            values = features.get_feature_values(args.tenant_id)
            _print({item.name: item.value for item in values}, args.json)

        elif args.command == "get":
            value = features.get_effective_value(args.tenant_id, args.feature)
            _print({args.feature: value}, args.json)

        elif args.command == "set":
            changed = features.set_feature_value(args.tenant_id, args.feature, args.value)
            logger.info("set %s for tenant %s (stored overrides changed: %s)", args.feature, args.tenant_id, changed)
            _print({args.feature: features.get_effective_value(args.tenant_id, args.feature)}, args.json)

        elif args.command == "reset":
            deleted = features.reset_all_features(args.tenant_id)
            _print({"deleted": deleted}, args.json)

        elif args.command == "create-tenant":
            tenant = tenants.create(
                Tenant(tenancy_name=args.tenancy_name, name=args.name, edition_id=args.edition_id)
            )
            _print({"id": tenant.id, "tenancy_name": tenant.tenancy_name}, args.json)

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=settings.log_level, format=settings.log_format)
    args = _build_parser().parse_args(argv)

    try:
        return run(args, get_session_factory())
    except UserFriendlyError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
