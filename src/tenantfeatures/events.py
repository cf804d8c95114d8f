"""
Tenant and edition lifecycle events.

Publishers (TenantManager, edition administration code) announce changes on
a LifecycleBus; subscribers such as TenantFeatureCacheInvalidator react to
them. Delivery is synchronous and in subscription order, and a failing
handler fails the publish call.

Which cache entries an event makes stale is decided by the pure function
tenant_ids_to_evict(), independent of how the event was delivered.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional

logger = logging.getLogger(__name__)

TenantChange = Literal["created", "updated", "deleted"]


@dataclass(frozen=True)
class TenantChanged:
    """A tenant was created, updated or deleted.

    transient marks an instance that was never persisted (no stable id).
    """

    tenant_id: Optional[int]
    change: TenantChange
    transient: bool = False


@dataclass(frozen=True)
class TenantFeaturesChanged:
    """A tenant's explicit feature overrides changed."""

    tenant_id: int


@dataclass(frozen=True)
class EditionDeleted:
    """An edition is being deleted.

    Published before the edition row is removed, while tenants still
    reference it.
    """

    edition_id: int


LifecycleEvent = TenantChanged | TenantFeaturesChanged | EditionDeleted
Handler = Callable[[Any], Any]


def tenant_ids_to_evict(event: LifecycleEvent) -> list[int]:
    """
    Tenant ids whose cached feature snapshot the event makes stale.

    Deleted and transient tenants have nothing to evict. For EditionDeleted
    the affected tenants are only known after a database lookup, so the
    pure answer is empty.
    """
    if isinstance(event, TenantChanged):
        if event.transient or event.tenant_id is None or event.change == "deleted":
            return []
        return [event.tenant_id]
    if isinstance(event, TenantFeaturesChanged):
        return [event.tenant_id]
    return []


class LifecycleBus:
    """Minimal synchronous publish/subscribe bus keyed by event type."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: LifecycleEvent) -> None:
        handlers = list(self._handlers.get(type(event), []))
        logger.debug("Publishing %s to %d handler(s)", event, len(handlers))
        for handler in handlers:
            handler(event)
