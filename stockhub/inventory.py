"""Stock level updates and existence checks for hubs and SKUs held at hubs."""

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from .cache import Cache, CacheError
from .models import Hub, Inventory

log = logging.getLogger(__name__)

EXISTENCE_TTL = timedelta(minutes=10)

IdLike = Union[str, uuid.UUID]


class InventoryError(Exception):
    """Base class for inventory update failures."""

    default_message = "inventory error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class HubNotFoundError(InventoryError):
    """The hub named in an update does not exist."""

    default_message = "hub not found"


class SKUNotFoundError(InventoryError):
    """The SKU is not stocked at the hub named in an update."""

    default_message = "SKU not found"


class InsufficientQuantityError(InventoryError):
    """The update would take the stock level below zero."""

    default_message = "not enough inventory"


@dataclass(frozen=True)
class InventoryUpdateRequest:
    """A request to change the stock of a SKU at a hub."""

    sku_id: uuid.UUID
    hub_id: uuid.UUID
    quantity_change: int
    transaction_type: str


def _as_uuid(value: IdLike) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        raise ValueError(f"invalid UUID: {value!r}")
    return uuid.UUID(value)


def _required_uuid(data: Mapping[str, Any], name: str) -> uuid.UUID:
    value = data.get(name)
    if value is None:
        raise ValueError(f"{name} is required")
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    parsed = uuid.UUID(value)
    if parsed.int == 0:
        raise ValueError(f"{name} is required")
    return parsed


def parse_update_request(data: Any) -> InventoryUpdateRequest:
    """Validate a decoded JSON body; raise ValueError if it is unusable."""
    if not isinstance(data, Mapping):
        raise ValueError("request body must be a JSON object")
    sku_id = _required_uuid(data, "sku_id")
    hub_id = _required_uuid(data, "hub_id")

    quantity_change = data.get("quantity_change")
    if quantity_change is None or quantity_change == 0:
        raise ValueError("quantity_change is required")
    if isinstance(quantity_change, bool) or not isinstance(quantity_change, int):
        raise ValueError("quantity_change must be an integer")

    transaction_type = data.get("transaction_type")
    if not transaction_type:
        raise ValueError("transaction_type is required")
    if not isinstance(transaction_type, str):
        raise ValueError("transaction_type must be a string")

    return InventoryUpdateRequest(sku_id, hub_id, quantity_change, transaction_type)


def update_inventory(
    session: Session,
    sku_id: IdLike,
    hub_id: IdLike,
    quantity_change: int,
    transaction_type: str,
) -> Inventory:
    """Apply quantity_change to the stock of a SKU at a hub and return the row.

    The transaction type describes the change for the caller; the stock level
    is adjusted by quantity_change alone.
    """
    sku_uuid = _as_uuid(sku_id)
    hub_uuid = _as_uuid(hub_id)

    if session.get(Hub, hub_uuid) is None:
        raise HubNotFoundError()

    inventory = session.scalars(
        select(Inventory)
        .where(Inventory.product_id == sku_uuid, Inventory.hub_id == hub_uuid)
        .order_by(Inventory.id)
        .limit(1)
    ).first()
    if inventory is None:
        raise SKUNotFoundError()

    new_quantity = (inventory.quantity or 0) + quantity_change
    if new_quantity < 0:
        raise InsufficientQuantityError()

    inventory.quantity = new_quantity
    session.flush()
    log.debug(
        "inventory %s changed by %d (%s)", inventory.id, quantity_change, transaction_type
    )
    return inventory


def _cached_check(cache: Cache, key: str, lookup: Callable[[], bool]) -> bool:
    try:
        cached = cache.get(key)
    except CacheError as exc:
        log.warning("cache read of %s failed: %s", key, exc)
        cached = None
    if cached:
        return cached == "true"

    exists = lookup()
    try:
        cache.set(key, "true" if exists else "false", EXISTENCE_TTL)
    except CacheError as exc:
        log.warning("cache write of %s failed: %s", key, exc)
    return exists


def hub_exists(session: Session, cache: Cache, hub_id: IdLike) -> bool:
    """Tell whether a hub exists, consulting and filling the cache."""
    hub_uuid = _as_uuid(hub_id)
    return _cached_check(
        cache,
        f"hub:exists:{hub_uuid}",
        lambda: session.get(Hub, hub_uuid) is not None,
    )


def sku_on_hub_exists(
    session: Session, cache: Cache, sku_id: IdLike, hub_id: IdLike
) -> bool:
    """Tell whether a SKU is stocked at a hub, consulting and filling the cache."""
    sku_uuid = _as_uuid(sku_id)
    hub_uuid = _as_uuid(hub_id)

    def lookup() -> bool:
        row = session.scalars(
            select(Inventory.id)
            .where(Inventory.product_id == sku_uuid, Inventory.hub_id == hub_uuid)
            .limit(1)
        ).first()
        return row is not None

    return _cached_check(cache, f"sku_on_hub:exists:{hub_uuid}:{sku_uuid}", lookup)