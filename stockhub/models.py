"""Database models for hubs, SKUs, stock levels and stock movements."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Uuid, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _id_column() -> Any:
    return mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


def _time_column(updating: bool = False) -> Any:
    return mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow if updating else None
    )


def _ref(table: str) -> Any:
    return mapped_column(Uuid, ForeignKey(f"{table}.id"), nullable=False)


def _json_key(attr: str) -> str:
    """Turn an attribute name such as ``hub_id`` into its JSON key ``HubID``."""
    special = {"id": "ID", "sku": "SKU"}
    return "".join(special.get(part, part.capitalize()) for part in attr.split("_"))


def _json_value(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Base):
        return _row_dict(value)
    return value


def _row_dict(row: "Base") -> dict[str, Any]:
    """Return a row as a JSON-ready dictionary; unloaded relations become None."""
    mapper = row.__mapper__
    unloaded = inspect(row).unloaded
    result = {_json_key(a.key): _json_value(getattr(row, a.key)) for a in mapper.column_attrs}
    for rel in mapper.relationships:
        value = None if rel.key in unloaded else getattr(row, rel.key)
        result[_json_key(rel.key)] = _json_value(value)
    return result


class Base(DeclarativeBase):
    """Declarative base shared by all models."""


class Hub(Base):
    """A warehouse or fulfilment hub."""

    __tablename__ = "hubs"

    id: Mapped[uuid.UUID] = _id_column()
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(200), default="")
    created_at: Mapped[datetime] = _time_column()
    updated_at: Mapped[datetime] = _time_column(updating=True)

    def to_dict(self) -> dict[str, Any]:
        """Return the hub as a JSON-ready dictionary."""
        return _row_dict(self)


class SKU(Base):
    """A stock keeping unit: a product that can be held at hubs."""

    __tablename__ = "skus"

    id: Mapped[uuid.UUID] = _id_column()
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    sku: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = _time_column()
    updated_at: Mapped[datetime] = _time_column(updating=True)

    def to_dict(self) -> dict[str, Any]:
        """Return the SKU as a JSON-ready dictionary."""
        return _row_dict(self)


class Inventory(Base):
    """The quantity of one SKU held at one hub."""

    __tablename__ = "inventories"

    id: Mapped[uuid.UUID] = _id_column()
    hub_id: Mapped[uuid.UUID] = _ref("hubs")
    product_id: Mapped[uuid.UUID] = _ref("skus")
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = _time_column()
    updated_at: Mapped[datetime] = _time_column(updating=True)

    hub: Mapped[Hub] = relationship()
    product: Mapped[SKU] = relationship()

    def to_dict(self) -> dict[str, Any]:
        """Return the stock level as a JSON-ready dictionary."""
        return _row_dict(self)


class InventoryTransaction(Base):
    """A recorded change to the stock of a SKU at a hub."""

    __tablename__ = "inventory_transactions"

    id: Mapped[uuid.UUID] = _id_column()
    product_id: Mapped[uuid.UUID] = _ref("skus")
    hub_id: Mapped[uuid.UUID] = _ref("hubs")
    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)
    # e.g. restock, deduct, adjustment
    transaction_type: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = _time_column()

    product: Mapped[SKU] = relationship()
    hub: Mapped[Hub] = relationship()

    def to_dict(self) -> dict[str, Any]:
        """Return the stock movement as a JSON-ready dictionary."""
        return _row_dict(self)