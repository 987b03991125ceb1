import uuid
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockhub.models import SKU, Base, Hub, Inventory, InventoryTransaction


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as db_session:
        yield db_session
    engine.dispose()


def _hub(session, name="Main"):
    hub = Hub(name=name)
    session.add(hub)
    session.flush()
    return hub


def _sku(session, code="W-1", price="9.99"):
    sku = SKU(name="Widget", sku=code, price=Decimal(price))
    session.add(sku)
    session.flush()
    return sku


def test_hub_gets_generated_id_and_defaults(session):
    hub = _hub(session)
    assert isinstance(hub.id, uuid.UUID)
    assert hub.location == ""
    assert hub.created_at == hub.updated_at or hub.created_at <= hub.updated_at


def test_hub_to_dict_fields(session):
    hub = _hub(session, "North")
    data = hub.to_dict()
    assert set(data) == {"ID", "Name", "Location", "CreatedAt", "UpdatedAt"}
    assert data["ID"] == str(hub.id)
    assert data["Name"] == "North"
    assert datetime.fromisoformat(data["CreatedAt"]) == hub.created_at


def test_hub_name_is_required(session):
    session.add(Hub(name=None))
    with pytest.raises(IntegrityError):
        session.flush()


def test_sku_quantity_defaults_to_zero(session):
    sku = _sku(session)
    assert sku.quantity == 0
    assert sku.to_dict()["Quantity"] == 0


def test_sku_to_dict_price_and_code(session):
    sku = _sku(session, "W-2", "9.99")
    data = sku.to_dict()
    assert data["Price"] == 9.99
    assert data["SKU"] == "W-2"
    assert data["ID"] == str(sku.id)


def test_sku_code_is_unique(session):
    _sku(session, "DUP")
    session.add(SKU(name="Other", sku="DUP", price=Decimal("1.00")))
    with pytest.raises(IntegrityError):
        session.flush()


def test_inventory_links_hub_and_product(session):
    hub = _hub(session)
    sku = _sku(session)
    inventory = Inventory(hub=hub, product=sku, quantity=5)
    session.add(inventory)
    session.flush()
    assert inventory.hub_id == hub.id
    assert inventory.product_id == sku.id
    data = inventory.to_dict()
    assert data["Quantity"] == 5
    assert data["Hub"] == hub.to_dict()
    assert data["Product"] == sku.to_dict()


def test_inventory_quantity_defaults_to_zero(session):
    inventory = Inventory(hub=_hub(session), product=_sku(session))
    session.add(inventory)
    session.flush()
    assert inventory.quantity == 0


def test_inventory_to_dict_without_loaded_relations():
    hub_id, product_id = uuid.uuid4(), uuid.uuid4()
    data = Inventory(hub_id=hub_id, product_id=product_id).to_dict()
    assert data["HubID"] == str(hub_id)
    assert data["ProductID"] == str(product_id)
    assert data["Hub"] is None
    assert data["Product"] is None


def test_inventory_transaction_to_dict(session):
    hub = _hub(session)
    sku = _sku(session)
    txn = InventoryTransaction(
        hub=hub, product=sku, quantity_change=-3, transaction_type="deduct"
    )
    session.add(txn)
    session.flush()
    data = txn.to_dict()
    assert data["QuantityChange"] == -3
    assert data["TransactionType"] == "deduct"
    assert data["HubID"] == str(hub.id)
    assert "UpdatedAt" not in data


def test_inventory_transaction_type_required(session):
    session.add(
        InventoryTransaction(
            hub=_hub(session), product=_sku(session), quantity_change=1
        )
    )
    with pytest.raises(IntegrityError):
        session.flush()