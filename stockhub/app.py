"""HTTP service exposing hub, SKU and inventory endpoints."""

import argparse
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterator, Optional, Sequence

from flask import Flask, jsonify, request
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from .cache import Cache, CacheError, RedisSettings, connect_redis
from .db import Database, build_database_url
from .inventory import (
    HubNotFoundError,
    InsufficientQuantityError,
    SKUNotFoundError,
    hub_exists,
    parse_update_request,
    sku_on_hub_exists,
    update_inventory,
)
from .models import SKU, Hub

log = logging.getLogger(__name__)

_UPDATE_ERRORS = {HubNotFoundError: 404, SKUNotFoundError: 404, InsufficientQuantityError: 400}


class _HttpError(Exception):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_id(text: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(text)
    except ValueError:
        return None


def _require_id(text: str, status: int, message: str) -> uuid.UUID:
    parsed = _parse_id(text)
    if parsed is None:
        raise _HttpError(status, message)
    return parsed


def _json_object(message: str = "request body must be a JSON object") -> dict:
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise _HttpError(400, message)
    return data


def _field(data: dict, name: str, kinds: Any) -> Any:
    """Look a field up by name, case-insensitively, and check its type."""
    value = data.get(name)
    if name not in data:
        value = next((v for k, v in data.items() if k.casefold() == name.casefold()), None)
    if value is not None and (isinstance(value, bool) or not isinstance(value, kinds)):
        raise ValueError(f"{name} has the wrong type")
    return value


def _hub_payload(data: dict) -> tuple[str, str]:
    try:
        return _field(data, "Name", str) or "", _field(data, "Location", str) or ""
    except ValueError as exc:
        raise _HttpError(400, "invalid request body") from exc


def _apply_sku_fields(sku: SKU, data: dict) -> None:
    fields = {"name": ("Name", str), "sku": ("SKU", str),
              "price": ("Price", (int, float)), "quantity": ("Quantity", int)}
    try:
        updates = {attr: _field(data, key, kinds) for attr, (key, kinds) in fields.items()}
    except ValueError as exc:
        raise _HttpError(400, str(exc)) from exc
    for attr, value in updates.items():
        if value is not None:
            setattr(sku, attr, Decimal(str(value)) if attr == "price" else value)


@contextmanager
def _db_errors(status: int, message: Optional[str] = None) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        log.error("database error: %s", exc)
        raise _HttpError(status, message or str(exc)) from exc


def _forget(cache: Cache, key: str) -> None:
    try:
        cache.delete(key)
    except CacheError as exc:
        log.warning("cache invalidation of %s failed: %s", key, exc)


def create_app(database: Database, cache: Cache) -> Flask:
    """Build the Flask application with all routes registered."""
    app = Flask(__name__)

    @app.errorhandler(_HttpError)
    def _handle_http_error(exc: _HttpError):
        return jsonify({"error": exc.message}), exc.status

    @app.errorhandler(SQLAlchemyError)
    def _handle_db_error(exc: SQLAlchemyError):
        log.error("database error: %s", exc)
        return jsonify({"error": "internal error"}), 500

    def _list(model: Any, message: Optional[str]):
        with database.master_session() as session, _db_errors(500, message):
            body = [row.to_dict() for row in session.scalars(select(model)).all()]
        return jsonify(body), 200

    def _fetch(session: Any, model: Any, ident: uuid.UUID, message: str) -> Any:
        with _db_errors(404, message):
            row = session.get(model, ident)
        if row is None:
            raise _HttpError(404, message)
        return row

    def _create(row: Any, message: Optional[str]):
        with database.master_session() as session:
            with _db_errors(500, message):
                session.add(row)
                session.flush()
            body = row.to_dict()
        return jsonify(body), 201

    @app.post("/hubs")
    def create_hub():
        name, location = _hub_payload(_json_object("invalid request body"))
        now = _now()
        return _create(Hub(id=uuid.uuid4(), name=name, location=location,
                           created_at=now, updated_at=now), "could not create hub")

    @app.get("/hubs")
    def list_hubs():
        return _list(Hub, "could not fetch hubs")

    @app.get("/hubs/<hub_id>")
    def get_hub(hub_id: str):
        hub_uuid = _require_id(hub_id, 400, "invalid hub ID format")
        with database.master_session() as session:
            body = _fetch(session, Hub, hub_uuid, "hub not found").to_dict()
        return jsonify(body), 200

    @app.put("/hubs/<hub_id>")
    def update_hub(hub_id: str):
        hub_uuid = _require_id(hub_id, 400, "invalid hub ID format")
        with database.master_session() as session:
            hub = _fetch(session, Hub, hub_uuid, "hub not found")
            hub.name, hub.location = _hub_payload(_json_object("invalid request body"))
            hub.updated_at = _now()
            with _db_errors(500, "could not update hub"):
                session.flush()
            body = hub.to_dict()
        _forget(cache, f"hub:exists:{hub_uuid}")
        return jsonify(body), 200

    @app.delete("/hubs/<hub_id>")
    def delete_hub(hub_id: str):
        hub_uuid = _require_id(hub_id, 400, "invalid hub ID format")
        with database.master_session() as session, _db_errors(400, "could not delete hub"):
            session.execute(delete(Hub).where(Hub.id == hub_uuid))
        _forget(cache, f"hub:exists:{hub_uuid}")
        return jsonify({"message": "hub deleted"}), 200

    @app.post("/skus")
    def create_sku():
        data = _json_object()
        now = _now()
        sku = SKU(id=uuid.uuid4(), name="", sku="", price=Decimal("0"), quantity=0,
                  created_at=now, updated_at=now)
        _apply_sku_fields(sku, data)
        return _create(sku, None)

    @app.get("/skus")
    def list_skus():
        return _list(SKU, None)

    @app.get("/skus/<sku_id>")
    def get_sku(sku_id: str):
        sku_uuid = _require_id(sku_id, 404, "SKU not found")
        with database.master_session() as session:
            body = _fetch(session, SKU, sku_uuid, "SKU not found").to_dict()
        return jsonify(body), 200

    @app.put("/skus/<sku_id>")
    def update_sku(sku_id: str):
        sku_uuid = _require_id(sku_id, 404, "SKU not found")
        with database.master_session() as session:
            sku = _fetch(session, SKU, sku_uuid, "SKU not found")
            _apply_sku_fields(sku, _json_object())
            sku.updated_at = _now()
            with _db_errors(500):
                session.flush()
            body = sku.to_dict()
        _forget(cache, f"sku:exists:{sku_uuid}")
        return jsonify(body), 200

    @app.delete("/skus/<sku_id>")
    def delete_sku(sku_id: str):
        sku_uuid = _require_id(sku_id, 500, f"invalid UUID: {sku_id!r}")
        with database.master_session() as session, _db_errors(500):
            session.execute(delete(SKU).where(SKU.id == sku_uuid))
        _forget(cache, f"sku:exists:{sku_uuid}")
        return jsonify({"message": "SKU deleted"}), 200

    @app.post("/inventory/update")
    def update_inventory_route():
        try:
            update = parse_update_request(request.get_json(force=True, silent=True))
        except ValueError as exc:
            log.info("invalid inventory payload: %s", exc)
            raise _HttpError(400, "invalid request body") from exc
        try:
            with database.master_session() as session:
                update_inventory(session, update.sku_id, update.hub_id,
                                 update.quantity_change, update.transaction_type)
        except tuple(_UPDATE_ERRORS) as exc:
            log.info("inventory update refused: %s", exc)
            raise _HttpError(_UPDATE_ERRORS[type(exc)], str(exc)) from exc
        except SQLAlchemyError as exc:
            log.error("inventory update failed: %s", exc)
            raise _HttpError(500, "internal error") from exc
        return jsonify({"message": "inventory updated"}), 200

    @app.get("/validate/hub")
    def validate_hub():
        hub_uuid = _require_id(request.args.get("hub_id", ""), 400, "invalid hub ID")
        with database.master_session() as session, _db_errors(500, "internal error"):
            exists = hub_exists(session, cache, hub_uuid)
        return jsonify({"exists": exists}), 200

    @app.get("/validate/sku_on_hub")
    def validate_sku_on_hub():
        sku_uuid = _parse_id(request.args.get("sku_id", ""))
        hub_uuid = _parse_id(request.args.get("hub_id", ""))
        if sku_uuid is None or hub_uuid is None:
            raise _HttpError(400, "invalid SKU or Hub ID")
        with database.master_session() as session, _db_errors(500, "internal error"):
            exists = sku_on_hub_exists(session, cache, sku_uuid, hub_uuid)
        return jsonify({"exists": exists}), 200

    return app


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stockhub", description="Run the inventory management HTTP service."
    )
    parser.add_argument("--name", default="stockhub")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--db-host", default="localhost")
    parser.add_argument("--db-port", default="5432")
    parser.add_argument("--db-user", default="postgres")
    parser.add_argument("--db-password", default="")
    parser.add_argument("--db-name", default="stockhub")
    parser.add_argument("--db-debug", action="store_true")
    parser.add_argument("--replica-host", default=None)
    parser.add_argument("--redis-host", action="append", default=None)
    parser.add_argument("--redis-db", type=int, default=0)
    parser.add_argument("--redis-cluster", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the service; return a non-zero status if it cannot start."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _build_parser().parse_args(argv)
    try:
        def url(host: str) -> str:
            return build_database_url(
                args.db_user, args.db_password, host, args.db_port, args.db_name
            )

        database = Database(url(args.db_host), [url(args.replica_host or args.db_host)],
                            echo=args.db_debug)
        log.info("Database connection established successfully")
        database.create_schema()
        log.info("Migrations applied successfully")
        cache = connect_redis(RedisSettings(
            hosts=tuple(args.redis_host or ("localhost:6379",)),
            cluster_mode=args.redis_cluster,
            db=args.redis_db,
        ))
        log.info("Redis client initialized successfully")
    except (ValueError, SQLAlchemyError, CacheError) as exc:
        log.error("failed to start: %s", exc)
        return 1

    log.info("Starting %s on %s:%d", args.name, args.host, args.port)
    create_app(database, cache).run(host=args.host, port=args.port)
    return 0