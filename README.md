# stockhub

A small inventory management HTTP service built on Flask. It keeps track of
**hubs** (warehouses or stores), **SKUs** (products) and how many of each SKU
is held at each hub. Data lives in a SQL database through SQLAlchemy, and
existence checks are cached in Redis.

## Installation

```
pip install .
```

The `stockhub` command connects to PostgreSQL, so a PostgreSQL driver that
SQLAlchemy can use (for example `psycopg2`) must be installed alongside.

For running the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
stockhub --db-user user --db-password password --db-name stockhub
```

The command connects to the database (a master and one read replica),
creates any missing tables, connects to Redis and serves HTTP with Flask's
built-in server. It exits with status 1 if the database or Redis settings
cannot be used.

Options:

| Option            | Default          | Meaning                                             |
|-------------------|------------------|-----------------------------------------------------|
| `--name`          | `stockhub`       | Service name shown in the start-up log line         |
| `--host`          | `0.0.0.0`        | Address to listen on                                |
| `--port`          | `8080`           | Port to listen on                                   |
| `--db-host`       | `localhost`      | PostgreSQL master host                              |
| `--db-port`       | `5432`           | PostgreSQL port                                     |
| `--db-user`       | `postgres`       | PostgreSQL user                                     |
| `--db-password`   | empty            | PostgreSQL password                                 |
| `--db-name`       | `stockhub`       | Database name                                       |
| `--db-debug`      | off              | Log SQL statements on the master engine             |
| `--replica-host`  | the master host  | Read replica host                                   |
| `--redis-host`    | `localhost:6379` | Redis `host:port`; may be given more than once      |
| `--redis-db`      | `0`              | Redis database number                               |
| `--redis-cluster` | off              | Connect to a Redis cluster using the given hosts    |

## HTTP API

| Method | Path                   | Purpose                                  |
|--------|------------------------|------------------------------------------|
| POST   | `/hubs`                | Create a hub                             |
| GET    | `/hubs`                | List hubs                                |
| GET    | `/hubs/<id>`           | Fetch one hub                            |
| PUT    | `/hubs/<id>`           | Replace a hub's name and location        |
| DELETE | `/hubs/<id>`           | Delete a hub                             |
| POST   | `/skus`                | Create a SKU                             |
| GET    | `/skus`                | List SKUs                                |
| GET    | `/skus/<id>`           | Fetch one SKU                            |
| PUT    | `/skus/<id>`           | Update the fields given for a SKU        |
| DELETE | `/skus/<id>`           | Delete a SKU                             |
| POST   | `/inventory/update`    | Change the quantity of a SKU at a hub    |
| GET    | `/validate/hub`        | Check whether a hub exists               |
| GET    | `/validate/sku_on_hub` | Check whether a SKU is stocked at a hub  |

Hubs and SKUs are sent and returned as JSON objects with the keys `ID`,
`Name`, `Location`, `CreatedAt`, `UpdatedAt` (hubs) and `ID`, `Name`, `SKU`,
`Price`, `Quantity`, `CreatedAt`, `UpdatedAt` (SKUs). Request keys are matched
without regard to case; ids and timestamps are set by the server. Errors come
back as `{"error": "..."}`.

An inventory update takes a JSON body such as:

```json
{
  "sku_id": "6f1c2a0e-1d2b-4c1e-9a55-0d8e2b1f7c11",
  "hub_id": "0b7e4b8a-3f0e-4d7c-8a2e-5c9d1e6f2a33",
  "quantity_change": -3,
  "transaction_type": "remove"
}
```

All four fields are required, and `quantity_change` must be a non-zero
integer. The quantity is changed by `quantity_change` whatever the
`transaction_type`. The service answers 404 when the hub or the SKU-at-hub
stock record is missing and 400 when the change would drive the quantity
below zero.

`/validate/hub` takes `hub_id` as a query parameter, and
`/validate/sku_on_hub` takes `sku_id` and `hub_id`. Both answer
`{"exists": true}` or `{"exists": false}`, and cache the answer in Redis for
ten minutes. Updating or deleting a hub clears its cached `/validate/hub`
answer.

## Using it as a library

```python
from stockhub.app import create_app
from stockhub.cache import Cache, connect_redis, RedisSettings
from stockhub.db import Database, build_database_url
from stockhub.inventory import update_inventory, InsufficientQuantityError

database = Database(build_database_url("user", "password", "localhost", 5432, "stockhub"))
database.create_schema()
cache = connect_redis(RedisSettings(hosts=("localhost:6379",)))
app = create_app(database, cache)
```

- `stockhub.models` holds the SQLAlchemy models `Hub`, `SKU`, `Inventory` and
  `InventoryTransaction` on the declarative `Base`; each has `to_dict()`
  returning the JSON form shown above.
- `stockhub.db.Database(master_url, slave_urls=())` opens sessions with
  `master_session()` and `slave_session()` (replicas in turn, or the master
  when there are none); both commit on success and roll back on error.
  `create_schema()` creates missing tables. `DatabaseSettings` is a plain
  holder for master and replica connection settings, and
  `build_migration_url(...)` renders a `postgres://...?sslmode=disable` URL.
- `stockhub.cache.Cache` wraps any Redis client with `set`, `get`,
  `set_json`, `get_json` and `delete`, raising `CacheError` on failure;
  `cache_hub`, `get_cached_hub`, `delete_hub_cache`, `cache_sku`,
  `get_cached_sku` and `delete_sku_cache` store models under `hub:<id>` and
  `sku:<id>`.
- `stockhub.inventory.update_inventory(session, sku_id, hub_id,
  quantity_change, transaction_type)` applies a stock change and returns the
  `Inventory` row, raising `HubNotFoundError`, `SKUNotFoundError` or
  `InsufficientQuantityError` (all `InventoryError`). `parse_update_request`
  validates a decoded JSON body, and `hub_exists` / `sku_on_hub_exists`
  perform the cached existence checks.

## What it does not do

- There is no HTTP endpoint that creates or deletes `Inventory` rows; stock
  records have to be inserted into the database by other means before
  `/inventory/update` can change them.
- Inventory updates do not write `InventoryTransaction` records.
- There are no migration scripts; the schema is created from the models with
  `create_schema()`, which adds missing tables but never alters existing ones.
- Settings come only from command-line options; no configuration file or
  environment variables are read.