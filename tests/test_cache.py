import json
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from stockhub.cache import (
    Cache,
    CacheError,
    RedisSettings,
    cache_hub,
    cache_sku,
    connect_redis,
    delete_hub_cache,
    delete_sku_cache,
    get_cached_hub,
    get_cached_sku,
)
from stockhub.models import SKU, Hub


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.expiry = {}

    def set(self, name, value, px=None):
        self.data[name] = value
        self.expiry[name] = px
        return True

    def get(self, name):
        value = self.data.get(name)
        return None if value is None else value.encode("utf-8")

    def delete(self, *names):
        return sum(1 for name in names if self.data.pop(name, None) is not None)


class BrokenRedis:
    def get(self, name):
        raise RedisConnectionError("connection refused")


@pytest.fixture
def fake():
    return FakeRedis()


@pytest.fixture
def cache(fake):
    return Cache(fake)


def _hub():
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    return Hub(
        id=uuid.uuid4(), name="North", location="Dock 4", created_at=stamp, updated_at=stamp
    )


def _sku():
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    return SKU(
        id=uuid.uuid4(),
        name="Widget",
        sku="W-1",
        price=Decimal("12.50"),
        quantity=7,
        created_at=stamp,
        updated_at=stamp,
    )


def test_set_and_get_round_trip(cache):
    cache.set("greeting", "hello", 60)
    assert cache.get("greeting") == "hello"


def test_get_missing_returns_none(cache):
    assert cache.get("absent") is None


def test_set_rejects_non_string(cache):
    with pytest.raises(CacheError, match="value must be a string"):
        cache.set("k", 5, 60)


def test_ttl_is_sent_in_milliseconds(cache, fake):
    cache.set("k", "v", timedelta(minutes=10))
    assert cache.get("k") == "v"
    assert fake.expiry["k"] == 600000


def test_zero_ttl_means_no_expiry(cache, fake):
    cache.set("k", "v", 0)
    assert cache.get("k") == "v"
    assert fake.expiry["k"] is None


def test_json_round_trip(cache):
    value = {"a": [1, 2, 3], "b": {"c": "d"}}
    cache.set_json("doc", value, 30)
    assert cache.get_json("doc") == value


def test_set_json_encodes_uuid(cache, fake):
    ident = uuid.uuid4()
    cache.set_json("doc", {"id": ident}, 30)
    assert json.loads(fake.data["doc"]) == {"id": str(ident)}


def test_set_json_rejects_unserializable(cache):
    with pytest.raises(CacheError, match="failed to marshal JSON"):
        cache.set_json("doc", object(), 30)


def test_get_json_rejects_invalid_text(cache, fake):
    fake.data["doc"] = "not json"
    with pytest.raises(CacheError, match="failed to unmarshal JSON"):
        cache.get_json("doc")


def test_get_json_missing_returns_none(cache):
    assert cache.get_json("absent") is None


def test_delete_counts_existing_keys(cache):
    cache.set("a", "1", 10)
    cache.set("b", "2", 10)
    assert cache.delete("a", "b", "c") == 2
    assert cache.get("a") is None


def test_delete_without_keys_fails(cache):
    with pytest.raises(CacheError):
        cache.delete()


def test_redis_errors_become_cache_errors():
    with pytest.raises(CacheError):
        Cache(BrokenRedis()).get("k")


def test_hub_cache_round_trip(cache, fake):
    hub = _hub()
    cache_hub(cache, hub, timedelta(minutes=5))
    assert f"hub:{hub.id}" in fake.data
    restored = get_cached_hub(cache, str(hub.id))
    assert restored.to_dict() == hub.to_dict()


def test_hub_cache_delete(cache):
    hub = _hub()
    cache_hub(cache, hub, 60)
    assert delete_hub_cache(cache, hub.id) == 1
    assert get_cached_hub(cache, hub.id) is None


def test_hub_cache_malformed_document(cache, fake):
    ident = uuid.uuid4()
    fake.data[f"hub:{ident}"] = json.dumps({"ID": str(ident)})
    with pytest.raises(CacheError):
        get_cached_hub(cache, ident)


def test_sku_cache_round_trip(cache, fake):
    sku = _sku()
    cache_sku(cache, sku, 60)
    assert f"sku:{sku.id}" in fake.data
    restored = get_cached_sku(cache, sku.id)
    assert restored.price == sku.price
    assert restored.to_dict() == sku.to_dict()


def test_sku_cache_delete(cache):
    sku = _sku()
    cache_sku(cache, sku, 60)
    assert delete_sku_cache(cache, str(sku.id)) == 1
    assert get_cached_sku(cache, sku.id) is None


def test_connect_redis_uses_settings():
    settings = RedisSettings(hosts=["cache.example.com:6380"], db=2, pool_size=8)
    cache = connect_redis(settings)
    kwargs = cache.client.connection_pool.connection_kwargs
    assert kwargs["host"] == "cache.example.com"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 2
    assert cache.client.connection_pool.max_connections == 8


def test_connect_redis_default_port():
    cache = connect_redis(RedisSettings(hosts=["cache.example.com"]))
    assert cache.client.connection_pool.connection_kwargs["port"] == 6379


def test_connect_redis_requires_hosts():
    with pytest.raises(CacheError):
        connect_redis(RedisSettings(hosts=[]))


def test_connect_redis_rejects_bad_port():
    with pytest.raises(CacheError):
        connect_redis(RedisSettings(hosts=["cache.example.com:abc"]))