"""Redis-backed cache of strings, JSON documents, hubs and SKUs."""

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional, Sequence, Union

import redis
from redis.cluster import ClusterNode, RedisCluster
from redis.exceptions import RedisError

from .models import SKU, Hub

Ttl = Union[timedelta, int, float]


class CacheError(Exception):
    """Raised when a cache operation fails."""


@dataclass(frozen=True)
class RedisSettings:
    """Connection settings for the Redis cache."""

    hosts: Sequence[str] = ("localhost:6379",)
    cluster_mode: bool = False
    serve_reads_from_slaves: bool = False
    serve_reads_from_master_and_slaves: bool = False
    pool_size: int = 0
    db: int = 0
    dial_timeout: float = 5.0
    read_timeout: float = 3.0
    write_timeout: float = 3.0


def _parse_host(entry: str) -> tuple[str, int]:
    host, sep, port = entry.rpartition(":")
    if not sep:
        return entry, 6379
    try:
        return host, int(port)
    except ValueError as exc:
        raise CacheError(f"invalid redis host {entry!r}") from exc


def connect_redis(settings: RedisSettings) -> "Cache":
    """Create a cache backed by a Redis server or cluster."""
    nodes = [_parse_host(entry) for entry in settings.hosts]
    if not nodes:
        raise CacheError("no redis hosts configured")
    common = dict(
        socket_connect_timeout=settings.dial_timeout,
        socket_timeout=max(settings.read_timeout, settings.write_timeout),
        decode_responses=True,
    )
    if not settings.cluster_mode:
        host, port = nodes[0]
        return Cache(redis.Redis(
            host=host, port=port, db=settings.db,
            max_connections=settings.pool_size or None, **common,
        ))
    try:
        return Cache(RedisCluster(
            startup_nodes=[ClusterNode(host, port) for host, port in nodes],
            read_from_replicas=(
                settings.serve_reads_from_slaves or settings.serve_reads_from_master_and_slaves
            ),
            **common,
        ))
    except RedisError as exc:
        raise CacheError(f"failed to initialize redis client: {exc}") from exc


def _ttl_ms(ttl: Ttl) -> Optional[int]:
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    return int(seconds * 1000) or None if seconds > 0 else None


def _json_default(value: Any) -> Any:
    if isinstance(value, (uuid.UUID, datetime, Decimal)):
        return float(value) if isinstance(value, Decimal) else str(value) if isinstance(
            value, uuid.UUID) else value.isoformat()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


class Cache:
    """A thin cache layer over a Redis client."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def _call(self, action: str, *args: Any, **kwargs: Any) -> Any:
        try:
            return getattr(self.client, action)(*args, **kwargs)
        except RedisError as exc:
            raise CacheError(f"redis {action} failed: {exc}") from exc

    def set(self, key: str, value: str, ttl: Ttl) -> None:
        """Store a string under key; a non-positive ttl means no expiry."""
        if not isinstance(value, str):
            raise CacheError("value must be a string")
        self._call("set", key, value, px=_ttl_ms(ttl))

    def get(self, key: str) -> Optional[str]:
        """Return the string stored under key, or None if it is absent."""
        raw = self._call("get", key)
        return raw.decode("utf-8") if isinstance(raw, bytes) else raw

    def set_json(self, key: str, value: Any, ttl: Ttl) -> None:
        """Store value encoded as JSON."""
        try:
            text = json.dumps(value, default=_json_default)
        except (TypeError, ValueError) as exc:
            raise CacheError(f"failed to marshal JSON: {exc}") from exc
        self.set(key, text, ttl)

    def get_json(self, key: str) -> Any:
        """Return the decoded JSON stored under key, or None if it is absent."""
        text = self.get(key)
        if text is None:
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            raise CacheError(f"failed to unmarshal JSON: {exc}") from exc

    def delete(self, *keys: str) -> int:
        """Remove keys and return how many existed."""
        if not keys:
            raise CacheError("no keys to delete")
        return int(self._call("delete", *keys))


def _time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value is not None else None


def _load(cache: Cache, key: str, build: Any) -> Any:
    data = cache.get_json(key)
    if data is None:
        return None
    try:
        return build(data)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise CacheError(f"failed to unmarshal JSON: {exc}") from exc


def cache_hub(cache: Cache, hub: Hub, ttl: Ttl) -> None:
    """Cache a hub under its id."""
    cache.set_json(f"hub:{hub.id}", hub.to_dict(), ttl)


def get_cached_hub(cache: Cache, hub_id: Union[str, uuid.UUID]) -> Optional[Hub]:
    """Return the cached hub, or None if it is not cached."""
    return _load(cache, f"hub:{hub_id}", lambda data: Hub(
        id=uuid.UUID(data["ID"]),
        name=data["Name"],
        location=data.get("Location", ""),
        created_at=_time(data.get("CreatedAt")),
        updated_at=_time(data.get("UpdatedAt")),
    ))


def delete_hub_cache(cache: Cache, hub_id: Union[str, uuid.UUID]) -> int:
    """Remove a cached hub."""
    return cache.delete(f"hub:{hub_id}")


def cache_sku(cache: Cache, sku: SKU, ttl: Ttl) -> None:
    """Cache a SKU under its id."""
    cache.set_json(f"sku:{sku.id}", sku.to_dict(), ttl)


def get_cached_sku(cache: Cache, sku_id: Union[str, uuid.UUID]) -> Optional[SKU]:
    """Return the cached SKU, or None if it is not cached."""
    return _load(cache, f"sku:{sku_id}", lambda data: SKU(
        id=uuid.UUID(data["ID"]),
        name=data["Name"],
        sku=data["SKU"],
        price=None if data["Price"] is None else Decimal(str(data["Price"])),
        quantity=data.get("Quantity", 0),
        created_at=_time(data.get("CreatedAt")),
        updated_at=_time(data.get("UpdatedAt")),
    ))


def delete_sku_cache(cache: Cache, sku_id: Union[str, uuid.UUID]) -> int:
    """Remove a cached SKU."""
    return cache.delete(f"sku:{sku_id}")