"""
CragDB Backend — Query Cache
==============================

What:  Short-lived cache for raw aggregate reads (route counts, visits per
       month, popular crags, tick counts).
How:   Entries are keyed by a fingerprint of (query name, filter variants,
       viewer scope, extra params) and tagged with the tables they read.
       Every write committed through the transactional orchestrator calls
       `invalidate(tables)`, dropping every entry tagged with one of them.

Backends (settings.query_cache_backend):
    memory  In-process dict with TTL and an entry cap. Default; per worker.
    redis   Shared across workers. Degrades to "no cache" while Redis is
            unreachable (reads fall through to the database).
    none    Disabled.

Only JSON-serializable raw values are cached, never ORM instances.
"""

import hashlib
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set, Tuple

import redis

from cragdb.config import settings
from cragdb.schemas.filters import Filters, filter_key
from cragdb.schemas.viewer import Viewer

logger = logging.getLogger(__name__)

_MISS = object()


def fingerprint(
    name: str,
    filters: Filters = (),
    viewer: Optional[Viewer] = None,
    **params: Any,
) -> str:
    """
    Normalized cache key of a read.

    Filter order and parameter order do not matter; the viewer contributes
    only what changes visibility (anonymous / user id / admin).
    """
    scope = (
        {"anonymous": True}
        if viewer is None
        else {"user": str(viewer.user_id), "admin": viewer.is_admin}
    )
    payload = {
        "query": name,
        "filters": sorted(
            (filter_key(f) for f in filters), key=lambda k: json.dumps(k, sort_keys=True)
        ),
        "viewer": scope,
        "params": {k: str(v) for k, v in sorted(params.items())},
    }
    digest = hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8"))
    return f"{name}:{digest.hexdigest()}"


class QueryCache:
    """Interface shared by all backends. The base class caches nothing."""

    backend = "none"

    def get(self, key: str) -> Any:
        return _MISS

    def set(self, key: str, value: Any, tables: Iterable[str]) -> None:
        return None

    def invalidate(self, tables: Iterable[str]) -> int:
        return 0

    def clear(self) -> None:
        return None

    async def cached(
        self,
        key: str,
        tables: Iterable[str],
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the cached value for `key`, or run `loader` and cache its result."""
        value = self.get(key)
        if value is not _MISS:
            return value
        value = await loader()
        self.set(key, value, tables)
        return value


class MemoryQueryCache(QueryCache):
    """
    Bounded by `max_entries`: a full cache first drops expired entries, then
    the oldest ones (insertion order).
    """

    backend = "memory"

    def __init__(self, ttl: int, max_entries: int = 10_000):
        self.ttl = ttl
        self.max_entries = max_entries
        # key → (expires_at, tables, value)
        self._entries: Dict[str, Tuple[float, Set[str], Any]] = {}

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISS
        expires_at, _, value = entry
        if expires_at < time.monotonic():
            del self._entries[key]
            return _MISS
        return value

    def set(self, key: str, value: Any, tables: Iterable[str]) -> None:
        now = time.monotonic()
        self._entries.pop(key, None)
        if len(self._entries) >= self.max_entries:
            self._evict(now)
        self._entries[key] = (now + self.ttl, set(tables), value)

    def _evict(self, now: float) -> None:
        expired = [k for k, (expires_at, _, _) in self._entries.items() if expires_at < now]
        for key in expired:
            del self._entries[key]

        overflow = len(self._entries) - self.max_entries + 1
        if overflow > 0:
            for key in list(self._entries)[:overflow]:
                del self._entries[key]
            logger.debug("Query cache full, evicted %d oldest entries", overflow)

    def invalidate(self, tables: Iterable[str]) -> int:
        touched = set(tables)
        stale = [k for k, (_, tagged, _) in self._entries.items() if tagged & touched]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()


class RedisQueryCache(QueryCache):
    """
    Values live under `cragdb:q:<fingerprint>`; each table keeps a set of the
    keys tagged with it under `cragdb:t:<table>`.
    """

    backend = "redis"

    def __init__(self, url: str, ttl: int):
        self.url = url
        self.ttl = ttl
        self._client: Optional[redis.Redis] = None

    def _get_client(self) -> Optional[redis.Redis]:
        if self._client is None:
            try:
                client = redis.Redis.from_url(
                    self.url,
                    decode_responses=True,
                    socket_connect_timeout=2,  # Fail fast if Redis is down
                    socket_timeout=2,
                )
                client.ping()
                self._client = client
                logger.info("Query cache connected to Redis")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis unavailable, query cache disabled: %s", e)
                return None
        return self._client

    def ping(self) -> bool:
        client = self._get_client()
        if client is None:
            return False
        try:
            return bool(client.ping())
        except redis.RedisError:
            return False

    def get(self, key: str) -> Any:
        client = self._get_client()
        if client is None:
            return _MISS
        try:
            cached = client.get(f"cragdb:q:{key}")
        except redis.RedisError as e:
            logger.error("Query cache get error for '%s': %s", key, e)
            return _MISS
        if cached is None:
            return _MISS
        return json.loads(cached)

    def set(self, key: str, value: Any, tables: Iterable[str]) -> None:
        client = self._get_client()
        if client is None:
            return
        try:
            pipe = client.pipeline()
            pipe.setex(f"cragdb:q:{key}", self.ttl, json.dumps(value))
            for table in tables:
                pipe.sadd(f"cragdb:t:{table}", key)
                pipe.expire(f"cragdb:t:{table}", self.ttl)
            pipe.execute()
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.error("Query cache set error for '%s': %s", key, e)

    def invalidate(self, tables: Iterable[str]) -> int:
        client = self._get_client()
        if client is None:
            return 0
        removed = 0
        try:
            for table in tables:
                tag = f"cragdb:t:{table}"
                keys = client.smembers(tag)
                if keys:
                    removed += client.delete(*(f"cragdb:q:{k}" for k in keys))
                client.delete(tag)
        except redis.RedisError as e:
            logger.error("Query cache invalidation error for %s: %s", list(tables), e)
        return removed

    def clear(self) -> None:
        client = self._get_client()
        if client is None:
            return
        try:
            for pattern in ("cragdb:q:*", "cragdb:t:*"):
                for key in client.scan_iter(match=pattern):
                    client.delete(key)
        except redis.RedisError as e:
            logger.error("Query cache clear error: %s", e)


def build_query_cache() -> QueryCache:
    if settings.query_cache_backend == "redis":
        return RedisQueryCache(settings.redis_url, settings.query_cache_ttl)
    if settings.query_cache_backend == "memory":
        return MemoryQueryCache(settings.query_cache_ttl, settings.query_cache_max_entries)
    return QueryCache()


# Singleton instance, shared by services and the transactional orchestrator
query_cache = build_query_cache()
