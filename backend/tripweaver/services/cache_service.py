"""Redis cache service — TTL-checked entries, read-through helper, admin ops."""

import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

import redis.asyncio as redis

from tripweaver.exceptions import CacheError
from tripweaver.telemetry import Telemetry

T = TypeVar("T")

ORIGIN_CACHE = "cache"
ORIGIN_API = "api"
ORIGIN_BYPASS = "bypass"


@dataclass
class CachedResult(Generic[T]):
    """What ``get_or_set`` hands back: the value plus where it came from."""
    data: T | None
    cached: bool
    origin: str


class CacheService:
    """Redis-backed cache storing ``{data, stored_at, ttl_ms, origin}`` entries.

    Redis also gets a native expiry, but every read re-checks the entry's
    own timestamp so a stale value is never returned even if the server
    clock or eviction policy lags.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        client: Any | None = None,
        default_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
        telemetry: Telemetry | None = None,
    ):
        self._redis_url = redis_url
        self._redis = client
        self._injected = client is not None
        self.default_ttl = default_ttl
        self._clock = clock
        self._telemetry = telemetry or Telemetry().child("cache")

    async def _get_redis(self):
        if self._redis is None:
            try:
                self._redis = redis.from_url(
                    self._redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._redis.ping()
            except Exception as e:
                self._redis = None
                raise CacheError(f"Redis unavailable: {e}") from e
        return self._redis

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _is_expired(self, entry: dict) -> bool:
        try:
            return self._now_ms() - int(entry["stored_at"]) >= int(entry["ttl_ms"])
        except (KeyError, TypeError, ValueError):
            # Unreadable envelope counts as expired.
            return True

    async def get(self, key: str) -> Any | None:
        """Get a value from cache. Returns None on miss, expiry or error."""
        try:
            r = await self._get_redis()
            raw = await r.get(key)
            if raw is None:
                return None
            try:
                entry = json.loads(raw)
            except ValueError:
                entry = None
            if not isinstance(entry, dict) or self._is_expired(entry):
                await r.delete(key)
                self._telemetry.debug("Cache expired or unreadable for key: %s", key)
                return None
            self._telemetry.debug("Cache hit for key: %s", key)
            return entry.get("data")
        except Exception as e:
            self._telemetry.warning("Cache get error for key %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None, origin: str = ORIGIN_API) -> bool:
        """Set a value with TTL in whole seconds. Returns False on error."""
        ttl = int(ttl if ttl is not None else self.default_ttl)
        if ttl <= 0:
            return False
        try:
            payload = json.dumps(
                {
                    "data": value,
                    "stored_at": self._now_ms(),
                    "ttl_ms": ttl * 1000,
                    "origin": origin,
                },
                default=str,
            )
            r = await self._get_redis()
            await r.set(key, payload, ex=ttl)
            self._telemetry.debug("Cache set for key: %s with TTL: %ss", key, ttl)
            return True
        except Exception as e:
            self._telemetry.warning("Cache set error for key %s: %s", key, e)
            return False

    async def get_or_set(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        ttl: int | None = None,
    ) -> CachedResult[T]:
        """Read-through: serve from cache, else produce, store and return.

        A failed store never fails the call; the fresh value comes back
        tagged ``origin="bypass"``.
        """
        cached = await self.get(key)
        if cached is not None:
            return CachedResult(data=cached, cached=True, origin=ORIGIN_CACHE)

        self._telemetry.info("Cache miss for key: %s, fetching fresh data", key)
        fresh = await producer()
        if fresh is None:
            return CachedResult(data=None, cached=False, origin=ORIGIN_API)

        stored = await self.set(key, fresh, ttl)
        return CachedResult(
            data=fresh,
            cached=False,
            origin=ORIGIN_API if stored else ORIGIN_BYPASS,
        )

    async def delete_key(self, key: str) -> bool:
        try:
            r = await self._get_redis()
            await r.delete(key)
            self._telemetry.info("Cache deleted for key: %s", key)
            return True
        except Exception as e:
            self._telemetry.warning("Cache delete error for key %s: %s", key, e)
            return False

    async def delete_by_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns the count removed."""
        try:
            r = await self._get_redis()
            keys = [k async for k in r.scan_iter(match=pattern)]
            if keys:
                await r.delete(*keys)
                self._telemetry.info("Cleared %d keys matching pattern: %s", len(keys), pattern)
            return len(keys)
        except Exception as e:
            self._telemetry.warning("Cache clear pattern error for %s: %s", pattern, e)
            return 0

    async def clear_expired(self) -> int:
        """Sweep entries whose own TTL has lapsed. Returns the count removed."""
        removed = 0
        try:
            r = await self._get_redis()
            async for key in r.scan_iter(match="*"):
                raw = await r.get(key)
                if raw is None:
                    continue
                try:
                    entry = json.loads(raw)
                except ValueError:
                    entry = None
                if not isinstance(entry, dict) or self._is_expired(entry):
                    await r.delete(key)
                    removed += 1
            self._telemetry.info("Cache cleanup completed, %d expired entries removed", removed)
        except Exception as e:
            self._telemetry.warning("Cache cleanup error: %s", e)
        return removed

    @staticmethod
    def generate_key(namespace: str, params: dict[str, Any]) -> str:
        """Deterministic key: parameters sorted by name so field order never matters."""
        parts = []
        for name in sorted(params):
            value = params[name]
            if isinstance(value, (dict, list, tuple, set)):
                if isinstance(value, set):
                    value = sorted(value, key=str)
                value = json.dumps(value, sort_keys=True, default=str, separators=(",", ":"))
            parts.append(f"{name}:{value}")
        return f"{namespace}:{'|'.join(parts)}"

    async def get_stats(self) -> dict:
        try:
            r = await self._get_redis()
            return {"connected": True, "keys": await r.dbsize()}
        except Exception as e:
            self._telemetry.warning("Cache stats error: %s", e)
            return {"connected": False, "error": str(e)}

    async def ping(self) -> bool:
        try:
            r = await self._get_redis()
            await r.ping()
            return True
        except Exception:
            return False

    async def close(self):
        if self._redis is not None and not self._injected:
            await self._redis.aclose()
            self._redis = None
