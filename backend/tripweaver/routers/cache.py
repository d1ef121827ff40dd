"""Cache admin router — stats, key/pattern deletion and expiry sweep."""

import time

from fastapi import APIRouter, Depends

from tripweaver.dependencies import get_cache
from tripweaver.schemas.envelope import ApiEnvelope
from tripweaver.services.cache_service import CacheService

router = APIRouter()


@router.get("/stats")
async def cache_stats(cache: CacheService = Depends(get_cache)) -> ApiEnvelope:
    started = time.monotonic()
    stats = await cache.get_stats()
    if not stats.get("connected"):
        return ApiEnvelope.failure(stats.get("error", "cache unavailable"), source="cache", started=started)
    return ApiEnvelope.ok(stats, source="cache", started=started)


@router.delete("/pattern/{pattern}")
async def clear_pattern(pattern: str, cache: CacheService = Depends(get_cache)) -> ApiEnvelope:
    started = time.monotonic()
    removed = await cache.delete_by_pattern(pattern)
    return ApiEnvelope.ok({"pattern": pattern, "deleted": removed}, source="cache", started=started)


@router.delete("/{key}")
async def delete_key(key: str, cache: CacheService = Depends(get_cache)) -> ApiEnvelope:
    started = time.monotonic()
    if not await cache.delete_key(key):
        return ApiEnvelope.failure(f"could not delete {key}", source="cache", started=started)
    return ApiEnvelope.ok({"key": key, "deleted": True}, source="cache", started=started)


@router.post("/clear-expired")
async def clear_expired(cache: CacheService = Depends(get_cache)) -> ApiEnvelope:
    started = time.monotonic()
    removed = await cache.clear_expired()
    return ApiEnvelope.ok({"deleted": removed}, source="cache", started=started)
