"""Cache-aside repository for ads.

Read paths:
1. Check Redis (ad:<id>, or ads:default_page for the landing page)
2. On miss, unparseable value or cache failure, query PostgreSQL
3. Populate the cache best-effort (10 minute TTL)

Write paths:
- Create: store only; the default page is left to expire
- Update: store, then invalidate ad:<id> and repopulate it with the fresh row
- Delete: store, then invalidate ad:<id>

Negative results are never cached. Not-found from the store is propagated
untouched (RecordNotFoundError) and leaves the cache alone.

There is no single-flight: concurrent misses on one key each query the store
and each repopulate the cache. The default page key is the likely stampede
spot under load.
"""

from __future__ import annotations

import logging

from opentelemetry.trace import Tracer
from pydantic import ValidationError

from app.observability.metrics import CacheMetrics, OperationMetrics
from app.observability.tracing import instrument
from app.schemas.ads import Ad, AdList, AdWrite
from app.stores.base import AdStore, CacheError, KeyValueCache, RecordNotFoundError
from app.stores.redis import KEY_DEFAULT_PAGE, TTL_AD_CACHE, ad_cache_key

logger = logging.getLogger("uvicorn.error")

# The only list shape eligible for caching
DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0
DEFAULT_SORT_BY = "created_at"
DEFAULT_ORDER = "ASC"


def is_default_pagination(limit: int, offset: int, sort_by: str, order: str) -> bool:
    """True only for the exact landing-page request shape."""
    return (limit, offset, sort_by, order) == (DEFAULT_LIMIT, DEFAULT_OFFSET, DEFAULT_SORT_BY, DEFAULT_ORDER)


class AdRepository:
    """Ads over a relational store with a cache-aside layer on reads."""

    def __init__(
        self,
        store: AdStore,
        cache: KeyValueCache,
        *,
        metrics: OperationMetrics,
        cache_metrics: CacheMetrics,
        tracer: Tracer,
        ttl: int = TTL_AD_CACHE,
    ):
        self._store = store
        self._cache = cache
        self._metrics = metrics
        self._cache_metrics = cache_metrics
        self._tracer = tracer
        self._ttl = ttl

    async def get_all_ads(self, limit: int, offset: int, sort_by: str, order: str) -> list[Ad]:
        cacheable = is_default_pagination(limit, offset, sort_by, order)
        with instrument(
            self._tracer,
            self._metrics,
            "GetAllAds",
            **{"ads.limit": limit, "ads.offset": offset, "ads.sort_by": sort_by, "ads.order": order},
        ) as op:
            if cacheable:
                cached = await self._cache_get(KEY_DEFAULT_PAGE)
                if cached is not None:
                    try:
                        ads = AdList.validate_json(cached)
                    except ValidationError:
                        self._cache_metrics.record("get", "invalid")
                        logger.warning(f"Discarding unparseable cache value for {KEY_DEFAULT_PAGE}")
                    else:
                        op.set_attributes(**{"cache.hit": True})
                        return ads

            ads = await self._store.list_ads(limit, offset, sort_by, order)
            op.set_attributes(**{"cache.hit": False, "ads.count": len(ads)})

            if cacheable:
                await self._cache_set(KEY_DEFAULT_PAGE, AdList.dump_json(ads).decode())
            return ads

    async def get_ad_by_id(self, ad_id: int) -> Ad:
        key = ad_cache_key(ad_id)
        with instrument(self._tracer, self._metrics, "GetAdByID", **{"ad.id": ad_id}) as op:
            cached = await self._cache_get(key)
            if cached is not None:
                try:
                    ad = Ad.model_validate_json(cached)
                except ValidationError:
                    self._cache_metrics.record("get", "invalid")
                    logger.warning(f"Discarding unparseable cache value for {key}")
                else:
                    op.set_attributes(**{"cache.hit": True})
                    return ad

            op.set_attributes(**{"cache.hit": False})
            try:
                ad = await self._store.get_ad(ad_id)
            except RecordNotFoundError:
                op.not_found()
                raise

            await self._cache_set(key, ad.model_dump_json())
            return ad

    async def create_ad(self, data: AdWrite) -> Ad:
        with instrument(self._tracer, self._metrics, "CreateAd", **{"ad.title": data.title, "ad.price": data.price}) as op:
            ad = await self._store.insert_ad(data)
            op.set_attributes(**{"ad.id": ad.id})
            return ad

    async def update_ad(self, ad_id: int, data: AdWrite) -> Ad:
        key = ad_cache_key(ad_id)
        with instrument(
            self._tracer,
            self._metrics,
            "UpdateAd",
            **{"ad.id": ad_id, "ad.title": data.title, "ad.price": data.price},
        ) as op:
            try:
                ad = await self._store.update_ad(ad_id, data)
            except RecordNotFoundError:
                op.not_found()
                raise

            await self._cache_delete(key)
            await self._cache_set(key, ad.model_dump_json())
            return ad

    async def delete_ad(self, ad_id: int) -> None:
        with instrument(self._tracer, self._metrics, "DeleteAd", **{"ad.id": ad_id}) as op:
            try:
                await self._store.delete_ad(ad_id)
            except RecordNotFoundError:
                op.not_found()
                raise

            await self._cache_delete(ad_cache_key(ad_id))

    async def count_ads(self) -> int:
        with instrument(self._tracer, self._metrics, "CountAds") as op:
            count = await self._store.count_ads()
            op.set_attributes(**{"ads.total_count": count})
            return count

    # ============================================================
    # Best-effort cache calls: failures are logged and counted, never raised
    # ============================================================

    async def _cache_get(self, key: str) -> str | None:
        try:
            value = await self._cache.get(key)
        except CacheError as e:
            self._cache_metrics.record("get", "error")
            logger.warning(f"Cache get failed for {key}, falling back to store: {e}")
            return None
        self._cache_metrics.record("get", "miss" if value is None else "hit")
        return value

    async def _cache_set(self, key: str, value: str) -> None:
        try:
            await self._cache.set(key, value, self._ttl)
        except CacheError as e:
            self._cache_metrics.record("set", "error")
            logger.warning(f"Cache set failed for {key}: {e}")
            return
        self._cache_metrics.record("set", "ok")

    async def _cache_delete(self, key: str) -> None:
        try:
            await self._cache.delete(key)
        except CacheError as e:
            self._cache_metrics.record("delete", "error")
            logger.warning(f"Cache delete failed for {key}: {e}")
            return
        self._cache_metrics.record("delete", "ok")
