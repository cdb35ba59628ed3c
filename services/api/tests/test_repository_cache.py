"""Cache-aside behaviour of AdRepository."""

import pytest

from app.schemas import Ad, AdList, AdWrite
from app.stores.base import RecordNotFoundError
from app.stores.redis import KEY_DEFAULT_PAGE


@pytest.mark.asyncio
async def test_get_by_id_populates_cache_then_serves_from_it(repository, store, cache, seed_ads):
    [ad] = await seed_ads(1)

    first = await repository.get_ad_by_id(ad.id)
    assert first == ad
    assert store.store_calls("get_ad") == 1
    assert cache.ttls["ad:1"] == 600

    second = await repository.get_ad_by_id(ad.id)
    assert second == ad
    # Served from cache: the store is not queried again
    assert store.store_calls("get_ad") == 1


@pytest.mark.asyncio
async def test_get_by_id_after_ttl_expiry_hits_store(repository, store, cache, seed_ads):
    [ad] = await seed_ads(1)
    await repository.get_ad_by_id(ad.id)

    cache.expire("ad:1")
    await repository.get_ad_by_id(ad.id)

    assert store.store_calls("get_ad") == 2


@pytest.mark.asyncio
async def test_get_by_id_not_found_is_not_cached(repository, store, cache):
    with pytest.raises(RecordNotFoundError):
        await repository.get_ad_by_id(42)

    assert "ad:42" not in cache.data
    assert ("set", "ad:42") not in cache.calls

    with pytest.raises(RecordNotFoundError):
        await repository.get_ad_by_id(42)
    assert store.store_calls("get_ad") == 2


@pytest.mark.asyncio
async def test_unparseable_cache_value_falls_through_to_store(repository, store, cache, seed_ads):
    [ad] = await seed_ads(1)
    cache.data["ad:1"] = "{not json"

    result = await repository.get_ad_by_id(ad.id)

    assert result == ad
    assert store.store_calls("get_ad") == 1
    # Repopulated with a valid value
    assert Ad.model_validate_json(cache.data["ad:1"]) == ad


@pytest.mark.asyncio
async def test_cache_failure_never_fails_reads(repository, store, cache, seed_ads, metrics):
    [ad] = await seed_ads(1)
    cache.fail = True

    assert await repository.get_ad_by_id(ad.id) == ad
    assert await repository.get_all_ads(10, 0, "created_at", "ASC") == [ad]

    assert metrics.registry.get_sample_value(
        "cache_operations_total", {"operation": "get", "result": "error"}
    ) == 2
    assert metrics.registry.get_sample_value(
        "cache_operations_total", {"operation": "set", "result": "error"}
    ) == 2


@pytest.mark.asyncio
async def test_update_refreshes_per_id_cache(repository, store, cache, seed_ads):
    [ad] = await seed_ads(1)
    await repository.get_ad_by_id(ad.id)

    updated = await repository.update_ad(
        ad.id, AdWrite(title=ad.title, description=ad.description, price=40.0)
    )
    assert updated.price == 40.0
    assert updated.updated_at > ad.updated_at

    # Invalidated, then repopulated with the fresh row
    assert cache.calls[-2:] == [("delete", "ad:1"), ("set", "ad:1")]

    fetched = await repository.get_ad_by_id(ad.id)
    assert fetched.price == 40.0
    assert fetched == updated


@pytest.mark.asyncio
async def test_update_not_found_leaves_cache_untouched(repository, store, cache):
    cache.data["ad:7"] = "sentinel"
    cache.calls.clear()

    with pytest.raises(RecordNotFoundError):
        await repository.update_ad(7, AdWrite(title="x", description="y", price=1.0))

    assert cache.calls == []
    assert cache.data["ad:7"] == "sentinel"


@pytest.mark.asyncio
async def test_update_does_not_invalidate_default_page(repository, store, cache, seed_ads):
    [ad] = await seed_ads(1)
    await repository.get_all_ads(10, 0, "created_at", "ASC")

    await repository.update_ad(ad.id, AdWrite(title="Renamed", description="d", price=1.0))

    # Landing page stays stale until its TTL runs out
    [cached] = AdList.validate_json(cache.data[KEY_DEFAULT_PAGE])
    assert cached.title == "Ad 1"


@pytest.mark.asyncio
async def test_delete_invalidates_and_next_get_is_not_found(repository, store, cache, seed_ads):
    [ad] = await seed_ads(1)
    await repository.get_ad_by_id(ad.id)
    assert "ad:1" in cache.data

    await repository.delete_ad(ad.id)

    assert "ad:1" not in cache.data
    with pytest.raises(RecordNotFoundError):
        await repository.get_ad_by_id(ad.id)


@pytest.mark.asyncio
async def test_delete_not_found_leaves_cache_untouched(repository, cache):
    with pytest.raises(RecordNotFoundError):
        await repository.delete_ad(99)
    assert cache.calls == []


@pytest.mark.asyncio
async def test_create_does_not_touch_cache(repository, store, cache):
    ad = await repository.create_ad(AdWrite(title="Bike", description="Used", price=50.0))

    assert ad.id == 1
    assert ad.active is True
    assert cache.calls == []
    assert store.calls == ["insert_ad"]


@pytest.mark.asyncio
async def test_default_page_is_cached(repository, store, cache, seed_ads):
    ads = await seed_ads(3)

    first = await repository.get_all_ads(10, 0, "created_at", "ASC")
    second = await repository.get_all_ads(10, 0, "created_at", "ASC")

    assert first == ads
    assert second == ads
    assert store.store_calls("list_ads") == 1
    assert cache.ttls[KEY_DEFAULT_PAGE] == 600


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "limit,offset,sort_by,order",
    [
        (5, 0, "price", "DESC"),
        (10, 10, "created_at", "ASC"),
        (10, 0, "created_at", "DESC"),
        (10, 0, "title", "ASC"),
        (20, 0, "created_at", "ASC"),
    ],
)
async def test_non_default_pagination_bypasses_cache(repository, store, cache, seed_ads, limit, offset, sort_by, order):
    await seed_ads(3)
    cache.data[KEY_DEFAULT_PAGE] = AdList.dump_json([]).decode()
    cache.calls.clear()

    await repository.get_all_ads(limit, offset, sort_by, order)
    await repository.get_all_ads(limit, offset, sort_by, order)

    assert KEY_DEFAULT_PAGE not in cache.keys_touched()
    assert cache.calls == []
    assert store.store_calls("list_ads") == 2


@pytest.mark.asyncio
async def test_non_default_sort_is_applied(repository, seed_ads):
    await seed_ads(3)

    ads = await repository.get_all_ads(5, 0, "price", "DESC")

    assert [ad.price for ad in ads] == [3.0, 2.0, 1.0]


@pytest.mark.asyncio
async def test_repository_records_outcome_metrics_and_spans(repository, seed_ads, metrics, span_exporter):
    [ad] = await seed_ads(1)
    await repository.get_ad_by_id(ad.id)
    with pytest.raises(RecordNotFoundError):
        await repository.get_ad_by_id(404)

    assert metrics.registry.get_sample_value(
        "repository_queries_total", {"query": "GetAdByID", "status": "success"}
    ) == 1
    assert metrics.registry.get_sample_value(
        "repository_queries_total", {"query": "GetAdByID", "status": "not_found"}
    ) == 1

    outcomes = [span.attributes["outcome"] for span in span_exporter.get_finished_spans()]
    assert outcomes == ["success", "not_found"]
