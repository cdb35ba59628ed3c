"""Shared fixtures: in-memory store and cache, observability sinks, app client."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from app.main import create_app, wire_ad_service
from app.observability.metrics import Metrics
from app.repositories.ads import AdRepository
from app.schemas import Ad, AdWrite
from app.settings import Settings
from app.stores.base import AdStore, CacheError, KeyValueCache, RecordNotFoundError, StoreError, validate_sort


class FakeCache(KeyValueCache):
    """Dict-backed cache that records calls and can be told to fail."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail = False

    async def get(self, key: str) -> str | None:
        self.calls.append(("get", key))
        if self.fail:
            raise CacheError("cache down")
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        self.calls.append(("set", key))
        if self.fail:
            raise CacheError("cache down")
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        if self.fail:
            raise CacheError("cache down")
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    def expire(self, key: str) -> None:
        """Simulate TTL expiry."""
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    def keys_touched(self) -> set[str]:
        return {key for _, key in self.calls}


class FakeAdStore(AdStore):
    """In-memory ads table with a call log and a ticking clock."""

    def __init__(self):
        self.rows: dict[int, Ad] = {}
        self.calls: list[str] = []
        self.fail = False
        self._next_id = 1
        self._clock = datetime(2024, 8, 26, 12, 0, tzinfo=timezone.utc)

    def _now(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise StoreError(f"{name} failed")

    async def list_ads(self, limit: int, offset: int, sort_by: str, order: str) -> list[Ad]:
        self._record("list_ads")
        column, direction = validate_sort(sort_by, order)
        rows = sorted(
            self.rows.values(),
            key=lambda ad: (getattr(ad, column), ad.id),
            reverse=direction == "DESC",
        )
        return rows[offset : offset + limit]

    async def count_ads(self) -> int:
        self._record("count_ads")
        return len(self.rows)

    async def get_ad(self, ad_id: int) -> Ad:
        self._record("get_ad")
        if ad_id not in self.rows:
            raise RecordNotFoundError(ad_id)
        return self.rows[ad_id]

    async def insert_ad(self, data: AdWrite) -> Ad:
        self._record("insert_ad")
        now = self._now()
        ad = Ad(id=self._next_id, created_at=now, updated_at=now, **data.model_dump())
        self.rows[ad.id] = ad
        self._next_id += 1
        return ad

    async def update_ad(self, ad_id: int, data: AdWrite) -> Ad:
        self._record("update_ad")
        current = self.rows.get(ad_id)
        if current is None:
            raise RecordNotFoundError(ad_id)
        updated = current.model_copy(update={**data.model_dump(), "updated_at": self._now()})
        self.rows[ad_id] = updated
        return updated

    async def delete_ad(self, ad_id: int) -> None:
        self._record("delete_ad")
        if self.rows.pop(ad_id, None) is None:
            raise RecordNotFoundError(ad_id)

    def store_calls(self, name: str) -> int:
        return self.calls.count(name)


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def store() -> FakeAdStore:
    return FakeAdStore()


@pytest.fixture
def metrics() -> Metrics:
    return Metrics()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> TracerProvider:
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, cache_ttl_seconds=600)


@pytest.fixture
def ad_service(store, cache, metrics, tracer_provider, settings):
    return wire_ad_service(
        store,
        cache,
        metrics=metrics,
        tracer_provider=tracer_provider,
        ttl=settings.cache_ttl_seconds,
    )


@pytest.fixture
def repository(store, cache, metrics, tracer_provider, settings) -> AdRepository:
    return AdRepository(
        store,
        cache,
        metrics=metrics.repository,
        cache_metrics=metrics.cache,
        tracer=tracer_provider.get_tracer("test"),
        ttl=settings.cache_ttl_seconds,
    )


@pytest.fixture
def app(settings, ad_service, metrics, tracer_provider):
    return create_app(settings, ad_service=ad_service, metrics=metrics, tracer_provider=tracer_provider)


@pytest.fixture
async def client(app):
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def seed_ads(store: FakeAdStore):
    """Insert ads directly into the fake store, bypassing the cache."""

    async def _seed(count: int) -> list[Ad]:
        ads = []
        for i in range(1, count + 1):
            ads.append(await store.insert_ad(AdWrite(title=f"Ad {i}", description=f"Listing {i}", price=float(i))))
        store.calls.clear()
        return ads

    return _seed
