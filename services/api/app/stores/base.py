"""Store contracts shared by the concrete backends.

The repository layer depends on these abstractions only; the concrete
PostgreSQL and Redis implementations are injected at startup.
"""

from abc import ABC, abstractmethod

from app.schemas.ads import Ad, AdWrite

# Sort columns that may be used in ORDER BY (identifiers cannot be bound)
SORTABLE_COLUMNS = frozenset({"id", "title", "price", "created_at", "updated_at"})
SORT_DIRECTIONS = frozenset({"ASC", "DESC"})

# Largest BIGINT; also the bound for LIMIT/OFFSET parameters
MAX_BIGINT = 2**63 - 1


class StoreError(RuntimeError):
    """Relational store failed (connectivity, driver or SQL error)."""


class RecordNotFoundError(LookupError):
    """No row matched the requested id (zero rows matched or affected)."""

    def __init__(self, ad_id: int):
        self.ad_id = ad_id
        super().__init__(f"ad {ad_id} not found")


class InvalidSortError(ValueError):
    """Sort column or direction is outside the allow-list."""


class CacheError(RuntimeError):
    """Cache backend failed. Callers treat this as a miss."""


def validate_sort(sort_by: str, order: str) -> tuple[str, str]:
    """Check sort arguments against the allow-list.

    Returns:
        Normalized (column, direction) tuple.

    Raises:
        InvalidSortError: If either value is not allowed.
    """
    direction = order.upper()
    if sort_by not in SORTABLE_COLUMNS:
        raise InvalidSortError(f"unsupported sort column: {sort_by!r}")
    if direction not in SORT_DIRECTIONS:
        raise InvalidSortError(f"unsupported sort direction: {order!r}")
    return sort_by, direction


class KeyValueCache(ABC):
    """String cache with per-key expiration.

    get() returns None on a miss. Backend failures raise CacheError; no
    retries happen at this layer.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...


class AdStore(ABC):
    """Row-level CRUD against the ads table."""

    @abstractmethod
    async def list_ads(self, limit: int, offset: int, sort_by: str, order: str) -> list[Ad]: ...

    @abstractmethod
    async def count_ads(self) -> int: ...

    @abstractmethod
    async def get_ad(self, ad_id: int) -> Ad:
        """Raises RecordNotFoundError when no row has this id."""

    @abstractmethod
    async def insert_ad(self, data: AdWrite) -> Ad:
        """Insert a row and return it re-read with store-assigned fields."""

    @abstractmethod
    async def update_ad(self, ad_id: int, data: AdWrite) -> Ad:
        """Full-row update. Raises RecordNotFoundError when zero rows are affected."""

    @abstractmethod
    async def delete_ad(self, ad_id: int) -> None:
        """Raises RecordNotFoundError when zero rows are affected."""
