"""Ad service: input validation, not-found translation and pagination.

Called by routes; all data access goes through AdRepository.
"""

from __future__ import annotations

from dataclasses import dataclass
import math

from opentelemetry.trace import Tracer

from app.observability.metrics import OperationMetrics
from app.observability.tracing import instrument
from app.repositories.ads import AdRepository
from app.schemas.ads import Ad, AdPage, AdWrite
from app.stores.base import MAX_BIGINT, RecordNotFoundError

# ids are BIGINT in the store
MAX_AD_ID = MAX_BIGINT


class InvalidAdIdError(ValueError):
    def __init__(self, ad_id: int):
        self.ad_id = ad_id
        super().__init__(f"invalid ad id: {ad_id}")


class InvalidPaginationError(ValueError):
    pass


class AdNotFoundError(LookupError):
    def __init__(self, ad_id: int):
        self.ad_id = ad_id
        super().__init__(f"ad {ad_id} not found")


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    next_page: int | None
    prev_page: int | None


def paginate(total_count: int, limit: int, offset: int) -> Pagination:
    """Compute page metadata for an offset/limit window.

    next_page and prev_page are None when they would fall outside
    1..total_pages.

    Raises:
        InvalidPaginationError: If limit <= 0 or offset < 0.
    """
    if limit <= 0:
        raise InvalidPaginationError(f"limit must be positive, got {limit}")
    if offset < 0:
        raise InvalidPaginationError(f"offset must not be negative, got {offset}")

    total_pages = math.ceil(total_count / limit)
    current_page = offset // limit + 1
    return Pagination(
        current_page=current_page,
        total_pages=total_pages,
        next_page=current_page + 1 if current_page < total_pages else None,
        prev_page=current_page - 1 if current_page > 1 else None,
    )


def _check_id(ad_id: int) -> None:
    if ad_id <= 0 or ad_id > MAX_AD_ID:
        raise InvalidAdIdError(ad_id)


class AdService:
    """Use cases for the ads resource."""

    def __init__(self, repository: AdRepository, *, metrics: OperationMetrics, tracer: Tracer):
        self._repository = repository
        self._metrics = metrics
        self._tracer = tracer

    async def get_all_ads(self, limit: int, offset: int, sort_by: str, order: str) -> AdPage:
        # Reject before any I/O; the page math divides by limit
        paginate(0, limit, offset)

        with instrument(
            self._tracer,
            self._metrics,
            "GetAllAds",
            **{"ads.limit": limit, "ads.offset": offset, "ads.sort_by": sort_by, "ads.order": order},
        ) as op:
            ads = await self._repository.get_all_ads(limit, offset, sort_by, order)
            total_count = await self._repository.count_ads()
            op.set_attributes(**{"ads.total_count": total_count})

            page = paginate(total_count, limit, offset)
            return AdPage(
                ads=ads,
                current_page=page.current_page,
                next_page=page.next_page,
                prev_page=page.prev_page,
                total_pages=page.total_pages,
            )

    async def get_ad_by_id(self, ad_id: int) -> Ad:
        _check_id(ad_id)

        with instrument(self._tracer, self._metrics, "GetAdByID", **{"ad.id": ad_id}) as op:
            try:
                return await self._repository.get_ad_by_id(ad_id)
            except RecordNotFoundError as e:
                op.not_found()
                raise AdNotFoundError(ad_id) from e

    async def create_ad(self, data: AdWrite) -> Ad:
        with instrument(self._tracer, self._metrics, "CreateAd") as op:
            ad = await self._repository.create_ad(data)
            op.set_attributes(**{"ad.id": ad.id, "ad.title": ad.title, "ad.price": ad.price})
            return ad

    async def update_ad(self, ad_id: int, data: AdWrite) -> Ad:
        _check_id(ad_id)

        with instrument(self._tracer, self._metrics, "UpdateAd", **{"ad.id": ad_id}) as op:
            try:
                ad = await self._repository.update_ad(ad_id, data)
            except RecordNotFoundError as e:
                op.not_found()
                raise AdNotFoundError(ad_id) from e
            op.set_attributes(**{"ad.title": ad.title, "ad.price": ad.price})
            return ad

    async def delete_ad(self, ad_id: int) -> None:
        _check_id(ad_id)

        with instrument(self._tracer, self._metrics, "DeleteAd", **{"ad.id": ad_id}) as op:
            try:
                await self._repository.delete_ad(ad_id)
            except RecordNotFoundError as e:
                op.not_found()
                raise AdNotFoundError(ad_id) from e
