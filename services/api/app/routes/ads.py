"""Ads CRUD endpoints.

GET    /ads          - paginated list (limit, page, sortBy, order)
GET    /ads/{id}     - single ad
POST   /ads          - create
PUT    /ads/{id}     - full update
DELETE /ads/{id}     - delete

Routers are thin: parse the request, call AdService. Domain errors are
mapped to HTTP responses by the exception handlers in app.main.
"""

from fastapi import APIRouter, Depends, Query, Request

from app.repositories.ads import DEFAULT_LIMIT, DEFAULT_ORDER, DEFAULT_SORT_BY
from app.schemas import Ad, AdCreate, AdPage, AdUpdate, MessageResponse
from app.services.ads import AdService
from app.stores.base import MAX_BIGINT, SORT_DIRECTIONS, SORTABLE_COLUMNS

router = APIRouter()


def get_ad_service(request: Request) -> AdService:
    """AdService wired at startup (or injected by tests)."""
    service = getattr(request.app.state, "ad_service", None)
    if service is None:
        raise RuntimeError("AdService not initialized")
    return service


def _positive_int(raw: str | None, default: int) -> int:
    """Parse a positive integer query param, falling back to default.

    Values that do not fit a BIGINT count as invalid.
    """
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if 0 < value <= MAX_BIGINT else default


def _sort_params(sort_by: str | None, order: str | None) -> tuple[str, str]:
    """Resolve sort params against the allow-list, falling back to defaults."""
    column = sort_by if sort_by in SORTABLE_COLUMNS else DEFAULT_SORT_BY
    direction = (order or "").upper()
    if direction not in SORT_DIRECTIONS:
        direction = DEFAULT_ORDER
    return column, direction


@router.get("", response_model=AdPage, response_model_exclude_none=True)
async def list_ads(
    limit: str | None = Query(default=None, description="Page size (default 10)"),
    page: str | None = Query(default=None, description="1-based page number (default 1)"),
    sort_by: str | None = Query(
        default=None,
        alias="sortBy",
        description="Sort column: id, title, price, created_at, updated_at",
    ),
    order: str | None = Query(default=None, description="ASC or DESC"),
    service: AdService = Depends(get_ad_service),
) -> AdPage:
    """List ads with pagination metadata.

    Missing or invalid params fall back to limit=10, page=1,
    sortBy=created_at, order=ASC.
    """
    page_size = _positive_int(limit, DEFAULT_LIMIT)
    page_number = _positive_int(page, 1)
    if (page_number - 1) * page_size > MAX_BIGINT:
        page_number = 1
    column, direction = _sort_params(sort_by, order)
    offset = (page_number - 1) * page_size

    return await service.get_all_ads(page_size, offset, column, direction)


@router.get("/{ad_id}", response_model=Ad)
async def get_ad(ad_id: int, service: AdService = Depends(get_ad_service)) -> Ad:
    """Get one ad by id."""
    return await service.get_ad_by_id(ad_id)


@router.post("", response_model=Ad, status_code=201)
async def create_ad(body: AdCreate, service: AdService = Depends(get_ad_service)) -> Ad:
    """Create an ad. id and timestamps are assigned by the store."""
    return await service.create_ad(body)


@router.put("/{ad_id}", response_model=Ad)
async def update_ad(ad_id: int, body: AdUpdate, service: AdService = Depends(get_ad_service)) -> Ad:
    """Replace every writable field of an ad."""
    return await service.update_ad(ad_id, body)


@router.delete("/{ad_id}", response_model=MessageResponse)
async def delete_ad(ad_id: int, service: AdService = Depends(get_ad_service)) -> MessageResponse:
    """Delete an ad."""
    await service.delete_ad(ad_id)
    return MessageResponse(message="ad deleted successfully")
