"""PostgreSQL implementation of AdStore.

Every SQLAlchemy failure is wrapped in StoreError so callers can tell a
transport problem apart from a missing row.
"""

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AdRecord
from app.schemas.ads import Ad, AdWrite
from app.stores.base import AdStore, RecordNotFoundError, StoreError, validate_sort
from app.stores.postgres import Database

# Allow-listed sort keys resolved to mapped columns
_SORT_COLUMNS = {
    "id": AdRecord.id,
    "title": AdRecord.title,
    "price": AdRecord.price,
    "created_at": AdRecord.created_at,
    "updated_at": AdRecord.updated_at,
}


def build_list_query(limit: int, offset: int, sort_by: str, order: str):
    """Build the paginated SELECT for list_ads.

    Raises:
        InvalidSortError: If sort_by/order are not allow-listed.
    """
    column_name, direction = validate_sort(sort_by, order)
    column = _SORT_COLUMNS[column_name]
    ordering = column.desc() if direction == "DESC" else column.asc()
    # id breaks ties so pages are stable across requests
    return select(AdRecord).order_by(ordering, AdRecord.id.asc()).limit(limit).offset(offset)


class PostgresAdStore(AdStore):
    """Ad rows in PostgreSQL."""

    def __init__(self, db: Database):
        self._db = db

    async def list_ads(self, limit: int, offset: int, sort_by: str, order: str) -> list[Ad]:
        query = build_list_query(limit, offset, sort_by, order)
        try:
            async with self._db.session() as session:
                result = await session.execute(query)
                return [Ad.model_validate(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError("failed to retrieve ads") from e

    async def count_ads(self) -> int:
        try:
            async with self._db.session() as session:
                result = await session.execute(select(func.count()).select_from(AdRecord))
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise StoreError("failed to count ads") from e

    async def get_ad(self, ad_id: int) -> Ad:
        try:
            async with self._db.session() as session:
                return await self._fetch(session, ad_id)
        except SQLAlchemyError as e:
            raise StoreError(f"failed to get ad {ad_id}") from e

    async def insert_ad(self, data: AdWrite) -> Ad:
        try:
            async with self._db.session() as session:
                result = await session.execute(
                    insert(AdRecord).values(
                        title=data.title,
                        description=data.description,
                        price=data.price,
                        active=data.active,
                    )
                )
                new_id = result.inserted_primary_key[0]
                # Re-read to pick up id and timestamps assigned by the database
                return await self._fetch(session, new_id)
        except RecordNotFoundError as e:
            raise StoreError(f"inserted ad {e.ad_id} could not be re-read") from e
        except SQLAlchemyError as e:
            raise StoreError("failed to insert ad") from e

    async def update_ad(self, ad_id: int, data: AdWrite) -> Ad:
        try:
            async with self._db.session() as session:
                result = await session.execute(
                    update(AdRecord)
                    .where(AdRecord.id == ad_id)
                    .values(
                        title=data.title,
                        description=data.description,
                        price=data.price,
                        active=data.active,
                        updated_at=func.now(),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise RecordNotFoundError(ad_id)
                return await self._fetch(session, ad_id)
        except SQLAlchemyError as e:
            raise StoreError(f"failed to update ad {ad_id}") from e

    async def delete_ad(self, ad_id: int) -> None:
        try:
            async with self._db.session() as session:
                result = await session.execute(
                    delete(AdRecord)
                    .where(AdRecord.id == ad_id)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise RecordNotFoundError(ad_id)
        except SQLAlchemyError as e:
            raise StoreError(f"failed to delete ad {ad_id}") from e

    @staticmethod
    async def _fetch(session: AsyncSession, ad_id: int) -> Ad:
        result = await session.execute(select(AdRecord).where(AdRecord.id == ad_id))
        row = result.scalar_one_or_none()
        if row is None:
            raise RecordNotFoundError(ad_id)
        return Ad.model_validate(row)
