"""
Document-style persistence adapter over the async SQLAlchemy ORM.

Collections map to ORM models. Filters are equality predicates keyed by column
name; updates accept ``$set`` and ``$inc`` operators. Every operation runs in
its own short-lived session so callers can share one ``DocumentStore`` across
concurrent requests.
"""

import logging
import uuid
from typing import Any, Sequence

from sqlalchemy import delete, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from courier_booking.database import create_session_factory
from courier_booking.exceptions import StorageError
from courier_booking.models.base import Base
from courier_booking.models.booking import Booking
from courier_booking.models.otp import OtpRecord

logger = logging.getLogger("courier.store")

OTP_COLLECTION = "otp_records"
BOOKINGS_COLLECTION = "bookings"

COLLECTIONS: dict[str, type[Base]] = {
    OTP_COLLECTION: OtpRecord,
    BOOKINGS_COLLECTION: Booking,
}

ASCENDING = 1
DESCENDING = -1


def _model_for(collection: str) -> type[Base]:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}") from None


def _column(model: type[Base], field: str):
    column = getattr(model, field, None)
    if column is None or field not in model.__mapper__.column_attrs:
        raise ValueError(f"Unknown field '{field}' for {model.__tablename__}")
    return column


def _coerce(field: str, value: Any) -> Any:
    if field == "id" and isinstance(value, str):
        return uuid.UUID(value)
    return value


def _where(model: type[Base], filter: dict[str, Any]) -> list:
    return [_column(model, field) == _coerce(field, value) for field, value in filter.items()]


class DocumentStore:
    """Insert/find/update/delete by filter over the registered collections."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        logger: logging.Logger = logger,
    ):
        self._session_factory = session_factory
        self._logger = logger

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "DocumentStore":
        return cls(create_session_factory(engine))

    async def insert_one(self, collection: str, document: dict[str, Any]) -> str:
        """Insert a document and return its id as a string."""
        model = _model_for(collection)
        try:
            row = model(**document)
        except TypeError as e:
            raise ValueError(f"Invalid document for {collection}: {e}") from e

        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            self._logger.error("Insert into %s failed: %s", collection, e)
            raise StorageError(f"Failed to insert into {collection}", details=str(e)) from e

        return str(row.id)

    async def find_one(
        self,
        collection: str,
        filter: dict[str, Any],
        sort: Sequence[tuple[str, int]] | None = None,
    ) -> dict[str, Any] | None:
        """Return the first matching document, or None."""
        model = _model_for(collection)
        query = select(model).where(*_where(model, filter))
        for field, direction in sort or ():
            column = _column(model, field)
            query = query.order_by(column.desc() if direction == DESCENDING else column.asc())
        query = query.limit(1)

        try:
            async with self._session_factory() as session:
                row = (await session.execute(query)).scalar_one_or_none()
        except SQLAlchemyError as e:
            self._logger.error("Lookup in %s failed: %s", collection, e)
            raise StorageError(f"Failed to query {collection}", details=str(e)) from e

        return row.to_document() if row is not None else None

    async def update_one(
        self,
        collection: str,
        filter: dict[str, Any],
        update_spec: dict[str, dict[str, Any]],
    ) -> int:
        """Apply ``$set``/``$inc`` to the first matching document.

        Returns the number of documents modified (0 or 1).
        """
        model = _model_for(collection)
        unknown = set(update_spec) - {"$set", "$inc"}
        if unknown:
            raise ValueError(f"Unsupported update operators: {sorted(unknown)}")

        values: dict[str, Any] = {}
        for field, value in update_spec.get("$set", {}).items():
            _column(model, field)
            values[field] = value
        for field, amount in update_spec.get("$inc", {}).items():
            values[field] = _column(model, field) + amount
        if not values:
            return 0

        try:
            async with self._session_factory() as session:
                target = (
                    await session.execute(
                        select(model.id).where(*_where(model, filter)).limit(1)
                    )
                ).scalar_one_or_none()
                if target is None:
                    return 0
                # Filter re-applied: a row changed since the select is not updated.
                result = await session.execute(
                    update(model)
                    .where(model.id == target, *_where(model, filter))
                    .values(**values)
                )
                await session.commit()
        except SQLAlchemyError as e:
            self._logger.error("Update in %s failed: %s", collection, e)
            raise StorageError(f"Failed to update {collection}", details=str(e)) from e

        return result.rowcount

    async def delete_one(self, collection: str, filter: dict[str, Any]) -> int:
        model = _model_for(collection)
        try:
            async with self._session_factory() as session:
                target = (
                    await session.execute(
                        select(model.id).where(*_where(model, filter)).limit(1)
                    )
                ).scalar_one_or_none()
                if target is None:
                    return 0
                result = await session.execute(delete(model).where(model.id == target))
                await session.commit()
        except SQLAlchemyError as e:
            self._logger.error("Delete from %s failed: %s", collection, e)
            raise StorageError(f"Failed to delete from {collection}", details=str(e)) from e

        return result.rowcount

    async def delete_many(self, collection: str, filter: dict[str, Any]) -> int:
        model = _model_for(collection)
        try:
            async with self._session_factory() as session:
                result = await session.execute(delete(model).where(*_where(model, filter)))
                await session.commit()
        except SQLAlchemyError as e:
            self._logger.error("Delete from %s failed: %s", collection, e)
            raise StorageError(f"Failed to delete from {collection}", details=str(e)) from e

        return result.rowcount

    async def ping(self) -> bool:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True
