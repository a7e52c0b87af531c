"""Async CRUD over the intake tables, and the SDK's remote-store adapter.

``RecordRepository`` methods accept an ``AsyncSession`` and only flush, so
the caller controls transaction boundaries.  ``SqlRemoteStore`` is the
:class:`~intake_forms.interfaces.RemoteStore` implementation: one short
transaction per call, rows in and out as plain dicts, and every database
failure re-raised as :class:`RemoteStoreError`.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import inspect, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from intake_db.models import TABLE_MODELS, Base
from intake_forms.errors import RemoteStoreError
from intake_forms.interfaces import RemoteStore

logger = logging.getLogger(__name__)


def row_to_dict(row: Base) -> dict[str, Any]:
    """Column values of a mapped row, keyed by column name."""
    return {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}


def _python_type(column: Any) -> type | None:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def coerce_values(model: type[Base], values: dict[str, Any]) -> dict[str, Any]:
    """Convert JSON-safe values (ISO dates, numeric strings, UUID strings)
    to the column's Python type.

    Raises:
        ValueError: unknown column or a value the column cannot hold.
    """
    columns = model.__table__.columns
    coerced: dict[str, Any] = {}
    for key, value in values.items():
        if key not in columns:
            raise ValueError(f"{model.__tablename__} has no column {key!r}")
        target = _python_type(columns[key])
        if value is None or target is None or isinstance(value, target):
            coerced[key] = value
        elif target is datetime:
            coerced[key] = datetime.fromisoformat(str(value))
        elif target is date:
            coerced[key] = date.fromisoformat(str(value)[:10])
        elif target is uuid.UUID:
            coerced[key] = uuid.UUID(str(value))
        elif target is int and not isinstance(value, bool):
            coerced[key] = int(str(value).strip())
        else:
            coerced[key] = value
    return coerced


class RecordRepository:
    """Table-agnostic read/write operations on the intake tables."""

    async def insert(
        self, db: AsyncSession, model: type[Base], values: dict[str, Any],
    ) -> Base:
        """Add a row and flush to populate defaults.

        The caller must ``await db.commit()`` to persist.
        """
        row = model(**values)
        db.add(row)
        await db.flush()
        return row

    async def get_by_submission_id(
        self, db: AsyncSession, model: type[Base], submission_id: str,
    ) -> Base | None:
        stmt = select(model).where(model.submission_id == submission_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def select_one(
        self, db: AsyncSession, model: type[Base], filters: dict[str, Any],
    ) -> Base | None:
        """First row matching every equality filter, oldest first."""
        stmt = (
            select(model)
            .filter_by(**filters)
            .order_by(model.created_at.asc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_where(
        self,
        db: AsyncSession,
        model: type[Base],
        filters: dict[str, Any],
        patch: dict[str, Any],
    ) -> int:
        """Apply ``patch`` to every matching row; returns the row count."""
        stmt = (
            update(model)
            .filter_by(**filters)
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount or 0


class SqlRemoteStore(RemoteStore):
    """RemoteStore over the intake PostgreSQL tables.

    Args:
        session_factory: async session factory; defaults to the shared one
            from :mod:`intake_db.engine`.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        repository: RecordRepository | None = None,
    ) -> None:
        if session_factory is None:
            from intake_db.engine import get_session_factory

            session_factory = get_session_factory()
        self._factory = session_factory
        self._repo = repository or RecordRepository()

    @staticmethod
    def _model(table: str, operation: str) -> type[Base]:
        try:
            return TABLE_MODELS[table]
        except KeyError:
            raise RemoteStoreError(table, operation, "unknown table") from None

    @staticmethod
    def _coerce(table: str, operation: str, model: type[Base], values: dict[str, Any]) -> dict[str, Any]:
        try:
            return coerce_values(model, values)
        except ValueError as exc:
            raise RemoteStoreError(table, operation, str(exc)) from exc

    # ------------------------------------------------------------------
    # RemoteStore
    # ------------------------------------------------------------------

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        model = self._model(table, "insert")
        values = self._coerce(table, "insert", model, record)
        submission_id = values.get("submission_id")
        try:
            async with self._factory() as db:
                if submission_id:
                    existing = await self._repo.get_by_submission_id(db, model, submission_id)
                    if existing is not None:
                        logger.info("Submission %s already stored in %s", submission_id, table)
                        return row_to_dict(existing)
                try:
                    row = await self._repo.insert(db, model, values)
                    await db.commit()
                except IntegrityError:
                    # Concurrent replay of the same submission won the race
                    await db.rollback()
                    if not submission_id:
                        raise
                    existing = await self._repo.get_by_submission_id(db, model, submission_id)
                    if existing is None:
                        raise
                    return row_to_dict(existing)
                return row_to_dict(row)
        except SQLAlchemyError as exc:
            logger.error("Insert into %s failed: %s", table, exc.__class__.__name__)
            raise RemoteStoreError(table, "insert", str(exc)) from exc

    async def update(
        self, table: str, filters: dict[str, Any], patch: dict[str, Any],
    ) -> int:
        model = self._model(table, "update")
        filters = self._coerce(table, "update", model, filters)
        patch = self._coerce(table, "update", model, patch)
        try:
            async with self._factory() as db:
                count = await self._repo.update_where(db, model, filters, patch)
                await db.commit()
                return count
        except SQLAlchemyError as exc:
            logger.error("Update of %s failed: %s", table, exc.__class__.__name__)
            raise RemoteStoreError(table, "update", str(exc)) from exc

    async def select_one(
        self, table: str, filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        model = self._model(table, "select")
        filters = self._coerce(table, "select", model, filters)
        try:
            async with self._factory() as db:
                row = await self._repo.select_one(db, model, filters)
                return row_to_dict(row) if row is not None else None
        except SQLAlchemyError as exc:
            logger.error("Select from %s failed: %s", table, exc.__class__.__name__)
            raise RemoteStoreError(table, "select", str(exc)) from exc
