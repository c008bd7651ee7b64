"""Postgres-backed remote store using SQLAlchemy."""

from __future__ import annotations

import logging

from sqlalchemy import Delete, delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from speaksync.cache.errors import RemoteStoreUnavailable
from speaksync.cache.remote_store import RemoteStore, StoredRecord
from speaksync.core.database import get_session_factory
from speaksync.schema.sql import REMOTE_TABLES, RecordColumns

logger = logging.getLogger(__name__)

# Connection refusals surface as OSError and connect timeouts as TimeoutError before SQLAlchemy wraps them.
_STORE_ERRORS = (SQLAlchemyError, OSError, TimeoutError)


class PostgresRemoteStore(RemoteStore):
  """Persist keyed JSON documents to Postgres; every failure is logged and reported, never raised."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  def _model_for(self, table: str) -> type[RecordColumns]:
    model = REMOTE_TABLES.get(table)
    if model is None:
      raise ValueError(f"Unknown remote table {table!r}")
    return model

  def _report(self, error: RemoteStoreUnavailable) -> None:
    logger.warning("%s", error)

  async def get(self, table: str, key: str) -> StoredRecord | None:
    model = self._model_for(table)
    try:
      async with self._session_factory() as session:
        row = await session.get(model, key)
    except _STORE_ERRORS as exc:
      self._report(RemoteStoreUnavailable("get", table, exc))
      return None

    if row is None:
      return None
    payload = row.payload
    return dict(payload) if isinstance(payload, dict) else {"value": payload}

  async def set(self, table: str, key: str, record: StoredRecord, *, owner_id: str | None = None) -> bool:
    model = self._model_for(table)
    stmt = insert(model).values(record_key=key, owner_id=owner_id, payload=record)
    stmt = stmt.on_conflict_do_update(index_elements=["record_key"], set_={"owner_id": owner_id, "payload": record, "updated_at": func.now()})
    try:
      async with self._session_factory() as session:
        await session.execute(stmt)
        await session.commit()
    except _STORE_ERRORS as exc:
      self._report(RemoteStoreUnavailable("set", table, exc))
      return False
    return True

  async def delete_key(self, table: str, key: str) -> bool:
    model = self._model_for(table)
    return await self._execute_delete("delete_key", table, delete(model).where(model.record_key == key))

  async def delete_owned(self, table: str, owner_id: str) -> bool:
    model = self._model_for(table)
    return await self._execute_delete("delete_owned", table, delete(model).where(model.owner_id == owner_id))

  async def delete_all(self, table: str) -> bool:
    model = self._model_for(table)
    return await self._execute_delete("delete_all", table, delete(model))

  async def list_records(self, table: str, *, owner_id: str | None = None, limit: int | None = None) -> list[StoredRecord] | None:
    model = self._model_for(table)
    stmt = select(model.payload)
    if owner_id is not None:
      stmt = stmt.where(model.owner_id == owner_id)
    stmt = stmt.order_by(model.created_at.desc(), model.record_key)
    if limit is not None:
      stmt = stmt.limit(limit)

    try:
      async with self._session_factory() as session:
        result = await session.execute(stmt)
        payloads = list(result.scalars().all())
    except _STORE_ERRORS as exc:
      self._report(RemoteStoreUnavailable("list_records", table, exc))
      return None

    return [dict(payload) for payload in payloads if isinstance(payload, dict)]

  async def _execute_delete(self, operation: str, table: str, stmt: Delete) -> bool:
    try:
      async with self._session_factory() as session:
        result = await session.execute(stmt)
        await session.commit()
    except _STORE_ERRORS as exc:
      self._report(RemoteStoreUnavailable(operation, table, exc))
      return False
    logger.info("Remote %s on %s removed %s row(s)", operation, table, result.rowcount)
    return True
