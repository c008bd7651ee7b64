"""Remote store used when no database is configured."""

from __future__ import annotations

import logging

from speaksync.cache.remote_store import RemoteStore, StoredRecord

logger = logging.getLogger(__name__)


class OfflineRemoteStore(RemoteStore):
  """Report every call as unreachable so callers run on the local mirror alone."""

  def __init__(self) -> None:
    self._warned = False

  def _unreachable(self, operation: str, table: str) -> None:
    if not self._warned:
      logger.warning("Remote store is not configured; %s on %s skipped. Running local-only.", operation, table)
      self._warned = True

  async def get(self, table: str, key: str) -> StoredRecord | None:
    self._unreachable("get", table)
    return None

  async def set(self, table: str, key: str, record: StoredRecord, *, owner_id: str | None = None) -> bool:
    self._unreachable("set", table)
    return False

  async def delete_key(self, table: str, key: str) -> bool:
    self._unreachable("delete_key", table)
    return False

  async def delete_owned(self, table: str, owner_id: str) -> bool:
    self._unreachable("delete_owned", table)
    return False

  async def delete_all(self, table: str) -> bool:
    self._unreachable("delete_all", table)
    return False

  async def list_records(self, table: str, *, owner_id: str | None = None, limit: int | None = None) -> list[StoredRecord] | None:
    self._unreachable("list_records", table)
    return None
