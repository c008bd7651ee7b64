"""Remote store contract consumed by the resolver and the sync orchestrator."""

from __future__ import annotations

from typing import Any, Protocol

StoredRecord = dict[str, Any]


class RemoteStore(Protocol):
  """
  Network-backed table store.

  Implementations report failures through their return values (None or False)
  and must not raise past this boundary.
  """

  async def get(self, table: str, key: str) -> StoredRecord | None:
    """Fetch one record by key, or None when missing or unreachable."""

  async def set(self, table: str, key: str, record: StoredRecord, *, owner_id: str | None = None) -> bool:
    """Insert or replace one record; return True on success."""

  async def delete_key(self, table: str, key: str) -> bool:
    """Delete one record by key."""

  async def delete_owned(self, table: str, owner_id: str) -> bool:
    """Delete every record of `table` owned by `owner_id`."""

  async def delete_all(self, table: str) -> bool:
    """Delete every record of `table`."""

  async def list_records(self, table: str, *, owner_id: str | None = None, limit: int | None = None) -> list[StoredRecord] | None:
    """List records newest first; None when the store is unreachable."""
