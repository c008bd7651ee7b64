"""Tiered resolution: local mirror, then remote store, then the producer."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from pydantic import ValidationError

from speaksync.cache.errors import LocalMirrorWriteFailure, ProducerUnavailable
from speaksync.cache.local_mirror import LocalMirror
from speaksync.cache.models import Artifact, CacheEntry, ContentKey, MalformedEntryError, Resolution, utcnow
from speaksync.cache.producer import ProducerInvoker
from speaksync.cache.remote_store import RemoteStore
from speaksync.cache.throttle import ThrottleGuard

logger = logging.getLogger(__name__)


class CacheResolver[ArtifactT: Artifact]:
  """
  Resolve content keys for one namespace.

  The namespace doubles as the remote table name and as the local mirror key
  prefix. Tiers are consulted strictly in order of increasing cost, and only a
  successful production is written back and counted against the throttle.
  Concurrent misses for the same key share a single production task.
  """

  def __init__(
    self,
    namespace: str,
    artifact_type: type[ArtifactT],
    *,
    local_mirror: LocalMirror,
    remote_store: RemoteStore,
    throttle_guard: ThrottleGuard | None = None,
    producer: ProducerInvoker | None = None,
    max_age: timedelta | None = None,
    resource_class: str | None = None,
    now: Callable[[], datetime] = utcnow,
  ) -> None:
    if resource_class is not None and throttle_guard is None:
      raise ValueError("A throttle_guard is required when resource_class is set.")
    self._namespace = namespace
    self._artifact_type = artifact_type
    self._local = local_mirror
    self._remote = remote_store
    self._throttle = throttle_guard
    self._producer = producer or ProducerInvoker()
    self._max_age = max_age
    self._resource_class = resource_class
    self._now = now
    self._in_flight: dict[ContentKey, asyncio.Task[Resolution[ArtifactT]]] = {}

  @property
  def namespace(self) -> str:
    return self._namespace

  @property
  def max_age(self) -> timedelta | None:
    return self._max_age

  def in_flight_keys(self) -> list[ContentKey]:
    return list(self._in_flight)

  async def resolve(self, key: ContentKey, produce: Callable[[], Awaitable[ArtifactT]], *, resource_class: str | None = None) -> ArtifactT:
    resolution = await self.resolve_entry(key, produce, resource_class=resource_class)
    return resolution.artifact

  async def resolve_entry(self, key: ContentKey, produce: Callable[[], Awaitable[ArtifactT]], *, resource_class: str | None = None) -> Resolution[ArtifactT]:
    """Resolve a key and report which tier served it."""
    local_entry = self._read_local(key)
    if local_entry is not None:
      logger.debug("Local hit namespace=%s key=%s", self._namespace, key)
      return Resolution(artifact=local_entry.payload, source="local")

    task = self._in_flight.get(key)
    if task is None:
      task = asyncio.create_task(self._resolve_shared(key, produce, resource_class or self._resource_class), name=f"resolve:{self._namespace}:{key}")
      self._in_flight[key] = task
    else:
      logger.info("Joining in-flight resolution namespace=%s key=%s", self._namespace, key)

    # A cancelled waiter must not cancel the production other callers are waiting on.
    return await asyncio.shield(task)

  async def lookup(self, key: ContentKey) -> ArtifactT | None:
    """Return a cached artifact from either tier without ever producing one."""
    local_entry = self._read_local(key)
    if local_entry is not None:
      return local_entry.payload
    remote_entry = await self._read_remote(key)
    if remote_entry is None:
      return None
    self._write_local(remote_entry)
    return remote_entry.payload

  async def invalidate(self, key: ContentKey) -> None:
    self._local.delete(self._local_key(key))
    if not await self._remote_call("delete_key", self._remote.delete_key(self._namespace, key)):
      logger.warning("Remote invalidate failed namespace=%s key=%s", self._namespace, key)

  async def clear(self) -> int:
    """Purge the whole namespace from both tiers; returns the local entries removed."""
    removed = self._local.clear(prefix=f"{self._namespace}:")
    if not await self._remote_call("delete_all", self._remote.delete_all(self._namespace)):
      logger.warning("Remote clear failed namespace=%s", self._namespace)
    logger.info("Cleared namespace=%s local_removed=%d", self._namespace, removed)
    return removed

  async def _resolve_shared(self, key: ContentKey, produce: Callable[[], Awaitable[ArtifactT]], resource_class: str | None) -> Resolution[ArtifactT]:
    try:
      return await self._resolve_miss(key, produce, resource_class)
    finally:
      self._in_flight.pop(key, None)

  async def _resolve_miss(self, key: ContentKey, produce: Callable[[], Awaitable[ArtifactT]], resource_class: str | None) -> Resolution[ArtifactT]:
    remote_entry = await self._read_remote(key)
    if remote_entry is not None:
      logger.debug("Remote hit namespace=%s key=%s", self._namespace, key)
      self._write_local(remote_entry)
      return Resolution(artifact=remote_entry.payload, source="remote")

    if resource_class is None or self._throttle is None:
      artifact = await self._produce(key, produce)
    else:
      # Different keys of one class queue here, so only one search runs per window.
      async with self._throttle.lock_for(resource_class):
        self._throttle.ensure_available(resource_class)
        artifact = await self._produce(key, produce)
        self._throttle.record_execution(resource_class)

    logger.info("Produced namespace=%s key=%s", self._namespace, key)
    return Resolution(artifact=artifact, source="producer")

  async def _produce(self, key: ContentKey, produce: Callable[[], Awaitable[ArtifactT]]) -> ArtifactT:
    produced = await self._producer.invoke(produce, label=f"{self._namespace}:{key}")
    try:
      artifact = self._artifact_type.model_validate(produced)
    except ValidationError as exc:
      raise ProducerUnavailable(f"Producer returned an invalid {self._artifact_type.__name__}", kind="malformed") from exc

    entry = CacheEntry(key=key, payload=artifact, created_at=self._now())
    if not await self._remote_call("set", self._remote.set(self._namespace, key, entry.to_record())):
      logger.warning("Remote write failed namespace=%s key=%s; continuing with local copy", self._namespace, key)
    self._write_local(entry)
    return artifact

  def _local_key(self, key: ContentKey) -> str:
    return f"{self._namespace}:{key}"

  def _read_local(self, key: ContentKey) -> CacheEntry[ArtifactT] | None:
    raw = self._local.get(self._local_key(key))
    if raw is None:
      return None
    try:
      entry = CacheEntry.from_record(json.loads(raw), self._artifact_type, expected_key=key)
    except (json.JSONDecodeError, MalformedEntryError) as exc:
      logger.warning("Ignoring malformed local entry namespace=%s key=%s: %s", self._namespace, key, exc)
      return None
    if not entry.is_fresh(self._now(), self._max_age):
      logger.debug("Stale local entry namespace=%s key=%s", self._namespace, key)
      return None
    return entry

  async def _read_remote(self, key: ContentKey) -> CacheEntry[ArtifactT] | None:
    record = await self._remote_call("get", self._remote.get(self._namespace, key))
    if record is None:
      return None
    try:
      entry = CacheEntry.from_record(record, self._artifact_type, expected_key=key)
    except MalformedEntryError as exc:
      logger.warning("Ignoring malformed remote entry namespace=%s key=%s: %s", self._namespace, key, exc)
      return None
    if not entry.is_fresh(self._now(), self._max_age):
      logger.debug("Stale remote entry namespace=%s key=%s", self._namespace, key)
      return None
    return entry

  def _write_local(self, entry: CacheEntry[ArtifactT]) -> None:
    try:
      self._local.set(self._local_key(entry.key), json.dumps(entry.to_record(), ensure_ascii=False))
    except LocalMirrorWriteFailure as exc:
      logger.error("Local mirror write failed namespace=%s key=%s: %s", self._namespace, entry.key, exc)

  async def _remote_call[T](self, operation: str, call: Awaitable[T]) -> T | None:
    try:
      return await call
    except Exception as exc:  # noqa: BLE001
      logger.warning("Remote store %s raised on %s: %s", operation, self._namespace, exc)
      return None
