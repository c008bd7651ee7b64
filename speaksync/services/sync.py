"""Keep learner state in the local mirror and mirror it to the remote store in the background."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, date, datetime, timedelta
from functools import partial
from typing import Any

from pydantic import BaseModel, ValidationError

from speaksync.cache.errors import LocalMirrorWriteFailure, RemoteStoreUnavailable
from speaksync.cache.local_mirror import LocalMirror
from speaksync.cache.models import utcnow
from speaksync.cache.remote_store import RemoteStore, StoredRecord
from speaksync.schema.content import ScriptImprovement, VocabularyItem
from speaksync.schema.profile import AtelierLog, ChapterProgress, HistoryItem, ProfileStats, ProfileStatsUpdate, VaultWord, VocabMastery
from speaksync.schema.sql import ATELIER_TABLE, HISTORY_TABLE, PROFILES_TABLE, PROGRESS_TABLE, VOCABULARY_TABLE

logger = logging.getLogger(__name__)

ErrorSink = Callable[[RemoteStoreUnavailable], None]

DEFAULT_HISTORY_LIMIT = 50
LEARNING_THRESHOLD = 2
MASTERED_THRESHOLD = 5


def promote_mastery(current: VocabMastery, sync_count: int) -> VocabMastery:
  """Return the mastery a word reaches after being synced `sync_count` times."""
  if sync_count > MASTERED_THRESHOLD:
    return VocabMastery.MASTERED
  if sync_count > LEARNING_THRESHOLD:
    return VocabMastery.LEARNING
  return current


def streak_from_dates(dates: Iterable[date], today: date) -> int:
  """Count consecutive active days ending today or yesterday."""
  distinct = sorted(set(dates), reverse=True)
  if not distinct:
    return 0
  if distinct[0] not in (today, today - timedelta(days=1)):
    return 0

  streak = 1
  current = distinct[0]
  for previous in distinct[1:]:
    if current - previous > timedelta(days=1):
      break
    streak += 1
    current = previous
  return streak


class SyncOrchestrator:
  """
  Offline-first persistence of one learner's profile, progress, vocabulary and history.

  Every write lands in the local mirror synchronously so it can be read back
  immediately, then a detached task copies it to the remote store. Outside a
  running event loop there is no task to detach, so the remote copy is skipped
  and reported like any other dropped write. Failed background writes are not
  retried: they are logged and handed to `error_sink` when one is configured.
  Reads prefer the remote copy when it is reachable, except for records with a
  background write still in flight.
  """

  def __init__(
    self,
    *,
    user_id: str,
    local_mirror: LocalMirror,
    remote_store: RemoteStore,
    error_sink: ErrorSink | None = None,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
    now: Callable[[], datetime] = utcnow,
  ) -> None:
    if history_limit <= 0:
      raise ValueError("history_limit must be positive.")
    self._user_id = user_id
    self._local = local_mirror
    self._remote = remote_store
    self._error_sink = error_sink
    self._history_limit = history_limit
    self._now = now
    self._tasks: set[asyncio.Task[None]] = set()
    self._pending: Counter[tuple[str, str]] = Counter()

  @property
  def user_id(self) -> str:
    return self._user_id

  @property
  def pending_writes(self) -> int:
    return len(self._tasks)

  def now(self) -> datetime:
    return self._now()

  # Profile stats

  def persist(self, fields: ProfileStatsUpdate | Mapping[str, Any]) -> ProfileStats:
    """Merge `fields` into the profile, save it locally and queue the remote write."""
    update = fields if isinstance(fields, ProfileStatsUpdate) else ProfileStatsUpdate.model_validate(dict(fields))
    current = self._read_profile_local() or ProfileStats(user_id=self._user_id)
    merged = current.model_copy(update={**update.model_dump(exclude_none=True), "last_activity": self._now()})
    record = merged.model_dump(mode="json")

    self._write_local(self._profile_key, record)
    self._schedule_remote_write(PROFILES_TABLE, self._user_id, record)
    return merged

  async def fetch_profile_stats(self) -> ProfileStats:
    """Return remote stats when reachable, else the local copy, else defaults."""
    if not self._has_pending(PROFILES_TABLE, self._user_id):
      record = await self._remote_get(PROFILES_TABLE, self._user_id)
      stats = _validate(ProfileStats, record) if record is not None else None
      if stats is not None:
        self._write_local(self._profile_key, stats.model_dump(mode="json"))
        return stats

    return self._read_profile_local() or ProfileStats(user_id=self._user_id)

  # Chapter progress

  def save_chapter_progress(self, chapter_id: str, score: int = 100) -> ChapterProgress:
    progress = ChapterProgress(chapter_id=chapter_id, score=score, completed_at=self._now())
    entries = {item.chapter_id: item for item in self._read_list_local(self._progress_key, ChapterProgress)}
    entries[chapter_id] = progress
    self._write_local(self._progress_key, [item.model_dump(mode="json") for item in entries.values()])
    self._schedule_remote_write(PROGRESS_TABLE, f"{self._user_id}:{chapter_id}", progress.model_dump(mode="json"))
    return progress

  async def fetch_progress(self) -> list[ChapterProgress]:
    records = None if self._has_pending_table(PROGRESS_TABLE) else await self._remote_list(PROGRESS_TABLE)
    if records is not None:
      progress = _validate_all(ChapterProgress, records)
      self._write_local(self._progress_key, [item.model_dump(mode="json") for item in progress])
      return progress
    return self._read_list_local(self._progress_key, ChapterProgress)

  # Vocabulary vault

  def save_vocab(self, item: VocabularyItem) -> VaultWord:
    """Add a word to the vault, or count another sync and promote its mastery."""
    vault = self._read_list_local(self._vault_key, VaultWord)
    now = self._now()
    index = next((i for i, word in enumerate(vault) if word.term == item.term), None)
    if index is None:
      fields = item.model_dump(include={"term", "translation", "word_type", "pronunciation"})
      word = VaultWord(**fields, mastery=VocabMastery.NEW, sync_count=1, last_practiced=now)
      vault.append(word)
    else:
      existing = vault[index]
      sync_count = existing.sync_count + 1
      word = existing.model_copy(update={"sync_count": sync_count, "mastery": promote_mastery(existing.mastery, sync_count), "last_practiced": now})
      vault[index] = word

    self._write_local(self._vault_key, [entry.model_dump(mode="json") for entry in vault])
    self._schedule_remote_write(VOCABULARY_TABLE, self._vocab_record_key(word.term), word.model_dump(mode="json"))
    return word

  def update_vocab_mastery(self, term: str, mastery: VocabMastery) -> VaultWord | None:
    vault = self._read_list_local(self._vault_key, VaultWord)
    index = next((i for i, word in enumerate(vault) if word.term == term), None)
    if index is None:
      logger.info("Vault word %r not found locally; mastery update skipped", term)
      return None

    word = vault[index].model_copy(update={"mastery": mastery, "last_practiced": self._now()})
    vault[index] = word
    self._write_local(self._vault_key, [entry.model_dump(mode="json") for entry in vault])
    self._schedule_remote_write(VOCABULARY_TABLE, self._vocab_record_key(term), word.model_dump(mode="json"))
    return word

  async def fetch_vault(self) -> list[VaultWord]:
    """Return vault words, most recently practiced first."""
    records = None if self._has_pending_table(VOCABULARY_TABLE) else await self._remote_list(VOCABULARY_TABLE)
    if records is not None:
      vault = _validate_all(VaultWord, records)
      self._write_local(self._vault_key, [entry.model_dump(mode="json") for entry in vault])
    else:
      vault = self._read_list_local(self._vault_key, VaultWord)
    return sorted(vault, key=_practiced_sort_key, reverse=True)

  # History

  def save_history_item(self, item: HistoryItem) -> None:
    history = [entry for entry in self._read_list_local(self._history_key, HistoryItem) if entry.id != item.id]
    history = [item, *history][: self._history_limit]
    self._write_local(self._history_key, [entry.model_dump(mode="json") for entry in history])
    self._schedule_remote_write(HISTORY_TABLE, item.id, item.model_dump(mode="json"))

  async def fetch_history(self) -> list[HistoryItem]:
    """Return history newest first, capped at the configured limit."""
    records = None if self._has_pending_table(HISTORY_TABLE) else await self._remote_list(HISTORY_TABLE, limit=self._history_limit)
    if records is None:
      return self._read_list_local(self._history_key, HistoryItem)

    history = sorted(_validate_all(HistoryItem, records), key=lambda entry: entry.timestamp, reverse=True)[: self._history_limit]
    self._write_local(self._history_key, [entry.model_dump(mode="json") for entry in history])
    return history

  async def clear_history(self) -> bool:
    """Delete this learner's history from both tiers; returns whether the remote delete succeeded."""
    self._local.delete(self._history_key)
    try:
      cleared = await self._remote.delete_owned(HISTORY_TABLE, self._user_id)
    except Exception as exc:  # noqa: BLE001
      self._report(RemoteStoreUnavailable("delete_owned", HISTORY_TABLE, exc))
      return False
    if not cleared:
      self._report(RemoteStoreUnavailable("delete_owned", HISTORY_TABLE))
    return cleared

  def calculate_streak(self, today: date | None = None) -> int:
    """Consecutive active days according to the local history."""
    history = self._read_list_local(self._history_key, HistoryItem)
    today = today or self._now().date()
    return streak_from_dates((_utc_date(item.timestamp) for item in history), today)

  # Writing atelier

  def save_atelier_log(self, original: str, improvement: ScriptImprovement) -> AtelierLog:
    """Queue a remote-only copy of a corrected text; nothing reads it back locally."""
    log = AtelierLog(
      id=uuid.uuid4().hex,
      original=original,
      improved=improvement.improved_version,
      feedback=improvement.feedback,
      category=improvement.category,
      created_at=self._now(),
    )
    self._schedule_remote_write(ATELIER_TABLE, log.id, log.model_dump(mode="json"))
    return log

  # Background writes

  async def drain(self) -> None:
    """Wait for every queued remote write to settle."""
    while self._tasks:
      await asyncio.gather(*list(self._tasks), return_exceptions=True)

  def _schedule_remote_write(self, table: str, key: str, record: StoredRecord) -> None:
    try:
      loop = asyncio.get_running_loop()
    except RuntimeError:
      # Called from synchronous code: the local copy stands and the remote write is dropped.
      self._report(RemoteStoreUnavailable("set", table))
      return
    task = loop.create_task(self._write_remote(table, key, record), name=f"sync:{table}:{key}")
    self._tasks.add(task)
    self._pending[(table, key)] += 1
    task.add_done_callback(partial(self._on_write_done, (table, key)))

  async def _write_remote(self, table: str, key: str, record: StoredRecord) -> None:
    try:
      written = await self._remote.set(table, key, record, owner_id=self._user_id)
    except Exception as exc:
      raise RemoteStoreUnavailable("set", table, exc) from exc
    if not written:
      raise RemoteStoreUnavailable("set", table)

  def _on_write_done(self, pending_key: tuple[str, str], task: asyncio.Task[None]) -> None:
    self._tasks.discard(task)
    self._pending[pending_key] -= 1
    if self._pending[pending_key] <= 0:
      del self._pending[pending_key]
    if task.cancelled():
      return
    exc = task.exception()
    if isinstance(exc, RemoteStoreUnavailable):
      self._report(exc)
    elif exc is not None:
      logger.error("Background sync task failed: %s", exc, exc_info=exc)

  def _report(self, error: RemoteStoreUnavailable) -> None:
    logger.warning("Background sync dropped: %s", error)
    if self._error_sink is None:
      return
    try:
      self._error_sink(error)
    except Exception:  # noqa: BLE001
      logger.exception("Sync error sink raised")

  def _has_pending(self, table: str, key: str) -> bool:
    return self._pending.get((table, key), 0) > 0

  def _has_pending_table(self, table: str) -> bool:
    return any(count > 0 for (pending_table, _), count in self._pending.items() if pending_table == table)

  # Local mirror helpers

  @property
  def _profile_key(self) -> str:
    return f"profile:{self._user_id}"

  @property
  def _progress_key(self) -> str:
    return f"progress:{self._user_id}"

  @property
  def _vault_key(self) -> str:
    return f"vault:{self._user_id}"

  @property
  def _history_key(self) -> str:
    return f"history:{self._user_id}"

  def _vocab_record_key(self, term: str) -> str:
    return f"{self._user_id}:{term}"

  def _read_profile_local(self) -> ProfileStats | None:
    return _validate(ProfileStats, self._read_json_local(self._profile_key))

  def _read_list_local[ModelT: BaseModel](self, key: str, model: type[ModelT]) -> list[ModelT]:
    data = self._read_json_local(key)
    if not isinstance(data, list):
      return []
    return _validate_all(model, data)

  def _read_json_local(self, key: str) -> Any:
    raw = self._local.get(key)
    if raw is None:
      return None
    try:
      return json.loads(raw)
    except json.JSONDecodeError as exc:
      logger.warning("Ignoring unreadable local value key=%s: %s", key, exc)
      return None

  def _write_local(self, key: str, data: Any) -> None:
    try:
      self._local.set(key, json.dumps(data, ensure_ascii=False))
    except LocalMirrorWriteFailure as exc:
      logger.error("Local mirror write failed key=%s: %s", key, exc)

  async def _remote_get(self, table: str, key: str) -> StoredRecord | None:
    try:
      return await self._remote.get(table, key)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Remote get on %s raised: %s", table, exc)
      return None

  async def _remote_list(self, table: str, *, limit: int | None = None) -> list[StoredRecord] | None:
    try:
      return await self._remote.list_records(table, owner_id=self._user_id, limit=limit)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Remote list on %s raised: %s", table, exc)
      return None


def _validate[ModelT: BaseModel](model: type[ModelT], data: Any) -> ModelT | None:
  if data is None:
    return None
  try:
    return model.model_validate(data)
  except ValidationError as exc:
    logger.warning("Discarding malformed %s record: %s error(s)", model.__name__, exc.error_count())
    return None


def _validate_all[ModelT: BaseModel](model: type[ModelT], records: Iterable[Any]) -> list[ModelT]:
  validated = (_validate(model, record) for record in records)
  return [item for item in validated if item is not None]


def _utc_date(value: datetime) -> date:
  if value.tzinfo is None:
    return value.date()
  return value.astimezone(UTC).date()


def _practiced_sort_key(word: VaultWord) -> datetime:
  practiced = word.last_practiced
  if practiced is None:
    return datetime.min.replace(tzinfo=UTC)
  return practiced if practiced.tzinfo is not None else practiced.replace(tzinfo=UTC)
