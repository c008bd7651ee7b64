"""Shared fakes and fixtures for the cache, sync and API tests."""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from speaksync.ai.providers.base import AIModel, SimpleModelResponse, StructuredModelResponse
from speaksync.cache.errors import LocalMirrorWriteFailure
from speaksync.cache.models import Chunk
from speaksync.config import Settings


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


class FakeRemoteStore:
  """In-memory remote store that can be switched offline."""

  def __init__(self) -> None:
    self.tables: dict[str, dict[str, tuple[str | None, dict[str, Any]]]] = {}
    self.reachable = True
    self.calls: list[tuple[str, str]] = []

  def _table(self, table: str) -> dict[str, tuple[str | None, dict[str, Any]]]:
    return self.tables.setdefault(table, {})

  def put(self, table: str, key: str, record: dict[str, Any], *, owner_id: str | None = None) -> None:
    self._table(table)[key] = (owner_id, copy.deepcopy(record))

  def record(self, table: str, key: str) -> dict[str, Any] | None:
    entry = self._table(table).get(key)
    return None if entry is None else entry[1]

  async def get(self, table: str, key: str) -> dict[str, Any] | None:
    self.calls.append(("get", table))
    if not self.reachable:
      return None
    entry = self._table(table).get(key)
    return None if entry is None else copy.deepcopy(entry[1])

  async def set(self, table: str, key: str, record: dict[str, Any], *, owner_id: str | None = None) -> bool:
    self.calls.append(("set", table))
    if not self.reachable:
      return False
    self.put(table, key, record, owner_id=owner_id)
    return True

  async def delete_key(self, table: str, key: str) -> bool:
    self.calls.append(("delete_key", table))
    if not self.reachable:
      return False
    self._table(table).pop(key, None)
    return True

  async def delete_owned(self, table: str, owner_id: str) -> bool:
    self.calls.append(("delete_owned", table))
    if not self.reachable:
      return False
    rows = self._table(table)
    for key in [key for key, (owner, _) in rows.items() if owner == owner_id]:
      del rows[key]
    return True

  async def delete_all(self, table: str) -> bool:
    self.calls.append(("delete_all", table))
    if not self.reachable:
      return False
    self._table(table).clear()
    return True

  async def list_records(self, table: str, *, owner_id: str | None = None, limit: int | None = None) -> list[dict[str, Any]] | None:
    self.calls.append(("list_records", table))
    if not self.reachable:
      return None
    rows = [copy.deepcopy(record) for owner, record in reversed(list(self._table(table).values())) if owner_id is None or owner == owner_id]
    return rows if limit is None else rows[:limit]


class FakeLocalMirror:
  """Dict-backed local mirror; flip `fail_writes` to simulate a full disk."""

  def __init__(self) -> None:
    self.values: dict[str, str] = {}
    self.fail_writes = False

  def get(self, key: str) -> str | None:
    return self.values.get(key)

  def set(self, key: str, value: str) -> None:
    if self.fail_writes:
      raise LocalMirrorWriteFailure(key, OSError("No space left on device"))
    self.values[key] = value

  def delete(self, key: str) -> None:
    self.values.pop(key, None)

  def clear(self, prefix: str = "") -> int:
    keys = [key for key in self.values if key.startswith(prefix)]
    for key in keys:
      del self.values[key]
    return len(keys)


class FakeClock:
  """Monotonic seconds for the throttle guard."""

  def __init__(self, start: float = 1_000.0) -> None:
    self.value = start

  def __call__(self) -> float:
    return self.value

  def advance(self, seconds: float) -> None:
    self.value += seconds


class FakeWallClock:
  """Timezone-aware wall clock for cache freshness and timestamps."""

  def __init__(self, start: datetime | None = None) -> None:
    self.value = start or datetime(2024, 5, 6, 9, 0, tzinfo=UTC)

  def __call__(self) -> datetime:
    return self.value

  def advance(self, **delta: float) -> None:
    self.value += timedelta(**delta)


class FakeModel(AIModel):
  """Scripted model: streams `chunks` and answers structured prompts by schema."""

  def __init__(self, *, chunks: list[str] | None = None, structured: dict[str, Any] | None = None, name: str = "fake-model") -> None:
    self.name = name
    self.supports_structured_output = True
    self.chunks = chunks if chunks is not None else ["Goedemorgen! ", "Hoe gaat het?"]
    self.structured = structured or {}
    self.stream_error: Exception | None = None
    self.stream_calls = 0
    self.structured_calls: list[str] = []

  async def generate(self, prompt: str) -> SimpleModelResponse:
    return SimpleModelResponse(content="".join(self.chunks))

  async def generate_stream(self, prompt: str) -> AsyncIterator[Chunk]:
    self.stream_calls += 1
    for text in self.chunks:
      yield Chunk(text=text)
    if self.stream_error is not None:
      raise self.stream_error

  async def generate_structured(self, prompt: str, schema: dict[str, Any]) -> StructuredModelResponse:
    kind = _schema_kind(schema)
    self.structured_calls.append(kind)
    value = self.structured.get(kind, [])
    if isinstance(value, Exception):
      raise value
    return StructuredModelResponse(content=copy.deepcopy(value))


def _schema_kind(schema: dict[str, Any]) -> str:
  if schema.get("type") == "OBJECT":
    return "improvement"
  properties = schema.get("items", {}).get("properties", {})
  if "term" in properties:
    return "vocabulary"
  if "question" in properties:
    return "quiz"
  return "news"


VOCABULARY_PAYLOAD = [{"term": "goedemorgen", "translation": "buenos días", "word_type": "interjection", "pronunciation": "ɣudəˈmɔrɣə"}]
QUIZ_PAYLOAD = [{"question": "Wat betekent 'goedemorgen'?", "options": ["Buenas noches", "Buenos días"], "correct_answer": 1, "explanation": "Se usa por la mañana."}]
NEWS_PAYLOAD = [{"id": "nos-1", "title": "Nuevo horario de trenes", "summary": "NS cambia su horario.", "url": "https://nos.nl/artikel/1", "source": "NOS"}]
IMPROVEMENT_PAYLOAD = {
  "original_with_corrections": "Ik [heb -> ben] naar de markt gegaan.",
  "improved_version": "Gisteren ben ik naar de markt gegaan.",
  "feedback": "Con verbos de movimiento se usa 'zijn'.",
  "detected_topic": "De markt",
  "category": "Boodschappen",
}


@pytest.fixture
def remote_store() -> FakeRemoteStore:
  return FakeRemoteStore()


@pytest.fixture
def local_mirror() -> FakeLocalMirror:
  return FakeLocalMirror()


@pytest.fixture
def clock() -> FakeClock:
  return FakeClock()


@pytest.fixture
def wall_clock() -> FakeWallClock:
  return FakeWallClock()


@pytest.fixture
def fake_model() -> FakeModel:
  return FakeModel(structured={"vocabulary": VOCABULARY_PAYLOAD, "quiz": QUIZ_PAYLOAD, "news": NEWS_PAYLOAD, "improvement": IMPROVEMENT_PAYLOAD})


@pytest.fixture
def settings(tmp_path) -> Settings:
  return Settings(
    environment="test",
    debug=False,
    allowed_origins=("http://localhost:3000",),
    log_max_bytes=1024,
    log_backup_count=1,
    pg_dsn=None,
    pg_connect_timeout=1,
    gemini_api_key=None,
    script_model="fake-model",
    extraction_model="fake-model",
    local_mirror_dir=tmp_path / "mirror",
    user_id="learner-1",
    throttle_cooldown_seconds=30,
    listing_ttl_minutes=10,
    producer_timeout_seconds=5,
    history_limit=50,
  )
