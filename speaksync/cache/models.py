"""Core records shared by the cache tiers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

ContentKey = str
ResolutionSource = Literal["local", "remote", "producer"]


class Artifact(BaseModel):
  """Generated content cached under a content key."""

  model_config = ConfigDict(frozen=True, extra="forbid")

  content: str = ""


class Chunk(BaseModel):
  """Incremental text fragment emitted by a streaming producer."""

  model_config = ConfigDict(frozen=True)

  text: str | None = None


class MalformedEntryError(ValueError):
  """Raised when a stored record cannot be turned back into a cache entry."""


@dataclass(frozen=True)
class CacheEntry[ArtifactT: Artifact]:
  """Immutable cache row: a refresh writes a new entry rather than editing this one."""

  key: ContentKey
  payload: ArtifactT
  created_at: datetime

  def is_fresh(self, now: datetime, max_age: timedelta | None) -> bool:
    if max_age is None:
      return True
    return now - self.created_at <= max_age

  def to_record(self) -> dict[str, Any]:
    return {"key": self.key, "payload": self.payload.model_dump(mode="json"), "created_at": self.created_at.isoformat()}

  @classmethod
  def from_record(cls, record: Any, artifact_type: type[ArtifactT], *, expected_key: ContentKey | None = None) -> CacheEntry[ArtifactT]:
    """Validate a stored record strictly; anything unexpected is a MalformedEntryError."""
    if not isinstance(record, dict):
      raise MalformedEntryError(f"Expected a mapping, got {type(record).__name__}")

    key = record.get("key")
    if not isinstance(key, str) or not key:
      raise MalformedEntryError("Stored entry is missing its key")
    if expected_key is not None and key != expected_key:
      raise MalformedEntryError(f"Stored entry key {key!r} does not match {expected_key!r}")

    created_at = _parse_timestamp(record.get("created_at"))

    try:
      payload = artifact_type.model_validate(record.get("payload"))
    except ValidationError as exc:
      raise MalformedEntryError(f"Stored payload for {key!r} failed validation: {exc.error_count()} error(s)") from exc

    return cls(key=key, payload=payload, created_at=created_at)


@dataclass(frozen=True)
class Resolution[ArtifactT: Artifact]:
  """Outcome of a resolve call, including which tier answered."""

  artifact: ArtifactT
  source: ResolutionSource

  @property
  def from_cache(self) -> bool:
    return self.source != "producer"


def utcnow() -> datetime:
  return datetime.now(UTC)


def _parse_timestamp(raw: Any) -> datetime:
  if isinstance(raw, datetime):
    value = raw
  elif isinstance(raw, str):
    try:
      value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
      raise MalformedEntryError(f"Invalid created_at timestamp {raw!r}") from exc
  else:
    raise MalformedEntryError("Stored entry is missing created_at")

  # Naive timestamps come from older rows written without tz info; they were UTC.
  if value.tzinfo is None:
    value = value.replace(tzinfo=UTC)
  return value
