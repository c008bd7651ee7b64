"""Error taxonomy for the content cache and its storage tiers.

Only `ThrottledError` and `ProducerUnavailable` are allowed to reach callers.
The storage errors exist so stores can report failures precisely; the resolver
and the sync orchestrator catch and log them.
"""

from __future__ import annotations

from typing import Literal

ProducerFailureKind = Literal["network", "timeout", "malformed", "quota"]


class SpeakSyncError(Exception):
  """Base class for SpeakSync domain errors."""


class ThrottledError(SpeakSyncError):
  """Raised when a resource class is still cooling down."""

  def __init__(self, resource_class: str, remaining_seconds: int) -> None:
    self.resource_class = resource_class
    self.remaining_seconds = remaining_seconds
    super().__init__(f"{resource_class} is throttled for another {remaining_seconds}s")


class ProducerUnavailable(SpeakSyncError):
  """Raised when the content producer fails to deliver a usable artifact."""

  def __init__(self, message: str, *, kind: ProducerFailureKind = "network") -> None:
    self.kind: ProducerFailureKind = kind
    super().__init__(message)

  @property
  def retryable(self) -> bool:
    # Quota exhaustion is better surfaced as a cooldown than retried immediately.
    return self.kind != "quota"


class RemoteStoreUnavailable(SpeakSyncError):
  """Raised inside a remote store when the backing database cannot be reached."""

  def __init__(self, operation: str, table: str, cause: BaseException | None = None) -> None:
    self.operation = operation
    self.table = table
    detail = f": {cause}" if cause is not None else ""
    super().__init__(f"Remote store {operation} on {table} failed{detail}")


class LocalMirrorWriteFailure(SpeakSyncError):
  """Raised by a local mirror when a value cannot be persisted."""

  def __init__(self, key: str, cause: BaseException | None = None) -> None:
    self.key = key
    detail = f": {cause}" if cause is not None else ""
    super().__init__(f"Local mirror write for {key!r} failed{detail}")
