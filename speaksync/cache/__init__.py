"""Tiered content cache exports."""

from .errors import LocalMirrorWriteFailure, ProducerUnavailable, RemoteStoreUnavailable, SpeakSyncError, ThrottledError
from .local_mirror import FileLocalMirror, LocalMirror
from .models import Artifact, CacheEntry, Chunk, ContentKey, MalformedEntryError, Resolution
from .producer import ProducerInvoker
from .remote_store import RemoteStore, StoredRecord
from .resolver import CacheResolver
from .throttle import CIVIC_SEARCH, NEWS_SEARCH, ThrottleGuard, ThrottleState

__all__ = [
  "Artifact",
  "CacheEntry",
  "CacheResolver",
  "Chunk",
  "CIVIC_SEARCH",
  "ContentKey",
  "FileLocalMirror",
  "LocalMirror",
  "LocalMirrorWriteFailure",
  "MalformedEntryError",
  "NEWS_SEARCH",
  "ProducerInvoker",
  "ProducerUnavailable",
  "RemoteStore",
  "RemoteStoreUnavailable",
  "Resolution",
  "SpeakSyncError",
  "StoredRecord",
  "ThrottleGuard",
  "ThrottleState",
  "ThrottledError",
]
