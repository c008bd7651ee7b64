"""On-device key-value mirror backed by one JSON document per key."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from hashlib import sha256
from pathlib import Path
from threading import RLock
from typing import Protocol

from speaksync.cache.errors import LocalMirrorWriteFailure

logger = logging.getLogger(__name__)

_FORMAT_VERSION = 1


class LocalMirror(Protocol):
  """Synchronous string store that survives restarts."""

  def get(self, key: str) -> str | None:
    """Return the stored value, or None when absent or unreadable."""

  def set(self, key: str, value: str) -> None:
    """Store a value; raise LocalMirrorWriteFailure when the medium refuses it."""

  def delete(self, key: str) -> None:
    """Remove a key if present."""

  def clear(self, prefix: str = "") -> int:
    """Remove every key starting with prefix and return how many were removed."""


class FileLocalMirror(LocalMirror):
  """
  Store each key in its own file under `root`.

  File names are a digest of the key so arbitrary content keys are safe on any
  filesystem; the key itself is kept inside the document for prefix clears.
  Writes go to a temp file first and are moved into place, so a crash never
  leaves a half-written value behind.
  """

  def __init__(self, root: Path) -> None:
    self._root = Path(root)
    self._lock = RLock()
    self._root.mkdir(parents=True, exist_ok=True)

  @property
  def root(self) -> Path:
    return self._root

  def _path_for(self, key: str) -> Path:
    digest = sha256(key.encode("utf-8")).hexdigest()
    return self._root / f"{digest}.json"

  def get(self, key: str) -> str | None:
    path = self._path_for(key)
    with self._lock:
      try:
        document = json.loads(path.read_text(encoding="utf-8"))
      except FileNotFoundError:
        return None
      except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Unreadable local mirror entry key=%s path=%s: %s", key, path, exc)
        return None

    if not isinstance(document, dict) or document.get("version") != _FORMAT_VERSION or document.get("key") != key:
      return None
    value = document.get("value")
    return value if isinstance(value, str) else None

  def set(self, key: str, value: str) -> None:
    path = self._path_for(key)
    document = json.dumps({"version": _FORMAT_VERSION, "key": key, "value": value}, ensure_ascii=False)
    with self._lock:
      tmp_name: str | None = None
      try:
        with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=self._root, prefix=".tmp-", suffix=".part", delete=False) as handle:
          tmp_name = handle.name
          handle.write(document)
        os.replace(tmp_name, path)
      except OSError as exc:
        if tmp_name is not None:
          Path(tmp_name).unlink(missing_ok=True)
        raise LocalMirrorWriteFailure(key, exc) from exc

  def delete(self, key: str) -> None:
    with self._lock:
      try:
        self._path_for(key).unlink(missing_ok=True)
      except OSError as exc:
        logger.warning("Failed to delete local mirror key=%s: %s", key, exc)

  def clear(self, prefix: str = "") -> int:
    removed = 0
    with self._lock:
      for candidate in self._root.glob("*.json"):
        if prefix:
          try:
            stored_key = json.loads(candidate.read_text(encoding="utf-8")).get("key", "")
          except (OSError, UnicodeDecodeError, json.JSONDecodeError, AttributeError):
            continue
          if not isinstance(stored_key, str) or not stored_key.startswith(prefix):
            continue
        try:
          candidate.unlink()
          removed += 1
        except FileNotFoundError:
          continue
        except OSError as exc:
          logger.warning("Failed to remove local mirror file %s: %s", candidate, exc)
    return removed
