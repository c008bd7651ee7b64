from __future__ import annotations

import json

import pytest

from speaksync.cache.errors import LocalMirrorWriteFailure
from speaksync.cache.local_mirror import FileLocalMirror


def test_set_then_get_survives_a_new_instance(tmp_path) -> None:
  FileLocalMirror(tmp_path).set("content_cache:LESSON-42", '{"a": 1}')
  assert FileLocalMirror(tmp_path).get("content_cache:LESSON-42") == '{"a": 1}'


def test_missing_key_returns_none(tmp_path) -> None:
  assert FileLocalMirror(tmp_path).get("nope") is None


def test_overwrite_replaces_value(tmp_path) -> None:
  mirror = FileLocalMirror(tmp_path)
  mirror.set("k", "one")
  mirror.set("k", "two")
  assert mirror.get("k") == "two"
  assert len(list(tmp_path.glob("*.json"))) == 1


def test_corrupt_file_reads_as_missing(tmp_path) -> None:
  mirror = FileLocalMirror(tmp_path)
  mirror.set("k", "value")
  (only_file,) = tmp_path.glob("*.json")
  only_file.write_text("{not json", encoding="utf-8")
  assert mirror.get("k") is None


def test_document_for_other_key_is_ignored(tmp_path) -> None:
  mirror = FileLocalMirror(tmp_path)
  mirror.set("k", "value")
  (only_file,) = tmp_path.glob("*.json")
  only_file.write_text(json.dumps({"version": 1, "key": "other", "value": "x"}), encoding="utf-8")
  assert mirror.get("k") is None


def test_delete_and_prefix_clear(tmp_path) -> None:
  mirror = FileLocalMirror(tmp_path)
  mirror.set("news_cache:economy:A2", "1")
  mirror.set("news_cache:sport:A2", "2")
  mirror.set("content_cache:LESSON-1", "3")

  mirror.delete("news_cache:sport:A2")
  assert mirror.get("news_cache:sport:A2") is None

  assert mirror.clear(prefix="news_cache:") == 1
  assert mirror.get("news_cache:economy:A2") is None
  assert mirror.get("content_cache:LESSON-1") == "3"

  assert mirror.clear() == 1
  assert mirror.get("content_cache:LESSON-1") is None


def test_unwritable_directory_raises_write_failure(tmp_path, monkeypatch) -> None:
  mirror = FileLocalMirror(tmp_path)

  def refuse(*args, **kwargs):
    raise OSError("No space left on device")

  monkeypatch.setattr("speaksync.cache.local_mirror.os.replace", refuse)
  with pytest.raises(LocalMirrorWriteFailure):
    mirror.set("k", "value")
  assert mirror.get("k") is None
  assert list(tmp_path.iterdir()) == []
