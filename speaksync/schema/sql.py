from __future__ import annotations

import datetime
from typing import Any, Final

from sqlalchemy import DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from speaksync.core.database import Base

LESSON_CACHE_TABLE: Final[str] = "content_cache"
NEWS_CACHE_TABLE: Final[str] = "news_cache"
PROFILES_TABLE: Final[str] = "profiles"
PROGRESS_TABLE: Final[str] = "user_progress"
VOCABULARY_TABLE: Final[str] = "user_vocabulary"
HISTORY_TABLE: Final[str] = "history"
ATELIER_TABLE: Final[str] = "atelier_logs"


class RecordColumns:
  """Shared shape of every remote table: a keyed JSON document with an optional owner."""

  record_key: Mapped[str] = mapped_column(String, primary_key=True)
  owner_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  payload: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ContentCacheRecord(RecordColumns, Base):
  __tablename__ = LESSON_CACHE_TABLE


class NewsCacheRecord(RecordColumns, Base):
  __tablename__ = NEWS_CACHE_TABLE


class ProfileRecord(RecordColumns, Base):
  __tablename__ = PROFILES_TABLE


class ProgressRecord(RecordColumns, Base):
  __tablename__ = PROGRESS_TABLE


class VocabularyRecord(RecordColumns, Base):
  __tablename__ = VOCABULARY_TABLE


class HistoryRecord(RecordColumns, Base):
  __tablename__ = HISTORY_TABLE


class AtelierLogRecord(RecordColumns, Base):
  __tablename__ = ATELIER_TABLE


REMOTE_TABLES: Final[dict[str, type[RecordColumns]]] = {
  LESSON_CACHE_TABLE: ContentCacheRecord,
  NEWS_CACHE_TABLE: NewsCacheRecord,
  PROFILES_TABLE: ProfileRecord,
  PROGRESS_TABLE: ProgressRecord,
  VOCABULARY_TABLE: VocabularyRecord,
  HISTORY_TABLE: HistoryRecord,
  ATELIER_TABLE: AtelierLogRecord,
}
