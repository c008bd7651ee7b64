"""Learner state kept in sync between the local mirror and the remote store."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from speaksync.schema.content import ProficiencyLevel, VocabularyItem

DEFAULT_CREDITS = 50


class VocabMastery(str, Enum):
  NEW = "new"
  LEARNING = "learning"
  MASTERED = "mastered"
  CRITICAL = "critical"


class SyncSource(str, Enum):
  """Where a history item originated."""

  ROADMAP = "roadmap"
  AI_SYNC = "ai_sync"
  NEWS = "news"
  CIVIC = "civic"


class ProfileStats(BaseModel):
  """Aggregate learner stats; replaced as a whole record, last writer wins."""

  user_id: StrictStr
  points: int = Field(default=0, ge=0)
  streak: int = Field(default=0, ge=0)
  level: ProficiencyLevel = ProficiencyLevel.A1
  credits: int = Field(default=DEFAULT_CREDITS, ge=0)
  last_activity: datetime | None = None
  model_config = ConfigDict(extra="ignore")


class ProfileStatsUpdate(BaseModel):
  """Partial update merged over the current ProfileStats."""

  points: int | None = Field(default=None, ge=0)
  streak: int | None = Field(default=None, ge=0)
  level: ProficiencyLevel | None = None
  credits: int | None = Field(default=None, ge=0)
  model_config = ConfigDict(extra="forbid")


class ChapterProgress(BaseModel):
  chapter_id: StrictStr = Field(min_length=1)
  score: int = Field(default=100, ge=0, le=100)
  completed_at: datetime
  model_config = ConfigDict(extra="ignore")


class VaultWord(VocabularyItem):
  """A vocabulary item the learner has saved, with practice tracking."""

  mastery: VocabMastery = VocabMastery.NEW
  sync_count: int = Field(default=1, ge=0)
  last_practiced: datetime | None = None
  model_config = ConfigDict(extra="ignore")


class HistoryItem(BaseModel):
  id: StrictStr = Field(min_length=1)
  topic: StrictStr
  level: ProficiencyLevel
  content: StrictStr
  timestamp: datetime
  source: SyncSource = SyncSource.AI_SYNC
  model_config = ConfigDict(extra="ignore")


class AtelierLog(BaseModel):
  """One corrected piece of learner writing, kept for later review."""

  id: StrictStr = Field(min_length=1)
  original: StrictStr
  improved: StrictStr
  feedback: StrictStr = ""
  category: StrictStr = ""
  created_at: datetime
  model_config = ConfigDict(extra="ignore")
