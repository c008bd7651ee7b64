from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from speaksync.cache.models import ResolutionSource
from speaksync.schema.content import NewsItem, ProficiencyLevel, QuizQuestion, VocabularyItem
from speaksync.schema.profile import SyncSource


class LessonResponse(BaseModel):
  """Lesson payload plus where it was served from."""

  chapter_id: str
  topic: str
  level: ProficiencyLevel
  content: str
  vocabulary: list[VocabularyItem]
  quiz: list[QuizQuestion]
  source: ResolutionSource
  is_from_cache: bool


class CompleteTurnRequest(BaseModel):
  xp_earned: int = Field(default=150, ge=0, le=10_000, description="Points credited for finishing the chapter.")
  model_config = ConfigDict(extra="forbid")


class NewsResponse(BaseModel):
  category: str
  level: ProficiencyLevel
  items: list[NewsItem]
  source: ResolutionSource
  is_from_cache: bool


class CivicGuideRequest(BaseModel):
  topic: StrictStr = Field(min_length=1, max_length=200, examples=["Registering at the gemeente"])
  level: ProficiencyLevel = ProficiencyLevel.A2
  model_config = ConfigDict(extra="forbid")


class CivicGuideResponse(BaseModel):
  topic: str
  level: ProficiencyLevel
  content: str


class NewsDossierRequest(BaseModel):
  title: StrictStr = Field(min_length=1, max_length=300)
  summary: StrictStr = Field(default="", max_length=2000)
  level: ProficiencyLevel = ProficiencyLevel.A2
  model_config = ConfigDict(extra="forbid")


class NewsDossierResponse(BaseModel):
  title: str
  level: ProficiencyLevel
  content: str


class IntegrationExamRequest(BaseModel):
  category: StrictStr = Field(min_length=1, max_length=120, examples=["KNM: Werk en inkomen"])
  level: ProficiencyLevel = ProficiencyLevel.A2
  model_config = ConfigDict(extra="forbid")


class IntegrationExamResponse(BaseModel):
  category: str
  level: ProficiencyLevel
  questions: list[QuizQuestion]


class ScriptImprovementRequest(BaseModel):
  """Learner-written text to be corrected."""

  text: StrictStr = Field(min_length=1, max_length=5000)
  level: ProficiencyLevel = ProficiencyLevel.A2
  model_config = ConfigDict(extra="forbid")


class HistoryCreateRequest(BaseModel):
  """History entry supplied by the client; id and timestamp are optional."""

  id: StrictStr | None = Field(default=None, min_length=1)
  topic: StrictStr = Field(min_length=1)
  level: ProficiencyLevel
  content: StrictStr
  source: SyncSource = SyncSource.AI_SYNC
  model_config = ConfigDict(extra="forbid")


class ClearHistoryResponse(BaseModel):
  cleared_local: bool
  cleared_remote: bool


class StreakResponse(BaseModel):
  streak: int
