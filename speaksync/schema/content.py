"""Artifacts produced by the content producer and cached per content key."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator

from speaksync.cache.models import Artifact


class ProficiencyLevel(str, Enum):
  """CEFR levels offered by the curriculum."""

  A1 = "A1"
  A2 = "A2"
  B1 = "B1"
  B2 = "B2"
  C1 = "C1"
  C2 = "C2"


class VocabularyItem(BaseModel):
  """A term extracted from a lesson script."""

  term: StrictStr = Field(min_length=1, description="Word or phrase in the target language.")
  translation: StrictStr = Field(min_length=1, description="Translation in the learner's language.")
  word_type: StrictStr = Field(default="", description="Grammatical category, e.g. noun or verb.")
  pronunciation: StrictStr | None = None
  model_config = ConfigDict(extra="forbid")


class QuizQuestion(BaseModel):
  """Multiple-choice question generated from a lesson script."""

  question: StrictStr = Field(min_length=1)
  options: list[StrictStr] = Field(min_length=2)
  correct_answer: StrictInt = Field(ge=0, description="Index into options.")
  explanation: StrictStr = ""
  model_config = ConfigDict(extra="forbid")

  @model_validator(mode="after")
  def check_answer_index(self) -> QuizQuestion:
    if self.correct_answer >= len(self.options):
      raise ValueError(f"correct_answer {self.correct_answer} is out of range for {len(self.options)} options")
    return self


class LessonArtifact(Artifact):
  """Lesson script plus the vocabulary and quiz derived from it."""

  topic: StrictStr
  level: ProficiencyLevel
  vocabulary: list[VocabularyItem] = Field(default_factory=list)
  quiz: list[QuizQuestion] = Field(default_factory=list)

  @model_validator(mode="after")
  def require_script(self) -> LessonArtifact:
    if not self.content.strip():
      raise ValueError("Lesson script must not be empty")
    return self


class NewsItem(BaseModel):
  id: StrictStr
  title: StrictStr
  summary: StrictStr
  url: StrictStr
  source: StrictStr
  category: StrictStr = ""
  model_config = ConfigDict(extra="forbid")


class NewsListing(Artifact):
  """Current headlines for one category at one level; served for a short window only."""

  category: StrictStr
  level: ProficiencyLevel
  items: list[NewsItem] = Field(default_factory=list)


class CivicGuide(Artifact):
  topic: StrictStr
  level: ProficiencyLevel


class NewsDossier(Artifact):
  """Long-form briefing on one headline; generated on demand and never cached."""

  title: StrictStr
  level: ProficiencyLevel


class ScriptImprovement(BaseModel):
  """Corrections and a rewritten version of a learner's own text."""

  original_with_corrections: StrictStr = Field(description="Learner text with errors marked inline.")
  improved_version: StrictStr = Field(min_length=1)
  feedback: StrictStr = ""
  detected_topic: StrictStr = ""
  category: StrictStr = ""
  model_config = ConfigDict(extra="forbid")
