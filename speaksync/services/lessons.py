"""Lesson content: streamed script plus vocabulary and quiz, cached forever per chapter."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from pydantic import TypeAdapter

from speaksync.ai.prompts import IMPROVEMENT_SCHEMA, QUIZ_SCHEMA, VOCABULARY_SCHEMA, build_lesson_script_prompt, build_quiz_prompt, build_script_improvement_prompt, build_vocabulary_prompt
from speaksync.ai.providers.base import AIModel
from speaksync.cache.models import Resolution
from speaksync.cache.producer import ProducerInvoker
from speaksync.cache.resolver import CacheResolver
from speaksync.schema.content import LessonArtifact, ProficiencyLevel, QuizQuestion, ScriptImprovement, VocabularyItem
from speaksync.schema.profile import HistoryItem, ProfileStats, SyncSource
from speaksync.services.sync import SyncOrchestrator

logger = logging.getLogger(__name__)

_VOCABULARY_ADAPTER = TypeAdapter(list[VocabularyItem])
_QUIZ_ADAPTER = TypeAdapter(list[QuizQuestion])


class LessonService:
  """Resolve chapter lessons through the content cache and record learner progress."""

  def __init__(self, *, resolver: CacheResolver[LessonArtifact], orchestrator: SyncOrchestrator, producer: ProducerInvoker, script_model: AIModel, extraction_model: AIModel) -> None:
    self._resolver = resolver
    self._orchestrator = orchestrator
    self._producer = producer
    self._script_model = script_model
    self._extraction_model = extraction_model

  async def sync_lesson_content(self, chapter_id: str, topic: str, level: ProficiencyLevel, *, is_exam: bool = False, on_chunk: Callable[[str], None] | None = None) -> Resolution[LessonArtifact]:
    """Return the lesson for a chapter, generating it only when neither tier has it."""

    async def produce() -> LessonArtifact:
      prompt = build_lesson_script_prompt(topic, level, is_exam=is_exam)
      script = await self._producer.collect_stream(self._script_model.generate_stream(prompt), on_chunk=on_chunk)
      # Vocabulary and quiz only depend on the finished script.
      vocabulary, quiz = await asyncio.gather(self._extract_vocabulary(script), self._generate_quiz(script))
      return LessonArtifact(content=script, topic=topic, level=level, vocabulary=vocabulary, quiz=quiz)

    resolution = await self._resolver.resolve_entry(chapter_id, produce)
    if resolution.source == "producer":
      item = HistoryItem(id=chapter_id, topic=topic, level=level, content=resolution.artifact.content, timestamp=self._orchestrator.now(), source=SyncSource.AI_SYNC)
      self._orchestrator.save_history_item(item)
    logger.info("Lesson chapter_id=%s served from %s", chapter_id, resolution.source)
    return resolution

  async def complete_sync_turn(self, chapter_id: str, xp_earned: int) -> ProfileStats:
    """Mark a chapter complete and credit the earned points."""
    if xp_earned < 0:
      raise ValueError("xp_earned must not be negative.")
    self._orchestrator.save_chapter_progress(chapter_id, 100)
    stats = await self._orchestrator.fetch_profile_stats()
    return self._orchestrator.persist({"points": stats.points + xp_earned})

  async def improve_script(self, text: str, level: ProficiencyLevel) -> ScriptImprovement:
    """Correct a learner-written text and log the result; corrections are never cached."""
    if not text.strip():
      raise ValueError("text must not be empty.")

    async def produce() -> ScriptImprovement:
      response = await self._extraction_model.generate_structured(build_script_improvement_prompt(text, level), IMPROVEMENT_SCHEMA)
      return ScriptImprovement.model_validate(response.content)

    improvement = await self._producer.invoke(produce, label="script_improvement")
    self._orchestrator.save_atelier_log(text, improvement)
    logger.info("Script improved level=%s category=%s", level.value, improvement.category or "-")
    return improvement

  async def _extract_vocabulary(self, script: str) -> list[VocabularyItem]:
    response = await self._extraction_model.generate_structured(build_vocabulary_prompt(script), VOCABULARY_SCHEMA)
    return _VOCABULARY_ADAPTER.validate_python(response.content)

  async def _generate_quiz(self, script: str) -> list[QuizQuestion]:
    response = await self._extraction_model.generate_structured(build_quiz_prompt(script), QUIZ_SCHEMA)
    return _QUIZ_ADAPTER.validate_python(response.content)
