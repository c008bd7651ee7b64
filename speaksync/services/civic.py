"""Civic field guides and mock integration exams: never cached."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import TypeAdapter

from speaksync.ai.prompts import QUIZ_SCHEMA, build_civic_guide_prompt, build_integration_exam_prompt
from speaksync.ai.providers.base import AIModel
from speaksync.cache.errors import ProducerUnavailable
from speaksync.cache.producer import ProducerInvoker
from speaksync.cache.throttle import CIVIC_SEARCH, ThrottleGuard
from speaksync.schema.content import CivicGuide, ProficiencyLevel, QuizQuestion

logger = logging.getLogger(__name__)

_EXAM_ADAPTER = TypeAdapter(list[QuizQuestion])


class CivicService:
  def __init__(self, *, throttle_guard: ThrottleGuard, producer: ProducerInvoker, model: AIModel) -> None:
    self._throttle = throttle_guard
    self._producer = producer
    self._model = model

  async def generate_guide(self, topic: str, level: ProficiencyLevel, *, on_chunk: Callable[[str], None] | None = None) -> CivicGuide:
    async with self._throttle.lock_for(CIVIC_SEARCH):
      self._throttle.ensure_available(CIVIC_SEARCH)
      prompt = build_civic_guide_prompt(topic, level)
      content = await self._producer.invoke(lambda: self._producer.collect_stream(self._model.generate_stream(prompt), on_chunk=on_chunk), label="civic_guide")
      self._throttle.record_execution(CIVIC_SEARCH)

    logger.info("Civic guide generated topic=%s level=%s chars=%d", topic, level.value, len(content))
    return CivicGuide(content=content, topic=topic, level=level)

  async def generate_integration_exam(self, category: str, level: ProficiencyLevel) -> list[QuizQuestion]:
    """Generate a fresh mock exam; questions are in Dutch, options and explanations in Spanish."""

    async def produce() -> list[QuizQuestion]:
      response = await self._model.generate_structured(build_integration_exam_prompt(category, level), QUIZ_SCHEMA)
      return _EXAM_ADAPTER.validate_python(response.content)

    questions = await self._producer.invoke(produce, label="integration_exam")
    if not questions:
      raise ProducerUnavailable(f"Integration exam for {category!r} came back empty", kind="malformed")
    logger.info("Integration exam generated category=%s level=%s questions=%d", category, level.value, len(questions))
    return questions
