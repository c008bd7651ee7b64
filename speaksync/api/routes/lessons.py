from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from speaksync.api.deps import get_lesson_service
from speaksync.api.models import CompleteTurnRequest, LessonResponse, ScriptImprovementRequest
from speaksync.schema.content import ProficiencyLevel, ScriptImprovement
from speaksync.schema.profile import ProfileStats
from speaksync.services.lessons import LessonService

router = APIRouter()


@router.post("/improve", response_model=ScriptImprovement)
async def improve_script(request: ScriptImprovementRequest, service: LessonService = Depends(get_lesson_service)) -> ScriptImprovement:  # noqa: B008
  """Correct a learner-written text and log it for later review."""
  return await service.improve_script(request.text, request.level)


@router.get("/{chapter_id}", response_model=LessonResponse)
async def get_lesson(
  chapter_id: str,
  topic: str = Query(..., min_length=1, max_length=200),  # noqa: B008
  level: ProficiencyLevel = Query(ProficiencyLevel.A1),  # noqa: B008
  is_exam: bool = Query(False),  # noqa: B008
  service: LessonService = Depends(get_lesson_service),  # noqa: B008
) -> LessonResponse:
  """
  Return the lesson for a chapter.

  Served from the local mirror or the shared cache when available; otherwise
  the script is generated once and cached for every later request.
  """
  resolution = await service.sync_lesson_content(chapter_id, topic, level, is_exam=is_exam)
  lesson = resolution.artifact
  return LessonResponse(
    chapter_id=chapter_id,
    topic=lesson.topic,
    level=lesson.level,
    content=lesson.content,
    vocabulary=lesson.vocabulary,
    quiz=lesson.quiz,
    source=resolution.source,
    is_from_cache=resolution.from_cache,
  )


@router.post("/{chapter_id}/complete", response_model=ProfileStats)
async def complete_lesson(chapter_id: str, request: CompleteTurnRequest, service: LessonService = Depends(get_lesson_service)) -> ProfileStats:  # noqa: B008
  """Record chapter completion and credit points."""
  return await service.complete_sync_turn(chapter_id, request.xp_earned)
