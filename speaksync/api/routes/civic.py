from __future__ import annotations

from fastapi import APIRouter, Depends

from speaksync.api.deps import get_civic_service
from speaksync.api.models import CivicGuideRequest, CivicGuideResponse, IntegrationExamRequest, IntegrationExamResponse
from speaksync.services.civic import CivicService

router = APIRouter()


@router.post("/guide", response_model=CivicGuideResponse)
async def create_civic_guide(request: CivicGuideRequest, service: CivicService = Depends(get_civic_service)) -> CivicGuideResponse:  # noqa: B008
  guide = await service.generate_guide(request.topic, request.level)
  return CivicGuideResponse(topic=guide.topic, level=guide.level, content=guide.content)


@router.post("/exam", response_model=IntegrationExamResponse)
async def create_integration_exam(request: IntegrationExamRequest, service: CivicService = Depends(get_civic_service)) -> IntegrationExamResponse:  # noqa: B008
  """Generate a fresh mock integration exam; exams are not cached."""
  questions = await service.generate_integration_exam(request.category, request.level)
  return IntegrationExamResponse(category=request.category, level=request.level, questions=questions)
