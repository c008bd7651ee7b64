from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from speaksync.api.deps import get_news_service
from speaksync.api.models import NewsDossierRequest, NewsDossierResponse, NewsResponse
from speaksync.schema.content import ProficiencyLevel
from speaksync.services.news import NewsService

router = APIRouter()


@router.get("", response_model=NewsResponse)
async def get_news(
  category: str = Query(..., min_length=1, max_length=80),  # noqa: B008
  level: ProficiencyLevel = Query(ProficiencyLevel.A2),  # noqa: B008
  service: NewsService = Depends(get_news_service),  # noqa: B008
) -> NewsResponse:
  """Return current headlines; a 429 carries the remaining search cooldown."""
  resolution = await service.fetch_news(category, level)
  listing = resolution.artifact
  return NewsResponse(category=listing.category, level=listing.level, items=listing.items, source=resolution.source, is_from_cache=resolution.from_cache)


@router.post("/dossier", response_model=NewsDossierResponse)
async def create_news_dossier(request: NewsDossierRequest, service: NewsService = Depends(get_news_service)) -> NewsDossierResponse:  # noqa: B008
  dossier = await service.generate_dossier(request.title, request.summary, request.level)
  return NewsDossierResponse(title=dossier.title, level=dossier.level, content=dossier.content)
