"""Shared FastAPI dependencies resolving the service graph built at startup."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from speaksync.services.civic import CivicService
from speaksync.services.factory import ServiceContainer
from speaksync.services.lessons import LessonService
from speaksync.services.news import NewsService
from speaksync.services.sync import SyncOrchestrator


def get_services(request: Request) -> ServiceContainer:
  """Return the container stored on app state by the lifespan."""
  services = getattr(request.app.state, "services", None)
  if services is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is still starting.")
  return services


def get_lesson_service(services: ServiceContainer = Depends(get_services)) -> LessonService:  # noqa: B008
  return services.lessons


def get_news_service(services: ServiceContainer = Depends(get_services)) -> NewsService:  # noqa: B008
  return services.news


def get_civic_service(services: ServiceContainer = Depends(get_services)) -> CivicService:  # noqa: B008
  return services.civic


def get_orchestrator(services: ServiceContainer = Depends(get_services)) -> SyncOrchestrator:  # noqa: B008
  return services.orchestrator
