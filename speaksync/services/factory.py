"""Wire the cache tiers, throttle and services from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from collections.abc import Callable
from datetime import datetime, timedelta

from speaksync.ai.providers.base import AIModel
from speaksync.ai.providers.gemini import GeminiProvider
from speaksync.cache.local_mirror import LocalMirror
from speaksync.cache.models import utcnow
from speaksync.cache.producer import ProducerInvoker
from speaksync.cache.remote_store import RemoteStore
from speaksync.cache.resolver import CacheResolver
from speaksync.cache.throttle import NEWS_SEARCH, ThrottleGuard
from speaksync.config import Settings
from speaksync.schema.content import LessonArtifact, NewsListing
from speaksync.schema.sql import LESSON_CACHE_TABLE, NEWS_CACHE_TABLE
from speaksync.services.civic import CivicService
from speaksync.services.lessons import LessonService
from speaksync.services.news import NewsService
from speaksync.services.sync import ErrorSink, SyncOrchestrator
from speaksync.storage.factory import _get_local_mirror, _get_remote_store

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
  """Process-wide service graph; one throttle guard shared by every producer path."""

  throttle_guard: ThrottleGuard
  producer: ProducerInvoker
  local_mirror: LocalMirror
  remote_store: RemoteStore
  orchestrator: SyncOrchestrator
  lesson_resolver: CacheResolver[LessonArtifact]
  news_resolver: CacheResolver[NewsListing]
  lessons: LessonService
  news: NewsService
  civic: CivicService


def build_services(
  settings: Settings,
  *,
  local_mirror: LocalMirror | None = None,
  remote_store: RemoteStore | None = None,
  script_model: AIModel | None = None,
  extraction_model: AIModel | None = None,
  throttle_guard: ThrottleGuard | None = None,
  error_sink: ErrorSink | None = None,
  now: Callable[[], datetime] = utcnow,
) -> ServiceContainer:
  """Build the service graph; explicit collaborators override the settings-driven defaults."""
  local_mirror = local_mirror or _get_local_mirror(settings)
  remote_store = remote_store or _get_remote_store(settings)
  throttle_guard = throttle_guard or ThrottleGuard(settings.throttle_cooldown_seconds)
  producer = ProducerInvoker(settings.producer_timeout_seconds)

  if script_model is None or extraction_model is None:
    provider = GeminiProvider(api_key=settings.gemini_api_key)
    script_model = script_model or provider.get_model(settings.script_model)
    extraction_model = extraction_model or provider.get_model(settings.extraction_model)

  orchestrator = SyncOrchestrator(user_id=settings.user_id, local_mirror=local_mirror, remote_store=remote_store, error_sink=error_sink, history_limit=settings.history_limit, now=now)

  lesson_resolver = CacheResolver(LESSON_CACHE_TABLE, LessonArtifact, local_mirror=local_mirror, remote_store=remote_store, throttle_guard=throttle_guard, producer=producer, now=now)
  news_resolver = CacheResolver(
    NEWS_CACHE_TABLE,
    NewsListing,
    local_mirror=local_mirror,
    remote_store=remote_store,
    throttle_guard=throttle_guard,
    producer=producer,
    max_age=timedelta(minutes=settings.listing_ttl_minutes),
    resource_class=NEWS_SEARCH,
    now=now,
  )

  logger.info("Services ready user_id=%s cooldown=%.0fs listing_ttl=%dm", settings.user_id, settings.throttle_cooldown_seconds, settings.listing_ttl_minutes)
  return ServiceContainer(
    throttle_guard=throttle_guard,
    producer=producer,
    local_mirror=local_mirror,
    remote_store=remote_store,
    orchestrator=orchestrator,
    lesson_resolver=lesson_resolver,
    news_resolver=news_resolver,
    lessons=LessonService(resolver=lesson_resolver, orchestrator=orchestrator, producer=producer, script_model=script_model, extraction_model=extraction_model),
    news=NewsService(resolver=news_resolver, producer=producer, model=script_model),
    civic=CivicService(throttle_guard=throttle_guard, producer=producer, model=script_model),
  )
