"""Headline listings per category and level, cached for a short window."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import TypeAdapter

from speaksync.ai.prompts import NEWS_SCHEMA, build_news_dossier_prompt, build_news_prompt
from speaksync.ai.providers.base import AIModel
from speaksync.cache.errors import ProducerUnavailable
from speaksync.cache.models import Resolution
from speaksync.cache.producer import ProducerInvoker
from speaksync.cache.resolver import CacheResolver
from speaksync.schema.content import NewsDossier, NewsItem, NewsListing, ProficiencyLevel

logger = logging.getLogger(__name__)

_NEWS_ADAPTER = TypeAdapter(list[NewsItem])


def news_cache_key(category: str, level: ProficiencyLevel) -> str:
  return f"{category.strip().lower()}:{level.value}"


class NewsService:
  def __init__(self, *, resolver: CacheResolver[NewsListing], producer: ProducerInvoker, model: AIModel) -> None:
    self._resolver = resolver
    self._producer = producer
    self._model = model

  async def fetch_news(self, category: str, level: ProficiencyLevel) -> Resolution[NewsListing]:
    """
    Return the current listing for a category.

    A cached listing younger than the resolver's max age is served for free;
    otherwise a new search runs, subject to the search cooldown.
    """

    async def produce() -> NewsListing:
      response = await self._model.generate_structured(build_news_prompt(category, level), NEWS_SCHEMA)
      items = [item.model_copy(update={"category": category}) for item in _NEWS_ADAPTER.validate_python(response.content)]
      if not items:
        raise ProducerUnavailable(f"News search returned no items for {category!r}", kind="malformed")
      return NewsListing(category=category, level=level, items=items)

    resolution = await self._resolver.resolve_entry(news_cache_key(category, level), produce)
    logger.info("News category=%s level=%s served from %s (%d items)", category, level.value, resolution.source, len(resolution.artifact.items))
    return resolution

  async def generate_dossier(self, title: str, summary: str, level: ProficiencyLevel, *, on_chunk: Callable[[str], None] | None = None) -> NewsDossier:
    """Stream a briefing on one headline. Dossiers are neither cached nor throttled."""
    prompt = build_news_dossier_prompt(title, summary, level)
    content = await self._producer.invoke(lambda: self._producer.collect_stream(self._model.generate_stream(prompt), on_chunk=on_chunk), label="news_dossier")
    logger.info("News dossier generated level=%s chars=%d", level.value, len(content))
    return NewsDossier(content=content, title=title, level=level)
