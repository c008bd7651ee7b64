"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import random
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Final

from google import genai

from speaksync.ai.providers.base import AIModel, ModelResponse, Provider, SimpleModelResponse, StructuredModelResponse
from speaksync.cache.models import Chunk

logger = logging.getLogger(__name__)


def _usage_from(response: Any) -> dict[str, int] | None:
  metadata = getattr(response, "usage_metadata", None)
  if not metadata:
    return None
  return {"prompt_tokens": metadata.prompt_token_count or 0, "completion_tokens": metadata.candidates_token_count or 0, "total_tokens": metadata.total_token_count or 0}


class GeminiModel(AIModel):
  """Gemini model client with streaming and structured output support."""

  def __init__(self, name: str, api_key: str | None = None) -> None:
    self.name: str = name
    self.supports_structured_output = True

    api_key = api_key or os.getenv("GEMINI_API_KEY")
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")

    self._client = genai.Client(api_key=api_key)

  async def generate(self, prompt: str) -> ModelResponse:
    """Generate text response from Gemini."""
    response = await _with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt)
    logger.debug("Gemini response model=%s chars=%d", self.name, len(response.text or ""))
    return SimpleModelResponse(content=response.text or "", usage=_usage_from(response))

  async def generate_stream(self, prompt: str) -> AsyncIterator[Chunk]:
    """Stream text fragments as Gemini produces them."""
    stream = await _with_backoff(self._client.aio.models.generate_content_stream, model=self.name, contents=prompt)
    try:
      async for response in stream:
        yield Chunk(text=response.text)
    finally:
      aclose = getattr(stream, "aclose", None)
      if aclose is not None:
        await aclose()

  async def generate_structured(self, prompt: str, schema: dict[str, Any]) -> StructuredModelResponse:
    """Generate structured JSON output using Gemini's JSON mode."""
    response = await _with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt, config={"response_mime_type": "application/json", "response_schema": schema})
    logger.debug("Gemini structured response model=%s chars=%d", self.name, len(response.text or ""))

    try:
      parsed = json.loads(self.strip_json_fences(response.text or ""))
    except json.JSONDecodeError as e:
      raise RuntimeError(f"Gemini returned invalid JSON: {e}") from e
    return StructuredModelResponse(content=parsed, usage=_usage_from(response))


class GeminiProvider(Provider):
  """Gemini provider."""

  _DEFAULT_MODEL: Final[str] = "gemini-2.5-flash"
  _AVAILABLE_MODELS: Final[set[str]] = {"gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.5-flash-lite", "gemini-2.0-flash", "gemini-2.0-flash-lite"}

  def __init__(self, api_key: str | None = None) -> None:
    self.name: str = "gemini"
    self._api_key = api_key

  def get_model(self, model: str | None = None) -> AIModel:
    """Return a Gemini model client."""
    model_name = model or self._DEFAULT_MODEL
    if model_name not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported Gemini model '{model_name}'.")

    return GeminiModel(model_name, api_key=self._api_key)


async def _with_backoff(func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
  retries = 3
  base_delay = 1
  for i in range(retries):
    try:
      return await func(*args, **kwargs)
    except Exception as e:
      if "429" in str(e) or "Too Many Requests" in str(e):
        if i == retries - 1:
          raise
        delay = base_delay * (2**i) + random.uniform(0, 1)
        logger.warning("Gemini rate limited; retry %d/%d in %.1fs", i + 1, retries, delay)
        await asyncio.sleep(delay)
      else:
        raise
  return await func(*args, **kwargs)
