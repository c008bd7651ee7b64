"""Invoke content producers with a timeout and normalized failures."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from typing import Any, Final

from pydantic import ValidationError

from speaksync.cache.errors import ProducerFailureKind, ProducerUnavailable, ThrottledError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS: Final[float] = 60.0

_QUOTA_HINTS: tuple[str, ...] = ("too many requests", "resource exhausted", "resource_exhausted", "quota", "rate limit")

_MALFORMED_HINTS: tuple[str, ...] = ("invalid json", "failed to parse", "parse json", "schema", "validation", "malformed", "empty response")

_NETWORK_HINTS: tuple[str, ...] = (
  "timeout",
  "timed out",
  "connection",
  "network",
  "service unavailable",
  "bad gateway",
  "gateway timeout",
  "unavailable",
  "model not found",
  "unsupported model",
  "api key",
  "unauthorized",
  "forbidden",
)

# Status codes only count as whole numbers, so "expected 5000 tokens" stays unclassified.
_QUOTA_STATUS = re.compile(r"\b429\b")
_NETWORK_STATUS = re.compile(r"\b(?:500|502|503|504)\b")


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  return any(hint in message for hint in hints)


def classify_producer_failure(exc: BaseException) -> ProducerFailureKind | None:
  """Return the failure kind for a producer exception, or None for programming errors."""
  if isinstance(exc, TimeoutError):
    return "timeout"
  if isinstance(exc, ValidationError | json.JSONDecodeError):
    return "malformed"

  message = str(exc).lower()
  # Quota first: a 429 body usually also mentions the service being unavailable.
  if _QUOTA_STATUS.search(message) or _match_hint(message, _QUOTA_HINTS):
    return "quota"
  if _match_hint(message, _MALFORMED_HINTS):
    return "malformed"
  if isinstance(exc, OSError) or _NETWORK_STATUS.search(message) or _match_hint(message, _NETWORK_HINTS):
    return "network"
  return None


def normalize_producer_error(exc: BaseException) -> BaseException:
  """Wrap recognised producer failures; everything else is returned untouched."""
  if isinstance(exc, ProducerUnavailable | ThrottledError):
    return exc
  kind = classify_producer_failure(exc)
  if kind is None:
    return exc
  return ProducerUnavailable(f"Content producer failed ({kind}): {exc}", kind=kind)


class ProducerInvoker:
  """Run blocking or streaming producer calls under a shared timeout policy."""

  def __init__(self, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
    if timeout_seconds <= 0:
      raise ValueError("timeout_seconds must be positive.")
    self._timeout = timeout_seconds

  @property
  def timeout_seconds(self) -> float:
    return self._timeout

  async def invoke[T](self, produce: Callable[[], Awaitable[T]], *, label: str = "producer") -> T:
    """Await `produce()` and translate timeouts and provider errors."""
    started = time.perf_counter()
    try:
      async with asyncio.timeout(self._timeout):
        result = await produce()
    except TimeoutError as exc:
      logger.warning("%s timed out after %.0fs", label, self._timeout)
      raise ProducerUnavailable(f"{label} did not respond within {self._timeout:.0f}s", kind="timeout") from exc
    except Exception as exc:
      normalized = normalize_producer_error(exc)
      if normalized is exc:
        raise
      logger.warning("%s failed kind=%s error=%s", label, getattr(normalized, "kind", "unknown"), exc)
      raise normalized from exc

    logger.info("%s completed in %.0fms", label, (time.perf_counter() - started) * 1000)
    return result

  async def collect_stream(self, stream: AsyncIterator[Any], *, on_chunk: Callable[[str], None] | None = None) -> str:
    """
    Concatenate streamed chunk text into one buffer.

    `on_chunk` receives the partial buffer after each fragment for progressive
    display. The buffer is only returned once the stream ends normally; a
    failure mid-stream discards it. If the caller stops consuming (for example
    the task is cancelled), the underlying iterator is closed.
    """
    parts: list[str] = []
    try:
      async for chunk in stream:
        text = getattr(chunk, "text", None)
        if not text:
          continue
        parts.append(text)
        if on_chunk is not None:
          on_chunk("".join(parts))
    except asyncio.CancelledError:
      raise
    except Exception as exc:
      normalized = normalize_producer_error(exc)
      logger.warning("Stream aborted after %d chunk(s); discarding partial buffer", len(parts))
      if normalized is exc:
        raise
      raise normalized from exc
    finally:
      aclose = getattr(stream, "aclose", None)
      if aclose is not None:
        await aclose()

    buffer = "".join(parts)
    if not buffer.strip():
      raise ProducerUnavailable("Stream ended without any content", kind="malformed")
    return buffer
