"""Fixed-window cooldown guard for expensive producer calls."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Final

from speaksync.cache.errors import ThrottledError

logger = logging.getLogger(__name__)

NEWS_SEARCH: Final[str] = "news_search"
CIVIC_SEARCH: Final[str] = "civic_search"

DEFAULT_COOLDOWN_SECONDS: Final[float] = 30.0


@dataclass(frozen=True)
class ThrottleState:
  """Last successful execution for one resource class."""

  resource_class: str
  last_execution_at: float


class ThrottleGuard:
  """
  Track one cooldown window per resource class.

  The window is shared by every content key of a class. State is in-memory
  only and starts empty on every process start. Build one guard per process
  and hand it to whichever component needs it.
  """

  def __init__(self, cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS, *, overrides: Mapping[str, float] | None = None, clock: Callable[[], float] = time.monotonic) -> None:
    if cooldown_seconds <= 0:
      raise ValueError("cooldown_seconds must be positive.")
    self._cooldown = cooldown_seconds
    self._overrides = dict(overrides or {})
    self._clock = clock
    self._states: dict[str, ThrottleState] = {}
    self._locks: dict[str, asyncio.Lock] = {}

  def cooldown_for(self, resource_class: str) -> float:
    return self._overrides.get(resource_class, self._cooldown)

  def is_throttled(self, resource_class: str) -> bool:
    state = self._states.get(resource_class)
    if state is None:
      return False
    return (self._clock() - state.last_execution_at) < self.cooldown_for(resource_class)

  def remaining_seconds(self, resource_class: str) -> int:
    state = self._states.get(resource_class)
    if state is None:
      return 0
    remaining = self.cooldown_for(resource_class) - (self._clock() - state.last_execution_at)
    return max(0, math.ceil(remaining))

  def record_execution(self, resource_class: str) -> None:
    self._states[resource_class] = ThrottleState(resource_class=resource_class, last_execution_at=self._clock())
    logger.debug("Recorded execution for resource_class=%s cooldown=%.1fs", resource_class, self.cooldown_for(resource_class))

  def ensure_available(self, resource_class: str) -> None:
    """Raise ThrottledError while the class is cooling down."""
    if self.is_throttled(resource_class):
      remaining = self.remaining_seconds(resource_class)
      logger.info("Blocked %s call; %ds of cooldown left", resource_class, remaining)
      raise ThrottledError(resource_class, remaining)

  def state(self, resource_class: str) -> ThrottleState | None:
    return self._states.get(resource_class)

  def lock_for(self, resource_class: str) -> asyncio.Lock:
    """Return the lock held across check, produce and record for a class."""
    lock = self._locks.get(resource_class)
    if lock is None:
      lock = self._locks[resource_class] = asyncio.Lock()
    return lock
