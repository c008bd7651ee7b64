from __future__ import annotations

import pytest

from speaksync.cache.errors import ThrottledError
from speaksync.cache.throttle import CIVIC_SEARCH, NEWS_SEARCH, ThrottleGuard


def test_unused_class_is_not_throttled(clock) -> None:
  guard = ThrottleGuard(30, clock=clock)
  assert guard.is_throttled(NEWS_SEARCH) is False
  assert guard.remaining_seconds(NEWS_SEARCH) == 0
  assert guard.state(NEWS_SEARCH) is None


def test_window_is_half_open_and_remaining_reaches_zero(clock) -> None:
  guard = ThrottleGuard(30, clock=clock)
  guard.record_execution(NEWS_SEARCH)

  previous = guard.remaining_seconds(NEWS_SEARCH)
  assert previous == 30
  for _ in range(29):
    clock.advance(1)
    assert guard.is_throttled(NEWS_SEARCH) is True
    remaining = guard.remaining_seconds(NEWS_SEARCH)
    assert remaining <= previous
    previous = remaining

  clock.advance(1)
  assert guard.is_throttled(NEWS_SEARCH) is False
  assert guard.remaining_seconds(NEWS_SEARCH) == 0


def test_remaining_seconds_rounds_up(clock) -> None:
  guard = ThrottleGuard(30, clock=clock)
  guard.record_execution(CIVIC_SEARCH)
  clock.advance(0.4)
  assert guard.remaining_seconds(CIVIC_SEARCH) == 30
  clock.advance(29.5)
  assert guard.remaining_seconds(CIVIC_SEARCH) == 1


def test_classes_are_tracked_independently(clock) -> None:
  guard = ThrottleGuard(30, clock=clock)
  guard.record_execution(NEWS_SEARCH)
  assert guard.is_throttled(NEWS_SEARCH) is True
  assert guard.is_throttled(CIVIC_SEARCH) is False


def test_each_class_has_one_lock(clock) -> None:
  guard = ThrottleGuard(30, clock=clock)
  assert guard.lock_for(NEWS_SEARCH) is guard.lock_for(NEWS_SEARCH)
  assert guard.lock_for(NEWS_SEARCH) is not guard.lock_for(CIVIC_SEARCH)


def test_per_class_override(clock) -> None:
  guard = ThrottleGuard(30, overrides={CIVIC_SEARCH: 120}, clock=clock)
  guard.record_execution(CIVIC_SEARCH)
  clock.advance(60)
  assert guard.is_throttled(CIVIC_SEARCH) is True
  assert guard.remaining_seconds(CIVIC_SEARCH) == 60
  assert guard.cooldown_for(NEWS_SEARCH) == 30


def test_ensure_available_raises_with_remaining(clock) -> None:
  guard = ThrottleGuard(30, clock=clock)
  guard.ensure_available(NEWS_SEARCH)
  guard.record_execution(NEWS_SEARCH)
  clock.advance(5)

  with pytest.raises(ThrottledError) as excinfo:
    guard.ensure_available(NEWS_SEARCH)

  assert excinfo.value.resource_class == NEWS_SEARCH
  assert excinfo.value.remaining_seconds == 25


def test_rejects_non_positive_cooldown() -> None:
  with pytest.raises(ValueError):
    ThrottleGuard(0)
