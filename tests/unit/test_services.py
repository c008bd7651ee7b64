from __future__ import annotations

import asyncio

import pytest

from speaksync.cache.errors import ProducerUnavailable, ThrottledError
from speaksync.cache.throttle import CIVIC_SEARCH, NEWS_SEARCH, ThrottleGuard
from speaksync.schema.content import ProficiencyLevel
from speaksync.schema.profile import AtelierLog, SyncSource
from speaksync.schema.sql import ATELIER_TABLE, LESSON_CACHE_TABLE, NEWS_CACHE_TABLE
from speaksync.services.factory import build_services
from speaksync.services.news import news_cache_key


@pytest.fixture
def services(settings, local_mirror, remote_store, fake_model, clock, wall_clock):
  return build_services(
    settings,
    local_mirror=local_mirror,
    remote_store=remote_store,
    script_model=fake_model,
    extraction_model=fake_model,
    throttle_guard=ThrottleGuard(settings.throttle_cooldown_seconds, clock=clock),
    now=wall_clock,
  )


@pytest.mark.anyio
async def test_lesson_is_generated_once_then_served_from_cache(services, fake_model, remote_store) -> None:
  partials: list[str] = []

  first = await services.lessons.sync_lesson_content("LESSON-42", "Bakery", ProficiencyLevel.A1, on_chunk=partials.append)
  second = await services.lessons.sync_lesson_content("LESSON-42", "Bakery", ProficiencyLevel.A1)

  assert first.source == "producer"
  assert second.source == "local"
  assert second.artifact == first.artifact
  assert first.artifact.content == "Goedemorgen! Hoe gaat het?"
  assert partials == ["Goedemorgen! ", "Goedemorgen! Hoe gaat het?"]
  assert [item.term for item in first.artifact.vocabulary] == ["goedemorgen"]
  assert first.artifact.quiz[0].correct_answer == 1
  assert fake_model.stream_calls == 1
  assert sorted(fake_model.structured_calls) == ["quiz", "vocabulary"]
  assert remote_store.record(LESSON_CACHE_TABLE, "LESSON-42")["payload"]["topic"] == "Bakery"


@pytest.mark.anyio
async def test_new_lesson_is_recorded_in_history(services) -> None:
  await services.lessons.sync_lesson_content("LESSON-42", "Bakery", ProficiencyLevel.A1)
  await services.lessons.sync_lesson_content("LESSON-42", "Bakery", ProficiencyLevel.A1)
  await services.orchestrator.drain()

  history = await services.orchestrator.fetch_history()
  assert [item.id for item in history] == ["LESSON-42"]
  assert history[0].source == SyncSource.AI_SYNC


@pytest.mark.anyio
async def test_history_timestamp_comes_from_the_orchestrator_clock(services, wall_clock) -> None:
  wall_clock.advance(days=3, hours=2)

  await services.lessons.sync_lesson_content("LESSON-42", "Bakery", ProficiencyLevel.A1)

  history = await services.orchestrator.fetch_history()
  assert history[0].timestamp == wall_clock()
  assert services.orchestrator.calculate_streak() == 1


@pytest.mark.anyio
async def test_lessons_are_not_throttled(services) -> None:
  await services.lessons.sync_lesson_content("LESSON-1", "Bakery", ProficiencyLevel.A1)
  resolution = await services.lessons.sync_lesson_content("LESSON-2", "Train station", ProficiencyLevel.A2, is_exam=True)
  assert resolution.source == "producer"


@pytest.mark.anyio
async def test_failed_quiz_caches_nothing(services, fake_model, remote_store) -> None:
  fake_model.structured["quiz"] = RuntimeError("Gemini returned invalid JSON")

  with pytest.raises(ProducerUnavailable) as excinfo:
    await services.lessons.sync_lesson_content("LESSON-42", "Bakery", ProficiencyLevel.A1)
  assert excinfo.value.kind == "malformed"
  assert remote_store.record(LESSON_CACHE_TABLE, "LESSON-42") is None

  fake_model.structured["quiz"] = [{"question": "Wat is brood?", "options": ["Pan", "Queso"], "correct_answer": 0, "explanation": ""}]
  resolution = await services.lessons.sync_lesson_content("LESSON-42", "Bakery", ProficiencyLevel.A1)
  assert resolution.source == "producer"


@pytest.mark.anyio
async def test_interrupted_script_stream_is_not_cached(services, fake_model, local_mirror) -> None:
  fake_model.stream_error = ConnectionResetError("stream reset")

  with pytest.raises(ProducerUnavailable) as excinfo:
    await services.lessons.sync_lesson_content("LESSON-42", "Bakery", ProficiencyLevel.A1)

  assert excinfo.value.kind == "network"
  assert local_mirror.get(f"{LESSON_CACHE_TABLE}:LESSON-42") is None


@pytest.mark.anyio
async def test_complete_sync_turn_credits_points_and_progress(services) -> None:
  await services.lessons.complete_sync_turn("LESSON-42", 150)
  stats = await services.lessons.complete_sync_turn("LESSON-43", 150)
  await services.orchestrator.drain()

  assert stats.points == 300
  assert sorted(item.chapter_id for item in await services.orchestrator.fetch_progress()) == ["LESSON-42", "LESSON-43"]


@pytest.mark.anyio
async def test_complete_sync_turn_rejects_negative_xp(services) -> None:
  with pytest.raises(ValueError):
    await services.lessons.complete_sync_turn("LESSON-42", -1)


@pytest.mark.anyio
async def test_news_listing_is_cached_and_searches_are_throttled(services, fake_model, clock) -> None:
  first = await services.news.fetch_news("Economy", ProficiencyLevel.A2)
  assert first.source == "producer"
  assert [item.category for item in first.artifact.items] == ["Economy"]

  clock.advance(2)
  cached = await services.news.fetch_news(" economy ", ProficiencyLevel.A2)
  assert cached.source == "local"

  with pytest.raises(ThrottledError) as excinfo:
    await services.news.fetch_news("Sport", ProficiencyLevel.A2)
  assert excinfo.value.resource_class == NEWS_SEARCH
  assert excinfo.value.remaining_seconds == 28
  assert fake_model.structured_calls == ["news"]

  clock.advance(30)
  assert (await services.news.fetch_news("Sport", ProficiencyLevel.A2)).source == "producer"


@pytest.mark.anyio
async def test_overlapping_news_searches_for_different_categories_run_once(services, fake_model) -> None:
  results = await asyncio.gather(
    services.news.fetch_news("Politics", ProficiencyLevel.A2),
    services.news.fetch_news("Sport", ProficiencyLevel.A2),
    return_exceptions=True,
  )

  assert fake_model.structured_calls == ["news"]
  assert sum(isinstance(result, ThrottledError) for result in results) == 1
  served = [result for result in results if not isinstance(result, BaseException)]
  assert [resolution.source for resolution in served] == ["producer"]


@pytest.mark.anyio
async def test_empty_news_result_is_not_cached(services, fake_model, remote_store) -> None:
  fake_model.structured["news"] = []

  with pytest.raises(ProducerUnavailable):
    await services.news.fetch_news("Economy", ProficiencyLevel.A2)

  assert remote_store.record(NEWS_CACHE_TABLE, news_cache_key("Economy", ProficiencyLevel.A2)) is None
  assert services.throttle_guard.is_throttled(NEWS_SEARCH) is False


def test_news_cache_key_normalizes_category() -> None:
  assert news_cache_key("  Economy ", ProficiencyLevel.B1) == "economy:B1"


@pytest.mark.anyio
async def test_civic_guides_are_throttled_but_not_cached(services, fake_model, clock) -> None:
  guide = await services.civic.generate_guide("Registering at the gemeente", ProficiencyLevel.A2)
  assert guide.content == "Goedemorgen! Hoe gaat het?"

  with pytest.raises(ThrottledError) as excinfo:
    await services.civic.generate_guide("Registering at the gemeente", ProficiencyLevel.A2)
  assert excinfo.value.resource_class == CIVIC_SEARCH

  # News searches have their own cooldown.
  assert (await services.news.fetch_news("Economy", ProficiencyLevel.A2)).source == "producer"

  clock.advance(30)
  await services.civic.generate_guide("Registering at the gemeente", ProficiencyLevel.A2)
  assert fake_model.stream_calls == 2


@pytest.mark.anyio
async def test_failed_civic_guide_does_not_start_cooldown(services, fake_model) -> None:
  fake_model.stream_error = TimeoutError()

  with pytest.raises(ProducerUnavailable) as excinfo:
    await services.civic.generate_guide("Healthcare", ProficiencyLevel.B1)
  assert excinfo.value.kind == "timeout"
  assert services.throttle_guard.is_throttled(CIVIC_SEARCH) is False


@pytest.mark.anyio
async def test_news_dossier_streams_without_cache_or_cooldown(services, fake_model, local_mirror, remote_store) -> None:
  partials: list[str] = []

  first = await services.news.generate_dossier("Nuevo horario de trenes", "NS cambia su horario.", ProficiencyLevel.B1, on_chunk=partials.append)
  second = await services.news.generate_dossier("Nuevo horario de trenes", "NS cambia su horario.", ProficiencyLevel.B1)

  assert first.content == "Goedemorgen! Hoe gaat het?"
  assert first.title == "Nuevo horario de trenes"
  assert second.content == first.content
  assert partials == ["Goedemorgen! ", "Goedemorgen! Hoe gaat het?"]
  assert fake_model.stream_calls == 2
  assert services.throttle_guard.is_throttled(NEWS_SEARCH) is False
  assert local_mirror.values == {}
  assert remote_store.calls == []


@pytest.mark.anyio
async def test_interrupted_news_dossier_is_a_producer_failure(services, fake_model) -> None:
  fake_model.stream_error = RuntimeError("503 Service Unavailable")

  with pytest.raises(ProducerUnavailable) as excinfo:
    await services.news.generate_dossier("Nuevo horario de trenes", "", ProficiencyLevel.A2)
  assert excinfo.value.kind == "network"


@pytest.mark.anyio
async def test_integration_exam_is_validated_and_never_throttled(services, fake_model) -> None:
  first = await services.civic.generate_integration_exam("Werk en inkomen", ProficiencyLevel.A2)
  second = await services.civic.generate_integration_exam("Werk en inkomen", ProficiencyLevel.A2)

  assert [question.correct_answer for question in first] == [1]
  assert second == first
  assert fake_model.structured_calls == ["quiz", "quiz"]
  assert services.throttle_guard.is_throttled(CIVIC_SEARCH) is False


@pytest.mark.anyio
async def test_integration_exam_rejects_bad_answers(services, fake_model) -> None:
  fake_model.structured["quiz"] = [{"question": "Wat is de hoofdstad?", "options": ["Ámsterdam", "La Haya"], "correct_answer": 4, "explanation": ""}]

  with pytest.raises(ProducerUnavailable) as excinfo:
    await services.civic.generate_integration_exam("Politiek", ProficiencyLevel.A2)
  assert excinfo.value.kind == "malformed"

  fake_model.structured["quiz"] = []
  with pytest.raises(ProducerUnavailable):
    await services.civic.generate_integration_exam("Politiek", ProficiencyLevel.A2)


@pytest.mark.anyio
async def test_improve_script_logs_the_correction_remotely(services, remote_store, local_mirror, wall_clock) -> None:
  improvement = await services.lessons.improve_script("Ik heb naar de markt gegaan.", ProficiencyLevel.A2)
  await services.orchestrator.drain()

  assert improvement.improved_version == "Gisteren ben ik naar de markt gegaan."
  logs = await remote_store.list_records(ATELIER_TABLE, owner_id=services.orchestrator.user_id)
  assert len(logs) == 1
  assert logs[0]["original"] == "Ik heb naar de markt gegaan."
  assert logs[0]["improved"] == improvement.improved_version
  assert logs[0]["category"] == "Boodschappen"
  assert AtelierLog.model_validate(logs[0]).created_at == wall_clock()
  assert not any(key.startswith(ATELIER_TABLE) for key in local_mirror.values)


@pytest.mark.anyio
async def test_malformed_improvement_is_not_logged(services, fake_model, remote_store) -> None:
  fake_model.structured["improvement"] = {"feedback": "sin versión mejorada"}

  with pytest.raises(ProducerUnavailable) as excinfo:
    await services.lessons.improve_script("Ik heb naar de markt gegaan.", ProficiencyLevel.A2)
  await services.orchestrator.drain()

  assert excinfo.value.kind == "malformed"
  assert not remote_store.tables.get(ATELIER_TABLE)


@pytest.mark.anyio
async def test_improve_script_rejects_blank_text(services) -> None:
  with pytest.raises(ValueError):
    await services.lessons.improve_script("   ", ProficiencyLevel.A2)
