from __future__ import annotations

import time

from fastapi import APIRouter, Depends, HTTPException, status

from speaksync.api.deps import get_orchestrator
from speaksync.api.models import ClearHistoryResponse, HistoryCreateRequest, StreakResponse
from speaksync.schema.content import VocabularyItem
from speaksync.schema.profile import ChapterProgress, HistoryItem, ProfileStats, ProfileStatsUpdate, VaultWord, VocabMastery
from speaksync.services.sync import SyncOrchestrator

router = APIRouter()


@router.get("/profile", response_model=ProfileStats)
async def get_profile(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> ProfileStats:  # noqa: B008
  return await orchestrator.fetch_profile_stats()


@router.patch("/profile", response_model=ProfileStats)
async def update_profile(update: ProfileStatsUpdate, orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> ProfileStats:  # noqa: B008
  """Apply a partial stats update; the remote copy is written in the background."""
  return orchestrator.persist(update)


@router.get("/profile/streak", response_model=StreakResponse)
async def get_streak(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> StreakResponse:  # noqa: B008
  return StreakResponse(streak=orchestrator.calculate_streak())


@router.get("/progress", response_model=list[ChapterProgress])
async def list_progress(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> list[ChapterProgress]:  # noqa: B008
  return await orchestrator.fetch_progress()


@router.get("/vault", response_model=list[VaultWord])
async def list_vault(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> list[VaultWord]:  # noqa: B008
  return await orchestrator.fetch_vault()


@router.post("/vault", response_model=VaultWord)
async def save_vault_word(item: VocabularyItem, orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> VaultWord:  # noqa: B008
  """Save a word, or count another practice and promote its mastery."""
  return orchestrator.save_vocab(item)


@router.patch("/vault/{term}", response_model=VaultWord)
async def set_vault_mastery(term: str, mastery: VocabMastery, orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> VaultWord:  # noqa: B008
  word = orchestrator.update_vocab_mastery(term, mastery)
  if word is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Word {term!r} is not in the vault.")
  return word


@router.get("/history", response_model=list[HistoryItem])
async def list_history(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> list[HistoryItem]:  # noqa: B008
  return await orchestrator.fetch_history()


@router.post("/history", response_model=HistoryItem, status_code=status.HTTP_201_CREATED)
async def add_history(request: HistoryCreateRequest, orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> HistoryItem:  # noqa: B008
  item = HistoryItem(
    id=request.id or f"HIST-{time.time_ns()}",
    topic=request.topic,
    level=request.level,
    content=request.content,
    timestamp=orchestrator.now(),
    source=request.source,
  )
  orchestrator.save_history_item(item)
  return item


@router.delete("/history", response_model=ClearHistoryResponse)
async def clear_history(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> ClearHistoryResponse:  # noqa: B008
  cleared_remote = await orchestrator.clear_history()
  return ClearHistoryResponse(cleared_local=True, cleared_remote=cleared_remote)
