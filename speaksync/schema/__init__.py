"""Schema package exports."""

from .content import CivicGuide, LessonArtifact, NewsItem, NewsListing, ProficiencyLevel, QuizQuestion, VocabularyItem
from .profile import ChapterProgress, HistoryItem, ProfileStats, ProfileStatsUpdate, SyncSource, VaultWord, VocabMastery

__all__ = [
  "ChapterProgress",
  "CivicGuide",
  "HistoryItem",
  "LessonArtifact",
  "NewsItem",
  "NewsListing",
  "ProficiencyLevel",
  "ProfileStats",
  "ProfileStatsUpdate",
  "QuizQuestion",
  "SyncSource",
  "VaultWord",
  "VocabMastery",
  "VocabularyItem",
]
