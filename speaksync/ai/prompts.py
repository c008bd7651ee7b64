"""Prompt builders and response schemas for the content producers."""

from __future__ import annotations

from typing import Any, Final

from speaksync.schema.content import ProficiencyLevel

VOCABULARY_SCHEMA: Final[dict[str, Any]] = {
  "type": "ARRAY",
  "items": {
    "type": "OBJECT",
    "properties": {"term": {"type": "STRING"}, "translation": {"type": "STRING"}, "word_type": {"type": "STRING"}, "pronunciation": {"type": "STRING"}},
    "required": ["term", "translation", "word_type"],
  },
}

QUIZ_SCHEMA: Final[dict[str, Any]] = {
  "type": "ARRAY",
  "items": {
    "type": "OBJECT",
    "properties": {"question": {"type": "STRING"}, "options": {"type": "ARRAY", "items": {"type": "STRING"}}, "correct_answer": {"type": "INTEGER"}, "explanation": {"type": "STRING"}},
    "required": ["question", "options", "correct_answer", "explanation"],
  },
}

NEWS_SCHEMA: Final[dict[str, Any]] = {
  "type": "ARRAY",
  "items": {
    "type": "OBJECT",
    "properties": {"id": {"type": "STRING"}, "title": {"type": "STRING"}, "summary": {"type": "STRING"}, "url": {"type": "STRING"}, "source": {"type": "STRING"}},
    "required": ["id", "title", "summary", "url", "source"],
  },
}

IMPROVEMENT_SCHEMA: Final[dict[str, Any]] = {
  "type": "OBJECT",
  "properties": {
    "original_with_corrections": {"type": "STRING"},
    "improved_version": {"type": "STRING"},
    "feedback": {"type": "STRING"},
    "detected_topic": {"type": "STRING"},
    "category": {"type": "STRING"},
  },
  "required": ["original_with_corrections", "improved_version", "feedback", "detected_topic", "category"],
}

QUIZ_QUESTION_COUNT: Final[int] = 5
INTEGRATION_EXAM_QUESTION_COUNT: Final[int] = 10
NEWS_ITEM_COUNT: Final[int] = 6


def build_lesson_script_prompt(topic: str, level: ProficiencyLevel, *, is_exam: bool = False) -> str:
  kind = "an exam-preparation dialogue" if is_exam else "a realistic everyday dialogue"
  return (
    f"Write {kind} in Dutch for a learner at level {level.value} about: {topic}.\n"
    "Mark key vocabulary as [Dutch term] (translation) the first time it appears.\n"
    "Follow the dialogue with a short section explaining the grammar it uses."
  )


def build_vocabulary_prompt(script: str) -> str:
  return f"Extract the key vocabulary from this lesson script. Only include terms written in square brackets. Return a JSON array of objects with term, translation, word_type and pronunciation.\n\n{script}"


def build_quiz_prompt(script: str) -> str:
  return (
    f"Write a {QUIZ_QUESTION_COUNT}-question multiple choice quiz based on this lesson script. "
    "Each question has 4 options; correct_answer is the zero-based index of the right option.\n\n"
    f"{script}"
  )


def build_news_prompt(category: str, level: ProficiencyLevel) -> str:
  return (
    f"Find the {NEWS_ITEM_COUNT} most important news stories from the Netherlands today in the category: {category}.\n"
    f"Adapt titles and summaries to a learner at level {level.value}. Prefer Dutch-language sources such as NOS or RTL Nieuws.\n"
    "Return strictly a JSON array."
  )


def build_civic_guide_prompt(topic: str, level: ProficiencyLevel) -> str:
  return (
    f"Write a practical field guide for a resident of the Netherlands about: {topic}. Target language level: {level.value}.\n"
    "Use sections labelled 'SECTION: NAME' for the administrative steps, legal rights, unwritten social codes, key vocabulary and an action checklist.\n"
    "Write Dutch terms as [Dutch term] (translation). Start directly with the first section."
  )


def build_news_dossier_prompt(title: str, summary: str, level: ProficiencyLevel) -> str:
  return (
    f"Write an in-depth briefing for a resident of the Netherlands on this news story.\nHeadline: {title}\nSummary: {summary}\n"
    f"Target language level: {level.value}. Use an editorial tone and sections labelled 'SECTION: NAME' covering the background, "
    "what it means for residents, the vocabulary the story relies on and a short note for the reader.\n"
    "Write Dutch terms as [Dutch term] (translation). Start directly with the first section."
  )


def build_integration_exam_prompt(category: str, level: ProficiencyLevel) -> str:
  return (
    f"Write a {INTEGRATION_EXAM_QUESTION_COUNT}-question mock civic integration exam on the category: {category}.\n"
    f"Questions are in Dutch at level {level.value}; options and explanations are in Spanish. "
    "Each question has 4 options; correct_answer is the zero-based index of the right option. Return strictly a JSON array."
  )


def build_script_improvement_prompt(text: str, level: ProficiencyLevel) -> str:
  return (
    f"Correct and improve this text written by a Dutch learner at level {level.value}.\n"
    "Return a JSON object: original_with_corrections marks each error inline, improved_version is a natural rewrite one level higher, "
    "feedback explains the main corrections in Spanish, detected_topic names the subject and category is a single word for it.\n\n"
    f"{text}"
  )
