"""Derivation of the shared lesson context from source text."""

import re

import config
from src.logger import get_logger
from src.model_client import GenerationOptions, GenerativeModelClient, ModelClientError
from src.models import CEFRLevel, SharedContext

logger = get_logger("lessongen.context")

STOP_WORDS = {
    "the", "and", "that", "have", "for", "not", "with",
    "you", "this", "but", "his", "from", "they",
}

DEFAULT_VOCABULARY = [
    "communication",
    "important",
    "different",
    "example",
    "information",
    "situation",
]

DEFAULT_THEMES = ["general topic", "communication", "daily life"]

THEME_KEYWORDS = [
    (("sport", "game", "team"), "sports"),
    (("business", "company", "work"), "business"),
    (("travel", "country", "culture"), "travel"),
    (("technology", "computer", "internet"), "technology"),
    (("health", "medical", "doctor"), "health"),
    (("energy", "solar", "climate", "environment"), "energy"),
]

TITLE_TOPICS = [
    ("ryder cup", "Ryder Cup Golf"),
    ("golf", "Golf Competition"),
    ("competition", "Sports Competition"),
    ("travel", "Travel & Tourism"),
    ("business", "Business Communication"),
    ("technology", "Technology Today"),
    ("environment", "Environmental Issues"),
    ("health", "Health & Wellness"),
    ("education", "Education System"),
    ("culture", "Cultural Exchange"),
    ("food", "Food & Cuisine"),
    ("sports", "Sports & Recreation"),
    ("music", "Music & Arts"),
    ("history", "Historical Events"),
    ("science", "Science & Discovery"),
]

LESSON_TYPE_NAMES = {
    "discussion": "Discussion",
    "grammar": "Grammar Focus",
    "travel": "Travel & Tourism",
    "business": "Business English",
    "pronunciation": "Pronunciation Practice",
}

MIN_VOCABULARY = 6
MAX_VOCABULARY = 12
MIN_THEMES = 2
MAX_THEMES = 5
SUMMARY_LENGTH = 300
MAX_TITLE_LENGTH = 80


def clean_title(raw: str) -> str:
    title = raw.strip().strip("\"'").strip()
    title = re.sub(r"^title:\s*", "", title, flags=re.IGNORECASE)
    return title.strip("\"'").strip()[:MAX_TITLE_LENGTH]


def is_valid_title(title: str) -> bool:
    return 5 < len(title) < MAX_TITLE_LENGTH and "lesson" not in title.lower()


def contextual_title(source_text: str, lesson_type: str, level: CEFRLevel) -> str:
    """
    Build a title without the model.

    Tries a topic keyword table, then the first short proper noun, then a
    generic "<type> - <level> Level" title.
    """
    lowered = source_text.lower()
    for keyword, topic in TITLE_TOPICS:
        if keyword in lowered:
            return f"{topic} Discussion"

    for noun in re.findall(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b", source_text):
        if len(noun) < 20 and noun.lower() not in STOP_WORDS:
            return f"{noun} Discussion"

    type_name = LESSON_TYPE_NAMES.get(lesson_type, "English")
    return f"{type_name} - {level.value} Level"


def fallback_vocabulary(source_text: str) -> list[str]:
    """Pick content words from the text when the model gives too few."""
    words = []
    for word in re.findall(r"\b[a-z]{4,12}\b", source_text.lower()):
        if word not in STOP_WORDS and word not in words:
            words.append(word)
    words = words[:8]
    if len(words) < MIN_VOCABULARY:
        return list(DEFAULT_VOCABULARY)
    return words


def detect_themes(text: str) -> list[str]:
    """Keyword-based theme detection."""
    lowered = text.lower()
    themes = [
        theme
        for keywords, theme in THEME_KEYWORDS
        if any(keyword in lowered for keyword in keywords)
    ]
    return themes or list(DEFAULT_THEMES)


def parse_lines(text: str) -> list[str]:
    """Split a model response into cleaned, non-empty lines."""
    lines = []
    for line in text.splitlines():
        line = re.sub(r"^\s*(?:\d+[.)]|[-*•])\s*", "", line).strip()
        if line:
            lines.append(line)
    return lines


class SharedContextBuilder:
    """
    Derives title, key vocabulary, themes and summary from the source text.

    Each facet gets exactly one model request. Any failure, or too few
    usable items, falls back to a deterministic derivation.
    """

    def __init__(self, client: GenerativeModelClient):
        self.client = client

    async def build(
        self,
        source_text: str,
        lesson_type: str,
        level: CEFRLevel,
        target_language: str,
    ) -> SharedContext:
        logger.info("Building shared lesson context...")

        title = await self._title(source_text, lesson_type, level)
        vocabulary = await self._vocabulary(source_text, level)
        themes = await self._themes(source_text)
        summary = await self._summary(source_text)

        context = SharedContext(
            lesson_title=title,
            key_vocabulary=vocabulary,
            main_themes=themes,
            difficulty_level=level,
            content_summary=summary,
            source_text=source_text[: config.SOURCE_TEXT_LIMIT],
            lesson_type=lesson_type,
            target_language=target_language,
        )
        logger.info(f"  Title: {context.lesson_title}")
        logger.info(f"  Vocabulary ({len(vocabulary)}): {', '.join(vocabulary)}")
        logger.info(f"  Themes: {', '.join(themes)}")
        return context

    async def _title(self, source_text: str, lesson_type: str, level: CEFRLevel) -> str:
        prompt = (
            f"Create a short, engaging title (under 60 characters) for a {level.value} "
            f"English {lesson_type} lesson about this text. Return only the title:\n\n"
            f"{source_text[:150]}"
        )
        try:
            raw = await self.client.complete(prompt, GenerationOptions(max_output_length=50))
            title = clean_title(raw)
            if is_valid_title(title):
                return title
            logger.warning(f"  Generated title rejected: {title!r}")
        except ModelClientError as e:
            logger.warning(f"  Title generation failed: {e}")
        return contextual_title(source_text, lesson_type, level)

    async def _vocabulary(self, source_text: str, level: CEFRLevel) -> list[str]:
        prompt = (
            f"List 8-12 important vocabulary words from this text that are useful "
            f"for {level.value} level learners. One word per line, no numbering or "
            f"explanations:\n\n{source_text[:500]}"
        )
        try:
            raw = await self.client.complete(prompt)
            words = []
            for line in parse_lines(raw):
                word = line.lower()
                if 3 <= len(word) < 20 and word not in words:
                    words.append(word)
            words = words[:MAX_VOCABULARY]
            if len(words) >= MIN_VOCABULARY:
                return words
            logger.warning(f"  Only {len(words)} vocabulary words generated, using fallback")
        except ModelClientError as e:
            logger.warning(f"  Vocabulary extraction failed: {e}")
        return fallback_vocabulary(source_text)

    async def _themes(self, source_text: str) -> list[str]:
        prompt = (
            "Identify 3-5 main themes or topics in this text. One short theme per "
            f"line, no numbering:\n\n{source_text[:400]}"
        )
        try:
            raw = await self.client.complete(prompt)
            themes = []
            for line in parse_lines(raw):
                theme = line.lower()
                if 4 <= len(theme) < 50 and theme not in themes:
                    themes.append(theme)
            themes = themes[:MAX_THEMES]
            if len(themes) >= MIN_THEMES:
                return themes
            logger.warning(f"  Only {len(themes)} themes generated, using fallback")
        except ModelClientError as e:
            logger.warning(f"  Theme extraction failed: {e}")
        return detect_themes(source_text)

    async def _summary(self, source_text: str) -> str:
        prompt = f"Summarize this text in 2-3 sentences:\n\n{source_text[:600]}"
        try:
            raw = await self.client.complete(prompt)
            summary = raw.strip()
            if summary:
                return summary[:SUMMARY_LENGTH]
        except ModelClientError as e:
            logger.warning(f"  Summary generation failed: {e}")
        return source_text[:200] + "..."
