"""Screening of source text before any lesson generation call."""

import re

from src.logger import get_logger
from src.models import ContentValidation

logger = get_logger("lessongen.content")

MIN_WORD_COUNT = 50
MIN_SENTENCE_COUNT = 3
MIN_QUALITY_SCORE = 60

_SENTENCE_PATTERN = re.compile(r"[^.!?]+(?:[.!?]+|$)")


def sanitize(text: str) -> str:
    """Collapse whitespace and drop characters outside ordinary prose punctuation."""
    text = re.sub(r"\s+", " ", text).strip()
    return re.sub(r"[^\w\s.,!?;:'\"()-]", "", text)


def split_words(text: str) -> list[str]:
    return [token for token in text.split() if re.search(r"\w", token)]


def split_sentences(text: str) -> list[str]:
    """Split text into sentences, keeping each sentence's terminal punctuation."""
    return [
        piece.strip()
        for piece in _SENTENCE_PATTERN.findall(text)
        if re.search(r"\w", piece)
    ]


class ContentValidator:
    """Rejects source text that is too short, unstructured or low in quality."""

    def get_minimum_word_count(self) -> int:
        return MIN_WORD_COUNT

    def validate(self, text: str) -> ContentValidation:
        """
        Validate source text for lesson generation.

        Args:
            text: Raw source text

        Returns:
            ContentValidation with a reason and suggestions when rejected
        """
        cleaned = sanitize(text or "")
        if not cleaned:
            return ContentValidation(
                is_valid=False,
                reason="No content provided",
                suggestions=[
                    "Please select or paste some text content to generate a lesson from"
                ],
            )

        words = split_words(cleaned)
        sentences = split_sentences(cleaned)
        word_count = len(words)
        sentence_count = len(sentences)

        if word_count < MIN_WORD_COUNT:
            return ContentValidation(
                is_valid=False,
                reason=f"Content too short ({word_count} words, minimum {MIN_WORD_COUNT} required)",
                suggestions=[
                    "Select more text from the webpage",
                    "Choose a longer article or passage",
                    "Combine multiple paragraphs for better lesson content",
                ],
                word_count=word_count,
                sentence_count=sentence_count,
            )

        if sentence_count < MIN_SENTENCE_COUNT:
            return ContentValidation(
                is_valid=False,
                reason=f"Content lacks structure ({sentence_count} sentences, minimum {MIN_SENTENCE_COUNT} required)",
                suggestions=[
                    "Select content with complete sentences",
                    "Choose text with proper punctuation",
                    "Avoid selecting only titles or bullet points",
                ],
                word_count=word_count,
                sentence_count=sentence_count,
            )

        metrics = self._quality_metrics(words, sentences)
        score = metrics["score"]
        logger.debug(f"  Content quality metrics: {metrics}")

        if score < MIN_QUALITY_SCORE:
            return ContentValidation(
                is_valid=False,
                reason=f"Content quality insufficient for lesson generation (score: {score}/100)",
                suggestions=self._improvement_suggestions(metrics),
                word_count=word_count,
                sentence_count=sentence_count,
                quality_score=score,
            )

        return ContentValidation(
            is_valid=True,
            word_count=word_count,
            sentence_count=sentence_count,
            quality_score=score,
        )

    def _quality_metrics(self, words: list[str], sentences: list[str]) -> dict:
        word_count = len(words)
        avg_sentence_length = word_count / len(sentences)

        normalized = [re.sub(r"[^\w']", "", w).lower() for w in words]
        unique_ratio = len(set(normalized)) / word_count

        complete = sum(1 for s in sentences if s[-1] in ".!?")
        completeness = complete / len(sentences)

        score = min(30.0, word_count / 200 * 30)

        if 8 <= avg_sentence_length <= 25:
            score += 25
        elif avg_sentence_length >= 5:
            score += 15

        if unique_ratio > 0.4:
            score += 25
        elif unique_ratio > 0.25:
            score += 15

        if completeness >= 0.7:
            score += 20
        elif completeness >= 0.5:
            score += 10

        return {
            "score": round(score),
            "word_count": word_count,
            "avg_sentence_length": avg_sentence_length,
            "unique_ratio": unique_ratio,
            "completeness": completeness,
            "has_varied_vocabulary": unique_ratio > 0.4,
            "has_complete_sentences": completeness >= 0.7,
        }

    def _improvement_suggestions(self, metrics: dict) -> list[str]:
        suggestions = []
        if metrics["word_count"] < 100:
            suggestions.append("Select longer content with more detailed information")
        if metrics["avg_sentence_length"] < 8:
            suggestions.append("Choose content with more complex, complete sentences")
        if not metrics["has_varied_vocabulary"]:
            suggestions.append("Select content with more diverse vocabulary and topics")
        if not metrics["has_complete_sentences"]:
            suggestions.append("Choose well-structured text with proper punctuation")
        if not suggestions:
            suggestions.append(
                "Try selecting different content that is more suitable for language learning"
            )
        return suggestions
