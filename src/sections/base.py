"""Shared pieces for section generators."""

import re
from typing import Any

from src.model_client import GenerativeModelClient
from src.models import INSTRUCTION_MARKER, GeneratedSection, SharedContext


class SectionGenerator:
    """
    Strategy for one lesson section kind.

    Subclasses build a level-calibrated prompt from the shared context and
    earlier sections, request text from the model and parse it into a typed
    payload. Sections with a deterministic fallback override `fallback`.
    """

    name: str = ""
    instruction: str = ""

    async def generate(
        self,
        client: GenerativeModelClient,
        context: SharedContext,
        prior_sections: list[GeneratedSection],
    ) -> Any:
        raise NotImplementedError

    def fallback(
        self, context: SharedContext, prior_sections: list[GeneratedSection]
    ) -> Any:
        return None


def find_section(
    prior_sections: list[GeneratedSection], name: str
) -> GeneratedSection | None:
    for section in prior_sections:
        if section.section_name == name:
            return section
    return None


def lesson_vocabulary(
    context: SharedContext, prior_sections: list[GeneratedSection], limit: int = 5
) -> list[str]:
    """Vocabulary words from the vocabulary section, or from the context if absent."""
    section = find_section(prior_sections, "vocabulary")
    if section is not None:
        words = [e.word for e in section.content if e.word != INSTRUCTION_MARKER]
    else:
        words = list(context.key_vocabulary)
    return words[:limit]


def main_theme(context: SharedContext, default: str = "this topic") -> str:
    return context.main_themes[0] if context.main_themes else default


def strip_numbering(line: str) -> str:
    return re.sub(r"^\s*(?:\d+[.)]|[-*•])\s*", "", line).strip()


def parse_questions(text: str, count: int) -> list[str]:
    """Keep the first `count` lines that are real questions."""
    questions = []
    for line in text.splitlines():
        line = strip_numbering(line).strip("*").strip()
        if line.endswith("?") and len(line) > 10:
            questions.append(line)
    return questions[:count]
