"""Vocabulary section: definitions and level-calibrated example sentences."""

import re

import config
from src.logger import get_logger
from src.model_client import GenerationOptions, MaxLengthExceeded, ModelClientError
from src.models import INSTRUCTION_MARKER, CEFRLevel, VocabularyEntry
from src.sections.base import SectionGenerator, main_theme, strip_numbering
from src.validators import EXAMPLE_COUNTS

logger = get_logger("lessongen.sections")

EXAMPLE_GUIDELINES = {
    CEFRLevel.A1: "5-8 words, present tense, basic vocabulary",
    CEFRLevel.A2: "8-12 words, simple past/future, common words",
    CEFRLevel.B1: "10-15 words, varied tenses, compound sentences",
    CEFRLevel.B2: "12-18 words, complex structures, relative clauses",
    CEFRLevel.C1: "15-20 words, sophisticated grammar, nuanced expressions",
}

MAX_MEANING_LENGTH = 150


def capitalize_word(word: str) -> str:
    return word[:1].upper() + word[1:]


def parse_examples(text: str, count: int) -> list[str]:
    examples = []
    for line in text.splitlines():
        line = strip_numbering(line).strip('"').strip()
        if len(line) > 10:
            examples.append(line)
    return examples[:count]


def source_sentences_with(word: str, source_text: str) -> list[str]:
    sentences = re.findall(r"[^.!?]+[.!?]", source_text)
    pattern = re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)
    return [s.strip() for s in sentences if pattern.search(s)]


class VocabularyGenerator(SectionGenerator):
    name = "vocabulary"
    instruction = "Study the following words with your tutor before reading the text:"

    async def generate(self, client, context, prior_sections):
        level = context.difficulty_level
        words = context.key_vocabulary[: config.VOCABULARY_WORD_LIMIT]
        example_count = EXAMPLE_COUNTS[level]
        logger.info(
            f"  Generating {len(words)} vocabulary entries ({example_count} examples each)"
        )

        definition_prompts = [
            f'Define "{word}" simply for {level.value} level. '
            f"Context: {context.content_summary[:100]}. Give only the definition:"
            for word in words
        ]
        definitions = await client.complete_batch(
            definition_prompts, GenerationOptions(max_output_length=200)
        )

        entries = [VocabularyEntry(word=INSTRUCTION_MARKER, meaning=self.instruction)]
        for i, (word, definition) in enumerate(zip(words, definitions)):
            if isinstance(definition, ModelClientError):
                logger.warning(f"  [{i+1}/{len(words)}] Definition failed for {word}: {definition}")
                meaning = self._fallback_meaning(word, context)
            elif isinstance(definition, BaseException):
                raise definition
            else:
                meaning = definition.strip().splitlines()[0] if definition.strip() else ""

            examples = await self._examples(client, word, context, example_count)
            entries.append(
                VocabularyEntry(
                    word=capitalize_word(word),
                    meaning=meaning[:MAX_MEANING_LENGTH],
                    examples=examples,
                )
            )
        return entries

    async def _examples(self, client, word, context, count) -> list[str]:
        level = context.difficulty_level
        themes = ", ".join(context.main_themes[:2])
        prompt = f"""Create {count} sentences using "{word}" for {level.value} level.

Context: {context.content_summary[:150]}
Topic: {themes}

Requirements:
- Relate to the topic ({themes})
- Match {level.value} level: {EXAMPLE_GUIDELINES[level]}
- Show different uses of "{word}"
- Use context-specific terms

Return {count} sentences, one per line, no numbering:"""
        try:
            response = await client.complete(prompt, GenerationOptions(max_output_length=400))
        except MaxLengthExceeded as e:
            logger.warning(f"  Examples for {word} truncated, using partial response")
            response = e.partial or ""
        return parse_examples(response, count)

    def _fallback_meaning(self, word, context) -> str:
        return f"A key word in this text about {main_theme(context)}."

    def fallback(self, context, prior_sections):
        count = EXAMPLE_COUNTS[context.difficulty_level]
        entries = [VocabularyEntry(word=INSTRUCTION_MARKER, meaning=self.instruction)]
        for word in context.key_vocabulary[: config.VOCABULARY_WORD_LIMIT]:
            entries.append(
                VocabularyEntry(
                    word=capitalize_word(word),
                    meaning=self._fallback_meaning(word, context),
                    examples=source_sentences_with(word, context.source_text)[:count],
                )
            )
        return entries
