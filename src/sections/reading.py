"""Reading section: the source text rewritten for the learner's level."""

from src.model_client import GenerationOptions
from src.models import CEFRLevel
from src.sections.base import SectionGenerator, lesson_vocabulary
from src.validators import READING_WORD_RANGES

# Character limits for the untouched source excerpt used when generation fails
FALLBACK_CHAR_LIMITS = {
    CEFRLevel.A1: 200,
    CEFRLevel.A2: 300,
    CEFRLevel.B1: 400,
    CEFRLevel.B2: 500,
    CEFRLevel.C1: 600,
}

READING_LEVELS = {
    CEFRLevel.A1: {
        "vocabulary": "Use only the most common everyday words. Explain or replace any technical term.",
        "grammar": "Use present simple and past simple. NO passive voice, NO conditionals.",
        "sentence_length": "Very short sentences of 5-10 words, one idea per sentence.",
    },
    CEFRLevel.A2: {
        "vocabulary": "Use simple, familiar words. Keep a technical term only when it is explained in the text.",
        "grammar": 'Use present, past and future tenses. Join ideas with "and", "but" and "because".',
        "sentence_length": "Clear sentences of 8-14 words.",
    },
    CEFRLevel.B1: {
        "vocabulary": "Use intermediate vocabulary with common phrasal verbs and topic words.",
        "grammar": "Use present perfect, first conditional and some relative clauses (that, which, who).",
        "sentence_length": "Varied sentences of 10-18 words on average.",
    },
    CEFRLevel.B2: {
        "vocabulary": "Use advanced vocabulary, collocations and abstract nouns.",
        "grammar": "Use passive voice, second conditionals and contrast linkers (although, whereas).",
        "sentence_length": "Sentences of 12-22 words combining several clauses.",
    },
    CEFRLevel.C1: {
        "vocabulary": "Keep precise, academic and idiomatic vocabulary from the original.",
        "grammar": "Use the full range of structures, including inversion and mixed conditionals.",
        "sentence_length": "Complex sentences of 15-25 words with a natural variety of lengths.",
    },
}


class ReadingGenerator(SectionGenerator):
    name = "reading"
    instruction = "Read the following text carefully. Your tutor will help you with any difficult words or concepts:"

    async def generate(self, client, context, prior_sections):
        level = context.difficulty_level
        low, high = READING_WORD_RANGES[level]
        words = lesson_vocabulary(context, prior_sections)
        settings = READING_LEVELS[level]
        prompt = (
            f"Rewrite this text for {level.value} level students.\n"
            f"Use these vocabulary words: {', '.join(words)}\n"
            f"Vocabulary: {settings['vocabulary']}\n"
            f"Grammar: {settings['grammar']}\n"
            f"Sentences: {settings['sentence_length']}\n"
            f"Keep it {low}-{high} words:\n\n{context.source_text}"
        )
        response = await client.complete(prompt, GenerationOptions(max_output_length=1200))
        return f"{self.instruction}\n\n{response.strip()}"

    def fallback(self, context, prior_sections):
        limit = FALLBACK_CHAR_LIMITS[context.difficulty_level]
        text = context.source_text.strip()
        if len(text) > limit:
            text = text[:limit].rstrip() + "..."
        return f"{self.instruction}\n\n{text}"
