"""Dialogue sections: conversation practice and fill-in-the-gap."""

import re

from src.logger import get_logger
from src.model_client import GenerationOptions, ModelClientError
from src.models import GAP_MARKER, CEFRLevel, DialogueLine, DialoguePayload
from src.repair import StructuredParseFailure
from src.sections.base import (
    SectionGenerator,
    lesson_vocabulary,
    main_theme,
    parse_questions,
    strip_numbering,
)

logger = get_logger("lessongen.sections")

DIALOGUE_LINE_COUNT = 14

DEFAULT_FOLLOW_UP_QUESTIONS = [
    "What did you learn from this conversation?",
    "How would you continue this discussion?",
    "What questions would you ask next?",
]

DIALOGUE_LEVELS = {
    CEFRLevel.A1: {
        "vocabulary": "Use ONLY the most common everyday words (go, come, like, want, have, make, see, know).",
        "grammar": "Use ONLY present simple and past simple with subject-verb-object order. NO perfect tenses, NO conditionals, NO passive voice.",
        "sentence_length": "Very short sentences: 5-8 words, one idea per sentence.",
        "examples": 'Good: "I like this topic." / "Do you know about it?"',
    },
    CEFRLevel.A2: {
        "vocabulary": "Use simple, familiar words with common adjectives and adverbs (interesting, important, usually, often).",
        "grammar": 'Use present simple, past simple, present continuous and future with "going to" and "will". Simple conjunctions only. NO present perfect, NO passive voice.',
        "sentence_length": 'Clear sentences of 8-12 words. Two ideas may be joined with "and" or "but".',
        "examples": 'Good: "I\'m reading about this because it\'s interesting."',
    },
    CEFRLevel.B1: {
        "vocabulary": "Use intermediate vocabulary with phrasal verbs (find out, look into, deal with) and opinion phrases (I think, in my opinion).",
        "grammar": "Use present perfect, past continuous and first conditional. Include some relative clauses (that, which, who).",
        "sentence_length": "Varied sentences of 10-15 words on average.",
        "examples": 'Good: "I\'ve been looking into this topic, and I\'ve found some interesting facts."',
    },
    CEFRLevel.B2: {
        "vocabulary": "Use advanced vocabulary with abstract ideas, collocations (take into account, make a decision) and nuanced adverbs (somewhat, considerably).",
        "grammar": "Use relative clauses, second and third conditionals, passive voice and perfect tenses. Include although, whereas, unless.",
        "sentence_length": "Sophisticated sentences of 12-18 words combining several clauses.",
        "examples": 'Good: "Although I\'ve studied this topic, some aspects remain somewhat unclear."',
    },
    CEFRLevel.C1: {
        "vocabulary": "Use sophisticated, academic vocabulary, idioms and hedging language (arguably, to some extent).",
        "grammar": "Use inversion, cleft sentences, the subjunctive and advanced conditionals naturally.",
        "sentence_length": "Flowing multi-clause sentences of 15-20 words.",
        "examples": 'Good: "What strikes me as intriguing is how this topic intersects with wider social concerns."',
    },
}

GAP_GUIDELINES = {
    CEFRLevel.A1: "Blank out common verbs (go, like, want) or simple nouns.",
    CEFRLevel.A2: "Blank out common verbs or everyday nouns and adjectives.",
    CEFRLevel.B1: "Blank out phrasal verbs or intermediate vocabulary.",
    CEFRLevel.B2: "Blank out sophisticated vocabulary or collocations.",
    CEFRLevel.C1: "Blank out sophisticated vocabulary, collocations or idiomatic expressions.",
}


def parse_dialogue(text: str) -> list[DialogueLine]:
    """Parse "Student: ..." / "Tutor: ..." lines, ignoring anything else."""
    lines = []
    for raw in text.replace("*", "").splitlines():
        match = re.match(r"^(Student|Tutor):\s*(.+)$", strip_numbering(raw), re.IGNORECASE)
        if match:
            lines.append(
                DialogueLine(character=match.group(1).capitalize(), line=match.group(2).strip())
            )
    return lines


def mark_gaps(lines: list[DialogueLine]) -> list[DialogueLine]:
    """Normalise blanks to the gap marker and flag lines that contain one."""
    marked = []
    for line in lines:
        text = re.sub(r"_{3,}", GAP_MARKER, line.line)
        marked.append(
            DialogueLine(
                character=line.character,
                line=text,
                is_gap=True if GAP_MARKER in text else None,
            )
        )
    return marked


def parse_answers(text: str) -> list[str]:
    answers = []
    for line in text.splitlines():
        line = strip_numbering(line)
        line = re.sub(r"^(gap|answer)\s*\d*\s*[:.)-]\s*", "", line, flags=re.IGNORECASE)
        line = line.strip().strip("\"'.").strip()
        if line:
            answers.append(line)
    return answers


class _DialogueGenerator(SectionGenerator):
    fill_gap = False

    def _prompt(self, context, vocabulary: list[str]) -> str:
        level = context.difficulty_level
        settings = DIALOGUE_LEVELS[level]
        theme = main_theme(context)
        speakers = "\n".join(
            "Student: [line]" if i % 2 == 0 else "Tutor: [line]"
            for i in range(DIALOGUE_LINE_COUNT)
        )

        requirements = [
            f"Create EXACTLY {DIALOGUE_LINE_COUNT} lines alternating between Student and Tutor",
            "The Student speaks first",
            "Keep the conversation natural and related to the context and themes",
            f"Naturally use 3-4 of these lesson words: {', '.join(vocabulary)}",
        ]
        if self.fill_gap:
            requirements += [
                f"Replace 1-2 key words in 4-6 of the lines with {GAP_MARKER}",
                "Blank out verbs, nouns or adjectives, NOT articles, prepositions or pronouns",
                GAP_GUIDELINES[level],
            ]
        numbered = "\n".join(f"{i}. {item}" for i, item in enumerate(requirements, start=1))

        return f"""Create a natural conversation between a Student and a Tutor about "{theme}" for {level.value} level students.

CONTEXT: {context.content_summary}
TOPIC THEMES: {', '.join(context.main_themes)}

CRITICAL REQUIREMENTS:
{numbered}

VOCABULARY: {settings["vocabulary"]}
GRAMMAR: {settings["grammar"]}
SENTENCE LENGTH: {settings["sentence_length"]}
EXAMPLES: {settings["examples"]}

FORMAT (no numbering or extra text):
{speakers}"""

    async def _dialogue(self, client, context, prior_sections) -> list[DialogueLine]:
        vocabulary = lesson_vocabulary(context, prior_sections)
        response = await client.complete(
            self._prompt(context, vocabulary), GenerationOptions(max_output_length=1500)
        )
        return parse_dialogue(response)


class DialoguePracticeGenerator(_DialogueGenerator):
    name = "dialogue_practice"
    instruction = "Practice this conversation with your tutor:"

    async def generate(self, client, context, prior_sections):
        lines = await self._dialogue(client, context, prior_sections)
        follow_up = await self._follow_up_questions(client, context, lines)
        return DialoguePayload(
            instruction=self.instruction, dialogue=lines, follow_up_questions=follow_up
        )

    async def _follow_up_questions(self, client, context, lines) -> list[str]:
        conversation = "\n".join(f"{l.character}: {l.line}" for l in lines)
        prompt = (
            f"Based on this conversation about {main_theme(context)}, write 3 follow-up "
            f"discussion questions for {context.difficulty_level.value} level students. "
            f"Return only the questions, one per line:\n\n{conversation}"
        )
        try:
            response = await client.complete(prompt, GenerationOptions(max_output_length=300))
        except ModelClientError as e:
            logger.warning(f"  Follow-up questions failed, using defaults: {e}")
            return list(DEFAULT_FOLLOW_UP_QUESTIONS)

        questions = parse_questions(response, 3)
        if len(questions) < 3:
            return list(DEFAULT_FOLLOW_UP_QUESTIONS)
        return questions


class DialogueFillGapGenerator(_DialogueGenerator):
    name = "dialogue_fill_gap"
    instruction = "Fill in the gaps in this conversation:"
    fill_gap = True

    async def generate(self, client, context, prior_sections):
        lines = mark_gaps(await self._dialogue(client, context, prior_sections))
        payload = DialoguePayload(instruction=self.instruction, dialogue=lines, answers=[])
        if payload.gap_count == 0:
            return payload

        answers = await self._answers(client, payload)
        return payload.model_copy(update={"answers": answers})

    async def _answers(self, client, payload: DialoguePayload) -> list[str]:
        gaps = payload.gap_count
        conversation = "\n".join(f"{l.character}: {l.line}" for l in payload.dialogue)
        prompt = (
            f"This conversation has {gaps} gaps marked {GAP_MARKER}. Give the missing "
            "word or words for each gap in order, one answer per line, with no "
            f"numbering or extra text:\n\n{conversation}"
        )
        response = await client.complete(prompt, GenerationOptions(max_output_length=200))
        answers = parse_answers(response)
        if len(answers) < gaps:
            raise StructuredParseFailure(
                f"Recovered {len(answers)} answers for {gaps} gaps"
            )
        return answers[:gaps]
