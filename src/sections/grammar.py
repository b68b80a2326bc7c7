"""Grammar section: one level-appropriate grammar point as structured JSON."""

from pydantic import ValidationError

from src.logger import get_logger
from src.model_client import GenerationOptions, MaxLengthExceeded
from src.models import CEFRLevel, GrammarExercise, GrammarExplanation, GrammarPayload
from src.repair import StructuredParseFailure, parse_structured
from src.sections.base import SectionGenerator

logger = get_logger("lessongen.sections")

GRAMMAR_POINTS = {
    CEFRLevel.A1: "present simple, articles, basic prepositions",
    CEFRLevel.A2: "past simple, comparatives, modal verbs",
    CEFRLevel.B1: "present perfect, conditionals, passive voice",
    CEFRLevel.B2: "relative clauses, advanced conditionals, reported speech",
    CEFRLevel.C1: "subjunctive, cleft sentences, inversion",
}

GRAMMAR_TEMPLATE = """{
  "grammarPoint": "Name",
  "explanation": {
    "form": "How to form (1 sentence)",
    "usage": "When to use (1 sentence)",
    "levelNotes": "Level note (1 sentence)"
  },
  "examples": ["example 1", "example 2", "example 3"],
  "exercises": [
    {"prompt": "Exercise 1", "answer": "Answer 1", "explanation": "Why"},
    {"prompt": "Exercise 2", "answer": "Answer 2", "explanation": "Why"},
    {"prompt": "Exercise 3", "answer": "Answer 3", "explanation": "Why"}
  ]
}"""


def _as_text(value) -> str:
    return "" if value is None else str(value).strip()


def build_grammar_payload(data: dict) -> GrammarPayload:
    """
    Convert parsed grammar JSON into a GrammarPayload.

    Raises:
        StructuredParseFailure: If the JSON has the wrong shape
    """
    explanation = data.get("explanation") or {}
    if isinstance(explanation, str):
        explanation = {"usage": explanation}
    if not isinstance(explanation, dict):
        raise StructuredParseFailure("Grammar explanation is not an object")

    exercises = data.get("exercises") or []
    examples = data.get("examples") or []
    if not isinstance(exercises, list) or not isinstance(examples, list):
        raise StructuredParseFailure("Grammar examples and exercises must be lists")

    try:
        return GrammarPayload(
            focus=_as_text(data.get("grammarPoint") or data.get("focus")),
            explanation=GrammarExplanation(
                form=_as_text(explanation.get("form")),
                usage=_as_text(explanation.get("usage")),
                level_notes=_as_text(explanation.get("levelNotes")),
            ),
            examples=[_as_text(example) for example in examples if _as_text(example)],
            exercises=[
                GrammarExercise(
                    prompt=_as_text(exercise.get("prompt")),
                    answer=_as_text(exercise.get("answer")),
                    explanation=_as_text(exercise.get("explanation")),
                )
                for exercise in exercises
                if isinstance(exercise, dict)
            ],
        )
    except ValidationError as e:
        raise StructuredParseFailure(f"Grammar response has an invalid shape: {e}") from e


class GrammarGenerator(SectionGenerator):
    name = "grammar"

    async def generate(self, client, context, prior_sections):
        level = context.difficulty_level
        prompt = f"""Identify ONE grammar point from this text for {level.value} level.

Text: {context.source_text[:200]}

Suggested: {GRAMMAR_POINTS[level]}

Return CONCISE JSON (brief explanations, 3 examples, 3 exercises):
{GRAMMAR_TEMPLATE}"""
        try:
            response = await client.complete(prompt, GenerationOptions(max_output_length=3000))
        except MaxLengthExceeded as e:
            if not e.partial:
                raise
            logger.warning("  Grammar response truncated, repairing partial JSON")
            response = e.partial

        return build_grammar_payload(parse_structured(response))
