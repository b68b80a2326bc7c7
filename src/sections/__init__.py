"""Section generators, one strategy per lesson section kind."""

from src.sections.base import SectionGenerator
from src.sections.dialogue import DialogueFillGapGenerator, DialoguePracticeGenerator
from src.sections.grammar import GrammarGenerator
from src.sections.pronunciation import PronunciationGenerator
from src.sections.questions import (
    ComprehensionGenerator,
    DiscussionGenerator,
    WarmupGenerator,
    WrapupGenerator,
)
from src.sections.reading import ReadingGenerator
from src.sections.vocabulary import VocabularyGenerator

GENERATORS: dict[str, SectionGenerator] = {
    generator.name: generator
    for generator in (
        WarmupGenerator(),
        VocabularyGenerator(),
        ReadingGenerator(),
        ComprehensionGenerator(),
        DiscussionGenerator(),
        GrammarGenerator(),
        PronunciationGenerator(),
        WrapupGenerator(),
        DialoguePracticeGenerator(),
        DialogueFillGapGenerator(),
    )
}


def get_generator(section_name: str) -> SectionGenerator:
    return GENERATORS[section_name]
