"""Pydantic data models for the lesson generation pipeline."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Word used for the leading instruction entry of a vocabulary section
INSTRUCTION_MARKER = "INSTRUCTION"

# Blank that marks a gap in a fill-in-gap dialogue line
GAP_MARKER = "_____"


class CEFRLevel(str, Enum):
    """Learner proficiency level, ordered by difficulty."""

    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"

    @property
    def rank(self) -> int:
        return list(CEFRLevel).index(self)

    def __lt__(self, other):
        if not isinstance(other, CEFRLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, CEFRLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, CEFRLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, CEFRLevel):
            return NotImplemented
        return self.rank >= other.rank

    @property
    def is_beginner(self) -> bool:
        return self in (CEFRLevel.A1, CEFRLevel.A2)

    @property
    def is_advanced(self) -> bool:
        return self in (CEFRLevel.B2, CEFRLevel.C1)


class SharedContext(BaseModel):
    """Lesson-wide facts shared by every section generator.

    Instances are frozen; updates return a new context so earlier
    snapshots stay intact.
    """

    model_config = ConfigDict(frozen=True)

    lesson_title: str
    key_vocabulary: list[str] = Field(default_factory=list)
    main_themes: list[str] = Field(default_factory=list)
    difficulty_level: CEFRLevel
    content_summary: str = ""
    source_text: str = ""
    lesson_type: str = "discussion"
    target_language: str = "english"

    def with_vocabulary(self, words: list[str]) -> "SharedContext":
        """Return a copy whose vocabulary is the ordered union with `words`."""
        merged = list(self.key_vocabulary)
        for word in words:
            if word and word not in merged:
                merged.append(word)
        return self.model_copy(update={"key_vocabulary": merged})

    def with_themes(self, themes: list[str]) -> "SharedContext":
        """Return a copy whose themes are the ordered union with `themes`."""
        merged = list(self.main_themes)
        for theme in themes:
            if theme and theme not in merged:
                merged.append(theme)
        return self.model_copy(update={"main_themes": merged})


class LessonSection(BaseModel):
    """A schedule entry: a section kind and the sections it depends on."""

    model_config = ConfigDict(frozen=True)

    name: str
    priority: int
    dependencies: tuple[str, ...] = ()
    has_fallback: bool = False


# Section payloads


class VocabularyEntry(BaseModel):
    """A single vocabulary item with its definition and examples."""

    word: str
    meaning: str
    examples: list[str] = Field(default_factory=list)


class GrammarExplanation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    form: str = ""
    usage: str = ""
    level_notes: str = Field(default="", alias="levelNotes")


class GrammarExercise(BaseModel):
    prompt: str
    answer: str
    explanation: str = ""


class GrammarPayload(BaseModel):
    """Grammar focus section."""

    focus: str
    explanation: GrammarExplanation
    examples: list[str] = Field(default_factory=list)
    exercises: list[GrammarExercise] = Field(default_factory=list)


class PronunciationWord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    word: str
    ipa: str
    difficult_sounds: list[str] = Field(default_factory=list, alias="difficultSounds")
    tips: list[str] = Field(default_factory=list)
    practice_sentence: str = Field(default="", alias="practiceSentence")


class TongueTwister(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    target_sounds: list[str] = Field(default_factory=list, alias="targetSounds")
    difficulty: str = "moderate"


class PronunciationPayload(BaseModel):
    """Pronunciation section: challenging words plus tongue twisters."""

    model_config = ConfigDict(populate_by_name=True)

    instruction: str
    words: list[PronunciationWord] = Field(default_factory=list)
    tongue_twisters: list[TongueTwister] = Field(
        default_factory=list, alias="tongueTwisters"
    )


class DialogueLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    character: str
    line: str
    is_gap: Optional[bool] = Field(default=None, alias="isGap")


class DialoguePayload(BaseModel):
    """Dialogue section, used by both the practice and fill-in-gap variants."""

    model_config = ConfigDict(populate_by_name=True)

    instruction: str
    dialogue: list[DialogueLine] = Field(default_factory=list)
    follow_up_questions: Optional[list[str]] = Field(
        default=None, alias="followUpQuestions"
    )
    answers: Optional[list[str]] = None

    @property
    def gap_count(self) -> int:
        return sum(line.line.count(GAP_MARKER) for line in self.dialogue)


class GeneratedSection(BaseModel):
    """A section accepted into the lesson. Never mutated once appended."""

    model_config = ConfigDict(frozen=True)

    section_name: str
    content: Any
    tokens_used: int = Field(default=0, ge=0)
    generation_strategy: str = "progressive"


class ValidationResult(BaseModel):
    """Outcome of a section validator. Issues are fatal, warnings are not."""

    score: int = 100
    issues: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not self.issues

    def add_issue(self, message: str) -> None:
        self.issues.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)


class QualityRecord(BaseModel):
    """Per-section quality metrics. One record is appended per section."""

    model_config = ConfigDict(frozen=True)

    section_name: str
    score: int
    attempts: int
    generation_time_ms: int
    issue_count: int = 0
    warning_count: int = 0

    @property
    def regenerated(self) -> bool:
        return self.attempts > 1


class ContentValidation(BaseModel):
    """Result of screening source text before any generation call."""

    is_valid: bool
    reason: Optional[str] = None
    suggestions: Optional[list[str]] = None
    word_count: int = 0
    sentence_count: int = 0
    quality_score: Optional[int] = None


class Lesson(BaseModel):
    """The assembled lesson document."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    level: CEFRLevel
    target_language: str = Field(alias="targetLanguage")
    lesson_type: str = Field(alias="lessonType")
    sections: dict[str, Any] = Field(default_factory=dict)
    quality: Optional[dict] = None
    metadata: dict = Field(default_factory=dict)

    def to_export(self) -> dict:
        """Serialize with camelCase keys for writing to disk."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LessonRequest(BaseModel):
    """A lesson request as persisted in the session store."""

    source_text: str
    level: CEFRLevel = CEFRLevel.B1
    lesson_type: str = "discussion"
    target_language: str = "english"
    sections: Optional[list[str]] = None
    status: str = "pending"
    output_path: Optional[str] = None
    error: Optional[str] = None


def render_content(content: Any) -> Any:
    """Convert a section payload into plain exportable data (camelCase keys)."""
    if isinstance(content, BaseModel):
        return content.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(content, list):
        return [render_content(item) for item in content]
    return content
