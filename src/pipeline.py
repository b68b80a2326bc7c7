"""Progressive lesson generation: validate, build context, generate sections in order."""

import json
import time
from datetime import datetime
from pathlib import Path

from tqdm import tqdm

from src.content_validator import ContentValidator
from src.context_builder import SharedContextBuilder
from src.logger import get_logger
from src.model_client import GenerativeModelClient
from src.models import CEFRLevel, GeneratedSection, Lesson, render_content
from src.quality_metrics import QualityMetricsTracker, quality_tracker
from src.retry import (
    LessonGenerationError,
    SectionGenerationError,
    ValidationFailure,
    generate_section,
)
from src.scheduler import SectionScheduler, update_context

logger = get_logger("lessongen.pipeline")

__all__ = [
    "InputRejected",
    "LessonGenerationError",
    "LessonPipeline",
    "SectionGenerationError",
    "ValidationFailure",
    "save_lesson",
]


class InputRejected(LessonGenerationError):
    """Raised when the source text is not suitable for a lesson."""

    def __init__(self, reason: str, suggestions: list[str] | None = None):
        super().__init__(f"Content validation failed: {reason}")
        self.reason = reason
        self.suggestions = suggestions or []


class LessonPipeline:
    """
    Generates a lesson section by section.

    Each section sees the shared context as updated by every section
    generated before it, plus the accepted sections themselves.
    """

    def __init__(
        self,
        client: GenerativeModelClient,
        scheduler: SectionScheduler | None = None,
        validator: ContentValidator | None = None,
        tracker: QualityMetricsTracker = quality_tracker,
    ):
        self.client = client
        self.scheduler = scheduler or SectionScheduler()
        self.validator = validator or ContentValidator()
        self.context_builder = SharedContextBuilder(client)
        self.tracker = tracker

    async def generate(
        self,
        source_text: str,
        level: CEFRLevel | str,
        lesson_type: str,
        target_language: str,
        sections: list[str] | None = None,
    ) -> Lesson:
        """
        Generate a complete lesson from source text.

        Args:
            source_text: Text the lesson is built around
            level: CEFR level of the learners
            lesson_type: Lesson type (discussion, grammar, travel, ...)
            target_language: Language of the lesson
            sections: Section names to generate. None means all sections.

        Returns:
            The assembled Lesson

        Raises:
            InputRejected: If the source text fails content validation
            SectionGenerationError: If a section without a fallback cannot be produced
            ScheduleError: If the requested sections cannot be ordered
        """
        level = CEFRLevel(level)
        started = time.monotonic()

        validation = self.validator.validate(source_text)
        if not validation.is_valid:
            logger.warning(f"Content rejected: {validation.reason}")
            raise InputRejected(validation.reason, validation.suggestions)
        logger.info(
            f"Content accepted: {validation.word_count} words, "
            f"{validation.sentence_count} sentences, quality {validation.quality_score}/100"
        )

        self.tracker.reset()
        tokens_before = self.client.total_tokens

        context = await self.context_builder.build(
            source_text, lesson_type, level, target_language
        )
        schedule = self.scheduler.resolve(sections)
        logger.info(f"Section order: {', '.join(s.name for s in schedule)}")

        generated: list[GeneratedSection] = []
        total = len(schedule)
        for i, section in enumerate(tqdm(schedule, desc="  Sections")):
            logger.info(f"  [{i+1}/{total}] Generating: {section.name}")
            result = await generate_section(
                self.client, section, context, list(generated), tracker=self.tracker
            )
            generated.append(result)
            context = update_context(context, result)
            logger.info(
                f"  [{i+1}/{total}] Done: {section.name} ({result.tokens_used} tokens)"
            )

        self.tracker.log_summary()

        return Lesson(
            title=context.lesson_title,
            level=level,
            target_language=target_language,
            lesson_type=lesson_type,
            sections={s.section_name: render_content(s.content) for s in generated},
            quality=self.tracker.report(),
            metadata={
                "lessonType": lesson_type,
                "tokensUsed": self.client.total_tokens - tokens_before,
                "generationTimeMs": int((time.monotonic() - started) * 1000),
                "timestamp": datetime.now().isoformat(),
            },
        )


def save_lesson(lesson: Lesson, path: Path) -> None:
    """Save a lesson to JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(lesson.to_export(), f, ensure_ascii=False, indent=2)
