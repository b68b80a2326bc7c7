"""Bounded regeneration of a single lesson section."""

import time

import config
from src.logger import get_logger
from src.model_client import GenerativeModelClient, ModelClientError
from src.models import (
    GeneratedSection,
    LessonSection,
    QualityRecord,
    SharedContext,
    ValidationResult,
)
from src.quality_metrics import QualityMetricsTracker, quality_tracker
from src.repair import StructuredParseFailure
from src.sections import get_generator
from src.validators import get_validator

logger = get_logger("lessongen.retry")


class LessonGenerationError(Exception):
    """Base error for lesson generation."""

    pass


class SectionGenerationError(LessonGenerationError):
    """Raised when a section cannot be produced. Aborts the whole lesson."""

    def __init__(self, section: str, message: str):
        super().__init__(f"Section '{section}' failed: {message}")
        self.section = section
        self.message = message


class ValidationFailure(SectionGenerationError):
    """Raised when a section without a fallback is still invalid after the last attempt."""

    pass


async def generate_section(
    client: GenerativeModelClient,
    section: LessonSection,
    context: SharedContext,
    prior_sections: list[GeneratedSection],
    max_attempts: int = config.MAX_SECTION_ATTEMPTS,
    tracker: QualityMetricsTracker = quality_tracker,
) -> GeneratedSection:
    """
    Generate, validate and if needed regenerate one section.

    Every attempt is a full regeneration. Client errors and unparseable
    responses count as failed attempts. Once the attempts are used up the
    section's fallback policy decides between degrading and aborting.

    Args:
        client: Model client
        section: Schedule entry for the section
        context: Current shared context
        prior_sections: Sections accepted so far, in generation order
        max_attempts: Maximum number of generation attempts
        tracker: Receives the quality record of the accepted section

    Returns:
        The accepted section

    Raises:
        SectionGenerationError: If no candidate was produced and the section has no fallback
        ValidationFailure: If the last candidate is invalid and the section has no fallback
    """
    generator = get_generator(section.name)
    validator = get_validator(section.name)

    started = time.monotonic()
    tokens_before = client.total_tokens

    candidate = None
    result: ValidationResult | None = None
    last_error: Exception | None = None
    attempts = 0

    for attempt in range(1, max_attempts + 1):
        attempts = attempt
        try:
            content = await generator.generate(client, context, prior_sections)
        except (ModelClientError, StructuredParseFailure) as e:
            last_error = e
            logger.warning(f"  {section.name} attempt {attempt}/{max_attempts} failed: {e}")
            continue

        candidate = content
        result = validator.validate(content, context)
        if result.is_valid:
            break
        logger.warning(
            f"  {section.name} attempt {attempt}/{max_attempts} invalid: "
            f"{'; '.join(result.issues)}"
        )

    if result is None or not result.is_valid:
        if not section.has_fallback:
            if result is None:
                raise SectionGenerationError(section.name, str(last_error)) from last_error
            raise ValidationFailure(section.name, "; ".join(result.issues))

        if candidate is None:
            candidate = generator.fallback(context, prior_sections)
            if candidate is None:
                raise SectionGenerationError(section.name, str(last_error)) from last_error
            logger.warning(f"  {section.name}: using fallback content")
            result = ValidationResult(
                score=0, issues=[f"Fallback content used after: {last_error}"]
            )
        else:
            logger.warning(
                f"  {section.name}: accepting last candidate with score {result.score}"
            )

    elapsed_ms = int((time.monotonic() - started) * 1000)
    tracker.record(
        QualityRecord(
            section_name=section.name,
            score=result.score,
            attempts=attempts,
            generation_time_ms=elapsed_ms,
            issue_count=len(result.issues),
            warning_count=len(result.warnings),
        )
    )

    return GeneratedSection(
        section_name=section.name,
        content=candidate,
        tokens_used=client.total_tokens - tokens_before,
    )
