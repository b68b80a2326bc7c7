"""Per-section quality metrics for the lesson being generated."""

from datetime import datetime

from src.logger import get_logger
from src.models import QualityRecord

logger = get_logger("lessongen.quality")


class QualityMetricsTracker:
    """
    Collects one QualityRecord per generated section.

    Records are append-only until `reset()` starts a new lesson. The tracker
    only observes; nothing in the pipeline branches on its contents.
    """

    def __init__(self):
        self._records: list[QualityRecord] = []

    @property
    def records(self) -> list[QualityRecord]:
        return list(self._records)

    def record(self, record: QualityRecord) -> None:
        self._records.append(record)

    def reset(self) -> None:
        self._records = []

    def summary(self) -> dict:
        """
        Aggregate the records collected so far.

        Returns:
            Dict with average_score, total_attempts, total_issues,
            total_warnings and regenerations
        """
        count = len(self._records)
        return {
            "average_score": (
                round(sum(r.score for r in self._records) / count) if count else 0
            ),
            "total_attempts": sum(r.attempts for r in self._records),
            "total_issues": sum(r.issue_count for r in self._records),
            "total_warnings": sum(r.warning_count for r in self._records),
            "regenerations": sum(1 for r in self._records if r.regenerated),
        }

    def report(self) -> dict:
        """Build the quality report attached to the exported lesson."""
        summary = self.summary()
        return {
            "overallScore": summary["average_score"],
            "sections": {
                r.section_name: {
                    "score": r.score,
                    "attempts": r.attempts,
                    "generationTimeMs": r.generation_time_ms,
                    "issues": r.issue_count,
                    "warnings": r.warning_count,
                }
                for r in self._records
            },
            "totalGenerationTimeMs": sum(r.generation_time_ms for r in self._records),
            "regenerations": summary["regenerations"],
            "timestamp": datetime.now().isoformat(),
        }

    def log_summary(self) -> None:
        summary = self.summary()
        logger.info("=" * 60)
        logger.info("Lesson Quality Summary")
        logger.info("=" * 60)
        for r in self._records:
            logger.info(
                f"  {r.section_name}: {r.score}/100 ({r.attempts} attempts, "
                f"{r.issue_count} issues, {r.warning_count} warnings)"
            )
        logger.info(f"Overall score: {summary['average_score']}/100")
        logger.info(f"Regenerated sections: {summary['regenerations']}")
        logger.info("=" * 60)


quality_tracker = QualityMetricsTracker()
