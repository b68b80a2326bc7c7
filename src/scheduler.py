"""Dependency ordering of lesson sections."""

import heapq
from graphlib import CycleError, TopologicalSorter

from src.context_builder import DEFAULT_THEMES, detect_themes
from src.models import INSTRUCTION_MARKER, GeneratedSection, LessonSection, SharedContext

DEFAULT_SECTIONS = [
    LessonSection(name="warmup", priority=1, has_fallback=True),
    LessonSection(name="vocabulary", priority=2, has_fallback=True),
    LessonSection(name="reading", priority=3, dependencies=("vocabulary",), has_fallback=True),
    LessonSection(name="comprehension", priority=4, dependencies=("reading",), has_fallback=True),
    LessonSection(
        name="discussion",
        priority=5,
        dependencies=("reading", "comprehension"),
        has_fallback=True,
    ),
    LessonSection(name="dialogue_practice", priority=6, dependencies=("vocabulary",)),
    LessonSection(name="dialogue_fill_gap", priority=7, dependencies=("vocabulary",)),
    LessonSection(name="grammar", priority=8),
    LessonSection(name="pronunciation", priority=9, dependencies=("vocabulary",)),
    LessonSection(name="wrapup", priority=10, dependencies=("discussion",), has_fallback=True),
]


class ScheduleError(Exception):
    """Raised when the section graph is not a valid DAG."""

    pass


class SectionScheduler:
    """Computes a fixed generation order for a set of lesson sections."""

    def __init__(self, sections: list[LessonSection] | None = None):
        self.sections = {s.name: s for s in (sections or DEFAULT_SECTIONS)}

    def resolve(self, requested: list[str] | None = None) -> list[LessonSection]:
        """
        Compute the generation order.

        Requested sections pull in their transitive dependencies. Ready
        sections are released in priority order.

        Args:
            requested: Section names to generate. None means all sections.

        Returns:
            Sections in generation order

        Raises:
            ScheduleError: On unknown section names, unknown dependencies or cycles
        """
        selected = self._with_dependencies(requested or list(self.sections))

        sorter = TopologicalSorter(
            {name: self.sections[name].dependencies for name in selected}
        )
        try:
            sorter.prepare()
        except CycleError as e:
            raise ScheduleError(f"Section dependencies contain a cycle: {e.args[1]}") from e

        order: list[LessonSection] = []
        ready: list[tuple[int, str]] = []
        while sorter.is_active():
            for name in sorter.get_ready():
                heapq.heappush(ready, (self.sections[name].priority, name))
            _, name = heapq.heappop(ready)
            order.append(self.sections[name])
            sorter.done(name)
        return order

    def _with_dependencies(self, requested: list[str]) -> set[str]:
        selected: set[str] = set()
        pending = list(requested)
        while pending:
            name = pending.pop()
            if name in selected:
                continue
            section = self.sections.get(name)
            if section is None:
                raise ScheduleError(f"Unknown section: {name}")
            for dependency in section.dependencies:
                if dependency not in self.sections:
                    raise ScheduleError(
                        f"Section '{name}' depends on unknown section '{dependency}'"
                    )
            selected.add(name)
            pending.extend(section.dependencies)
        return selected


def update_context(context: SharedContext, section: GeneratedSection) -> SharedContext:
    """
    Fold a generated section back into the shared context.

    Vocabulary sections add their words; reading sections add detected
    themes. Vocabulary only ever grows.
    """
    if section.section_name == "vocabulary":
        words = [
            entry.word.lower()
            for entry in section.content
            if entry.word != INSTRUCTION_MARKER
        ]
        return context.with_vocabulary(words)

    if section.section_name == "reading":
        themes = [
            theme
            for theme in detect_themes(section.content)
            if theme not in DEFAULT_THEMES
        ]
        return context.with_themes(themes)

    return context
