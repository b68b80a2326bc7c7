"""Heuristic quality checks for generated lesson sections.

Every validator returns a ValidationResult. Issues make a candidate invalid
and trigger regeneration; warnings only lower the score.
"""

import math
import re

from src.models import (
    INSTRUCTION_MARKER,
    CEFRLevel,
    DialoguePayload,
    GrammarPayload,
    PronunciationPayload,
    SharedContext,
    ValidationResult,
    VocabularyEntry,
)

WARNING_PENALTY = 5

QUESTION_WORDS = (
    "what", "when", "where", "who", "why", "how", "do", "does", "did", "have",
    "has", "is", "are", "can", "could", "would", "should", "will",
)

CAPITALIZED_ALLOWED = {
    "What", "When", "Where", "Who", "Why", "How", "Do", "Does", "Did", "Have",
    "Has", "Is", "Are", "Can", "Could", "Would", "Should", "Will", "Which",
    "English", "Spanish", "French", "German", "Chinese", "Japanese",
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
    "January", "February", "March", "April", "May", "June", "July", "August",
    "September", "October", "November", "December",
}

THEME_STOP_WORDS = {"the", "and", "for", "with", "from", "about"}
SUMMARY_STOP_WORDS = {"about", "their", "which", "these", "those", "there", "where"}

EXAMPLE_COUNTS = {
    CEFRLevel.A1: 5,
    CEFRLevel.A2: 5,
    CEFRLevel.B1: 4,
    CEFRLevel.B2: 3,
    CEFRLevel.C1: 2,
}

EXAMPLE_WORD_RANGES = {
    CEFRLevel.A1: (5, 10),
    CEFRLevel.A2: (8, 15),
    CEFRLevel.B1: (10, 18),
    CEFRLevel.B2: (12, 22),
    CEFRLevel.C1: (15, 25),
}

READING_WORD_RANGES = {
    CEFRLevel.A1: (80, 200),
    CEFRLevel.A2: (120, 250),
    CEFRLevel.B1: (150, 350),
    CEFRLevel.B2: (200, 400),
    CEFRLevel.C1: (250, 450),
}

DIALOGUE_LINE_RANGES = {
    CEFRLevel.A1: (3, 8),
    CEFRLevel.A2: (5, 12),
    CEFRLevel.B1: (8, 15),
    CEFRLevel.B2: (10, 20),
    CEFRLevel.C1: (12, 25),
}

GAP_LINE_RANGES = {
    CEFRLevel.A1: (3, 12),
    CEFRLevel.A2: (5, 18),
    CEFRLevel.B1: (7, 22),
    CEFRLevel.B2: (8, 25),
    CEFRLevel.C1: (10, 30),
}

EXPECTED_COMPLEXITY = {
    CEFRLevel.A1: ("simple",),
    CEFRLevel.A2: ("simple",),
    CEFRLevel.B1: ("simple", "intermediate"),
    CEFRLevel.B2: ("intermediate", "advanced"),
    CEFRLevel.C1: ("advanced", "intermediate"),
}

CONTENT_ASSUMPTION_PATTERNS = [
    (re.compile(r"what happened", re.I), "References specific events"),
    (re.compile(r"in the (text|story|article|passage|reading)", re.I), "References the text directly"),
    (re.compile(r"according to (the )?(text|story|article|author)", re.I), "References the text/author"),
    (re.compile(r"the author (said|wrote|mentioned|stated|explained)", re.I), "References author statements"),
    (re.compile(r"do you remember", re.I), "Assumes prior knowledge of content"),
    (re.compile(r"what did .+ do", re.I), "References specific actions"),
    (re.compile(r"why did .+ happen", re.I), "References specific events"),
    (re.compile(r"when did", re.I), "References specific timing"),
    (re.compile(r"who (was|were|did)", re.I), "References specific people"),
    (re.compile(r"which (person|character|event)", re.I), "References specific content elements"),
    (re.compile(r"the (story|text|article|passage) (says|mentions|describes|tells)", re.I), "References text content"),
    (re.compile(r"in this (story|text|article)", re.I), "References the text"),
    (re.compile(r"from the (story|text|article)", re.I), "References the text"),
]

ADVANCED_PATTERNS = [
    re.compile(p, re.I)
    for p in (
        r"hypothetically", r"in what ways", r"to what extent", r"how might",
        r"what factors", r"analy[sz]e", r"evaluate", r"compare and contrast",
        r"what implications", r"how would you assess",
    )
]

INTERMEDIATE_PATTERNS = [
    re.compile(p, re.I)
    for p in (
        r"why do you think", r"what would", r"how could", r"in your opinion",
        r"do you believe", r"what are the (advantages|disadvantages)",
        r"how does .+ affect",
    )
]

PERSONAL_PATTERNS = [
    re.compile(p, re.I)
    for p in (
        r"have you( ever)?", r"do you (think|believe|feel)", r"what (is|are) your",
        r"in your (opinion|experience)", r"how do you",
    )
]

YES_NO_PATTERNS = [
    re.compile(p, re.I)
    for p in (
        r"^do you", r"^have you", r"^is (it|there)", r"^are (you|there)",
        r"^can you", r"^would you",
    )
]

VERY_SIMPLE_WORDS = {
    "you", "your", "have", "do", "what", "how", "is", "are", "the", "a", "an",
    "like", "want", "go", "see", "get",
}

CLAUSE_INDICATORS = re.compile(
    r",|\b(?:and|but|or|because|although|if|when|while|which|that)\b", re.I
)

ANALYTICAL_DISCUSSION = re.compile(
    r"why do you think|what factors|how might|to what extent|in what ways", re.I
)
COMPLEX_DISCUSSION = re.compile(r"hypothetically|analy[sz]e|evaluate|implications", re.I)

GENERIC_EXAMPLE_PATTERNS = [
    re.compile(r"^(I|You|We|They|He|She)\s+(am|is|are|was|were|have|has|had)\s+", re.I),
    re.compile(r"\b(very|really|so|quite)\s+\w+\b", re.I),
]

BEGINNER_COMPLEX_WORDS = (
    "sophisticated", "comprehensive", "multifaceted", "nuanced", "intricate",
    "elaborate", "substantial", "considerable", "significant", "fundamental",
    "nevertheless", "furthermore", "consequently", "subsequently", "whereby",
)

PRESENT_PERFECT = re.compile(
    r"\b(have|has)\s+\w+ed\b|\b(have|has)\s+(been|gone|done|seen|made)\b", re.I
)
PASSIVE_VOICE = re.compile(r"\b(is|are|was|were|been)\s+\w+ed\b", re.I)
RELATIVE_CLAUSE = re.compile(r"\b(which|that|who|whom|whose)\b", re.I)
CONDITIONAL = re.compile(r"\b(if|unless|provided|assuming)\b.*\b(would|could|might)\b", re.I)
PERFECT_TENSE = re.compile(r"\b(have|has|had)\s+(been|gone|done|seen|made)\b", re.I)

FUNCTION_WORDS = {
    "a", "an", "the",
    "in", "on", "at", "to", "of", "for", "with", "by", "from", "about", "into",
    "over", "under", "between", "through", "during",
    "i", "you", "he", "she", "it", "we", "they", "me", "him", "her", "us",
    "them", "my", "your", "his", "its", "our", "their",
}


def split_instruction(items: list[str]) -> tuple[str | None, list[str]]:
    """Separate a leading instruction line (ending with ':') from the questions."""
    if items and items[0].rstrip().endswith(":") and not items[0].rstrip().endswith("?"):
        return items[0], list(items[1:])
    return None, list(items)


def count_words(text: str) -> int:
    return len(text.split())


def context_keywords(context: SharedContext, exclude: str | None = None) -> list[str]:
    """
    Collect the words that mark a sentence as relevant to the lesson topic.

    Args:
        context: Shared lesson context
        exclude: A vocabulary word to leave out (the word being illustrated)

    Returns:
        Lower-cased keywords from themes, vocabulary and summary
    """
    keywords: list[str] = []

    for theme in context.main_themes:
        for word in theme.lower().split():
            if len(word) > 3 and word not in THEME_STOP_WORDS:
                keywords.append(word)

    excluded = exclude.lower() if exclude else None
    for word in context.key_vocabulary:
        word = word.lower()
        if word != excluded and len(word) > 3:
            keywords.append(word)

    for word in context.content_summary.lower().split():
        word = re.sub(r"[^\w'-]", "", word)
        if len(word) > 4 and word not in SUMMARY_STOP_WORDS:
            keywords.append(word)

    return keywords


def is_relevant(text: str, keywords: list[str]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


class Validator:
    """Base validator. Subclasses add findings in `check` and return a bonus."""

    issue_penalty = 20

    def validate(self, payload, context: SharedContext) -> ValidationResult:
        result = ValidationResult()
        bonus = self.check(payload, context, result)
        score = (
            100
            - self.issue_penalty * len(result.issues)
            - WARNING_PENALTY * len(result.warnings)
            + bonus
        )
        result.score = max(0, min(100, score))
        return result

    def check(self, payload, context: SharedContext, result: ValidationResult) -> int:
        raise NotImplementedError


class WarmupValidator(Validator):
    """Checks warm-up questions activate prior knowledge without assuming the text."""

    REQUIRED_QUESTION_COUNT = 3
    MIN_QUESTION_LENGTH = 10
    MAX_QUESTION_LENGTH = 200

    def check(self, payload, context, result):
        _, questions = split_instruction(payload)
        level = context.difficulty_level

        self._check_count(questions, result)
        for index, question in enumerate(questions, start=1):
            self._check_format(index, question, result)
            self._check_assumptions(index, question, result)
        self._check_level(questions, level, result)
        self._check_pedagogy(questions, result)

        return 10 if len(questions) == self.REQUIRED_QUESTION_COUNT else 0

    def _check_count(self, questions, result):
        expected = self.REQUIRED_QUESTION_COUNT
        if len(questions) < expected:
            result.add_issue(f"Insufficient questions: expected {expected}, got {len(questions)}")
        elif len(questions) > expected:
            result.add_issue(f"Too many questions: expected {expected}, got {len(questions)}")

    def _check_format(self, index, question, result):
        if len(question) < self.MIN_QUESTION_LENGTH:
            result.add_issue(f"Question {index} is too short ({len(question)} characters)")
        if len(question) > self.MAX_QUESTION_LENGTH:
            result.add_warning(f"Question {index} is very long ({len(question)} characters)")
        if not question.endswith("?"):
            result.add_issue(f"Question {index} doesn't end with a question mark")
        if not question.lower().startswith(tuple(f"{w} " for w in QUESTION_WORDS)):
            result.add_warning(f"Question {index} doesn't start with a typical question word")

    def _check_assumptions(self, index, question, result):
        for pattern, message in CONTENT_ASSUMPTION_PATTERNS:
            if pattern.search(question):
                result.add_issue(f"Question {index} assumes content knowledge: {message}")
                break

        names = []
        for word in question.split():
            word = word.strip(".,!?;:\"'()")
            if re.fullmatch(r"[A-Z][a-z]+", word) and word not in CAPITALIZED_ALLOWED:
                names.append(word)
        if names:
            result.add_warning(f"Question {index} may contain proper names: {', '.join(names)}")

        if re.search(r"\b(19|20)\d{2}\b", question):
            result.add_warning(f"Question {index} contains a specific year")

    def _check_level(self, questions, level, result):
        complexity = assess_question_complexity(questions)
        expected = EXPECTED_COMPLEXITY[level]
        if complexity not in expected:
            result.add_issue(
                f"Questions are {complexity} but {level.value} requires {' or '.join(expected)}"
            )

        for index, question in enumerate(questions, start=1):
            vocabulary = assess_vocabulary_level(question)
            if vocabulary == "too_simple" and level.is_advanced:
                result.add_warning(
                    f"Question {index} uses very simple vocabulary for {level.value} level"
                )
            if vocabulary == "too_complex" and level.is_beginner:
                result.add_warning(
                    f"Question {index} may use vocabulary too advanced for {level.value} level"
                )

            structure = assess_sentence_structure(question)
            if structure == "complex" and level.is_beginner:
                result.add_warning(
                    f"Question {index} has complex sentence structure for {level.value} level"
                )
            if structure == "simple" and level == CEFRLevel.C1:
                result.add_warning(f"Question {index} has simple structure for {level.value} level")

    def _check_pedagogy(self, questions, result):
        if not questions:
            return
        if not any(p.search(q) for q in questions for p in PERSONAL_PATTERNS):
            result.add_warning("No questions focus on personal experience")

        starters = {q.strip().split(" ")[0].lower() for q in questions if q.strip()}
        if len(starters) == 1 and len(questions) > 1:
            result.add_warning("All questions start with the same word")

        yes_no = sum(1 for q in questions if any(p.search(q) for p in YES_NO_PATTERNS))
        if yes_no == len(questions):
            result.add_warning("All questions appear to be yes/no questions")


def assess_question_complexity(questions: list[str]) -> str:
    text = " ".join(questions).lower()
    advanced = sum(1 for p in ADVANCED_PATTERNS if p.search(text))
    intermediate = sum(1 for p in INTERMEDIATE_PATTERNS if p.search(text))
    if advanced >= 2:
        return "advanced"
    if advanced >= 1 or intermediate >= 2:
        return "intermediate"
    return "simple"


def assess_vocabulary_level(question: str) -> str:
    words = [re.sub(r"[^\w'-]", "", w) for w in question.lower().split()]
    if not words:
        return "appropriate"
    simple_ratio = sum(1 for w in words if w in VERY_SIMPLE_WORDS) / len(words)
    complex_ratio = sum(
        1 for w in words if len(w) > 10 or re.search(r"tion|sion|ment|ness|ity", w)
    ) / len(words)
    if simple_ratio > 0.8:
        return "too_simple"
    if complex_ratio > 0.3:
        return "too_complex"
    return "appropriate"


def assess_sentence_structure(question: str) -> str:
    clauses = len(CLAUSE_INDICATORS.findall(question)) + 1
    words = count_words(question)
    if clauses >= 3 or words > 20:
        return "complex"
    if clauses == 2 or words > 12:
        return "moderate"
    return "simple"


class VocabularyValidator(Validator):
    """Checks vocabulary examples use the word, fit the level and relate to the topic."""

    issue_penalty = 15

    MIN_ENTRIES = 6

    def check(self, payload: list[VocabularyEntry], context, result):
        entries = [e for e in payload if e.word != INSTRUCTION_MARKER]
        if not entries:
            result.add_issue("No vocabulary entries generated")
            return 0
        if len(entries) < self.MIN_ENTRIES:
            result.add_issue(
                f"Insufficient vocabulary entries: expected at least {self.MIN_ENTRIES}, got {len(entries)}"
            )

        level = context.difficulty_level
        minimum_examples = EXAMPLE_COUNTS[level]
        low, high = EXAMPLE_WORD_RANGES[level]
        all_relevant = True

        for entry in entries:
            word = entry.word
            if not entry.meaning.strip():
                result.add_issue(f'"{word}" has no definition')
            if len(entry.examples) < minimum_examples:
                result.add_issue(
                    f'"{word}" has {len(entry.examples)} examples (minimum {minimum_examples})'
                )

            keywords = context_keywords(context, exclude=word)
            relevant = 0
            for index, example in enumerate(entry.examples, start=1):
                label = f'"{word}" example {index}'
                if word.lower() not in example.lower():
                    result.add_issue(f"{label} does not contain the word")

                words = count_words(example)
                if words < low:
                    result.add_issue(
                        f"{label} too short: {words} words (minimum {low} for {level.value})"
                    )
                elif words > high:
                    result.add_warning(
                        f"{label} may be too long: {words} words (recommended max {high} for {level.value})"
                    )

                if not re.match(r"[A-Z]", example):
                    result.add_issue(f"{label} should start with a capital letter")
                if not re.search(r"[.!?]$", example):
                    result.add_issue(f"{label} should end with punctuation")

                example_relevant = is_relevant(example, keywords)
                if example_relevant:
                    relevant += 1
                elif level.is_advanced and any(
                    p.search(example) for p in GENERIC_EXAMPLE_PATTERNS
                ):
                    result.add_warning(f"{label} may be too generic for {level.value} level")

            threshold = math.ceil(len(entry.examples) * 0.6)
            if context.main_themes and relevant < threshold:
                result.add_issue(
                    f'Only {relevant}/{len(entry.examples)} examples for "{word}" are '
                    f"contextually relevant (need at least {threshold})"
                )
            if relevant < len(entry.examples):
                all_relevant = False

            starts = {" ".join(ex.lower().split()[:2]) for ex in entry.examples}
            if entry.examples and len(starts) < len(entry.examples) * 0.7:
                result.add_warning(
                    f'Examples for "{word}" may lack structural diversity '
                    f"({len(starts)} unique starts out of {len(entry.examples)})"
                )

        return 10 if all_relevant else 0


def reading_passage(payload: str) -> str:
    """Strip the instruction prefix from a reading section."""
    instruction, _, passage = payload.partition("\n\n")
    if passage and instruction.rstrip().endswith(":"):
        return passage.strip()
    return payload.strip()


class ReadingValidator(Validator):
    def check(self, payload: str, context, result):
        passage = reading_passage(payload)
        if not passage:
            result.add_issue("Reading passage is empty")
            return 0

        level = context.difficulty_level
        low, high = READING_WORD_RANGES[level]
        words = count_words(passage)
        if words < low:
            result.add_issue(f"Reading passage too short: {words} words (minimum {low} for {level.value})")
        elif words > high:
            result.add_warning(f"Reading passage may be too long: {words} words (recommended max {high})")

        requested = context.key_vocabulary[:5]
        lowered = passage.lower()
        used = [w for w in requested if w.lower() in lowered]
        if requested and len(used) < min(2, len(requested)):
            result.add_warning(
                f"Reading passage uses only {len(used)} of the lesson vocabulary words"
            )
        return 0


class QuestionListValidator(Validator):
    """Shared checks for comprehension and wrap-up question lists."""

    def __init__(self, section_name: str, expected_count: int):
        self.section_name = section_name
        self.expected_count = expected_count

    def check(self, payload, context, result):
        _, questions = split_instruction(payload)
        if len(questions) != self.expected_count:
            result.add_issue(
                f"Expected {self.expected_count} {self.section_name} questions, got {len(questions)}"
            )

        for index, question in enumerate(questions, start=1):
            if not question.endswith("?"):
                result.add_issue(f"Question {index} doesn't end with a question mark")
            if len(question) <= 10:
                result.add_issue(f"Question {index} is too short")

        _check_relevance(questions, context, result)
        return 10 if len(questions) == self.expected_count else 0


def _check_relevance(questions: list[str], context: SharedContext, result: ValidationResult):
    keywords = context_keywords(context)
    if not questions or not keywords:
        return
    relevant = sum(1 for q in questions if is_relevant(q, keywords))
    if relevant < len(questions) * 0.6:
        result.add_warning(
            f"Only {relevant}/{len(questions)} questions relate to the lesson topic"
        )


class DiscussionValidator(Validator):
    REQUIRED_QUESTION_COUNT = 5

    def check(self, payload, context, result):
        _, questions = split_instruction(payload)
        level = context.difficulty_level

        if len(questions) != self.REQUIRED_QUESTION_COUNT:
            result.add_issue(
                f"Expected {self.REQUIRED_QUESTION_COUNT} discussion questions, got {len(questions)}"
            )

        for index, question in enumerate(questions, start=1):
            if not question.endswith("?"):
                result.add_issue(f"Question {index} doesn't end with a question mark")
            if len(question) < 10:
                result.add_issue(f"Question {index} is too short")

        text = " ".join(questions)
        if level.is_advanced and questions and not ANALYTICAL_DISCUSSION.search(text):
            result.add_warning(f"Questions lack analytical depth expected at {level.value}")
        if level.is_beginner and COMPLEX_DISCUSSION.search(text):
            result.add_warning(f"Questions may be too complex for {level.value}")

        starters = {q.split()[0].lower() for q in questions if q.split()}
        if questions and len(starters) < 3:
            result.add_warning(f"Low question variety ({len(starters)} distinct starters)")

        _check_relevance(questions, context, result)
        return 10 if len(questions) == self.REQUIRED_QUESTION_COUNT else 0


class GrammarValidator(Validator):
    issue_penalty = 15

    MIN_EXAMPLES = 3
    MIN_EXERCISES = 3
    MIN_EXPLANATION_LENGTH = 10

    def check(self, payload: GrammarPayload, context, result):
        if not payload.focus.strip():
            result.add_issue("Missing grammar focus")
        if len(payload.explanation.form) < self.MIN_EXPLANATION_LENGTH:
            result.add_issue("Missing or insufficient form explanation")
        if len(payload.explanation.usage) < self.MIN_EXPLANATION_LENGTH:
            result.add_issue("Missing or insufficient usage explanation")

        if len(payload.examples) < self.MIN_EXAMPLES:
            result.add_issue(
                f"Insufficient examples: expected at least {self.MIN_EXAMPLES}, got {len(payload.examples)}"
            )
        for index, example in enumerate(payload.examples, start=1):
            if not re.match(r"[A-Z]", example) or not re.search(r"[.!?]$", example):
                result.add_warning(f"Example {index} is not a complete sentence")

        if len(payload.exercises) < self.MIN_EXERCISES:
            result.add_issue(
                f"Insufficient exercises: expected at least {self.MIN_EXERCISES}, got {len(payload.exercises)}"
            )
        for index, exercise in enumerate(payload.exercises, start=1):
            if len(exercise.prompt) < 5:
                result.add_issue(f"Exercise {index} has an invalid prompt")
            if not exercise.answer.strip():
                result.add_issue(f"Exercise {index} has no answer")

        theme_words = [
            word
            for theme in context.main_themes
            for word in theme.lower().split()
            if len(word) > 3 and word not in THEME_STOP_WORDS
        ]
        if theme_words and payload.examples and not any(
            is_relevant(example, theme_words) for example in payload.examples
        ):
            result.add_warning("No grammar example relates to the lesson themes")

        return 10 if len(payload.exercises) >= self.MIN_EXERCISES else 0


class PronunciationValidator(Validator):
    issue_penalty = 15

    MIN_WORDS = 5
    MIN_TWISTERS = 2

    def check(self, payload: PronunciationPayload, context, result):
        if len(payload.words) < self.MIN_WORDS:
            result.add_issue(
                f"Insufficient pronunciation words: expected {self.MIN_WORDS}, got {len(payload.words)}"
            )
        if len(payload.tongue_twisters) < self.MIN_TWISTERS:
            result.add_issue(
                f"Insufficient tongue twisters: expected {self.MIN_TWISTERS}, got {len(payload.tongue_twisters)}"
            )

        for index, word in enumerate(payload.words, start=1):
            if len(word.word) < 2:
                result.add_issue(f"Word {index} is invalid")
            if len(word.ipa) < 2:
                result.add_issue(f"Word {index} ({word.word}) has an invalid IPA transcription")
            if not word.tips:
                result.add_warning(f"Word {index} ({word.word}) has no pronunciation tips")
            if len(word.practice_sentence) < 10:
                result.add_warning(f"Word {index} ({word.word}) has a short practice sentence")

        for index, twister in enumerate(payload.tongue_twisters, start=1):
            if len(twister.text) < 15:
                result.add_issue(f"Tongue twister {index} is too short")
            if not twister.target_sounds:
                result.add_warning(f"Tongue twister {index} has no target sounds")

        bonus = 0
        if len(payload.words) >= self.MIN_WORDS:
            bonus += 5
        if len(payload.tongue_twisters) >= self.MIN_TWISTERS:
            bonus += 5
        return bonus


class DialogueValidator(Validator):
    """Checks dialogue length, speaker alternation and level-appropriate language."""

    MIN_LINES = 12
    MIN_GAPS = 3

    def __init__(self, fill_gap: bool = False):
        self.fill_gap = fill_gap

    def check(self, payload: DialoguePayload, context, result):
        lines = payload.dialogue
        level = context.difficulty_level

        if len(lines) < self.MIN_LINES:
            result.add_issue(
                f"Insufficient dialogue lines: expected at least {self.MIN_LINES}, got {len(lines)}"
            )

        for first, second in zip(lines, lines[1:]):
            if first.character == second.character:
                result.add_issue("Dialogue has consecutive lines from the same speaker")
                break

        if lines and lines[0].character != "Student":
            result.add_issue("Dialogue should start with Student speaking")

        self._check_line_lengths(lines, level, result)
        self._check_language(lines, level, result)

        text = " ".join(line.line.lower() for line in lines)
        used = [w for w in context.key_vocabulary if w.lower() in text]
        required = min(3, len(context.key_vocabulary))
        if len(used) < required:
            result.add_warning(
                f"Dialogue uses {len(used)} lesson vocabulary words (expected at least {required})"
            )

        if self.fill_gap:
            gaps = payload.gap_count
            if gaps < self.MIN_GAPS:
                result.add_issue(
                    f"Fill-in-gap dialogue should have at least {self.MIN_GAPS} gaps, found {gaps}"
                )
            answers = payload.answers or []
            if len(answers) != gaps:
                result.add_issue(f"Found {len(answers)} answers for {gaps} gaps")
            for index, answer in enumerate(answers, start=1):
                if answer.lower() in FUNCTION_WORDS:
                    result.add_issue(f"Gap answer {index} is a function word: {answer}")

        return 10 if len(lines) >= self.MIN_LINES and not result.issues else 0

    def _check_line_lengths(self, lines, level, result):
        if not lines:
            return
        if self.fill_gap:
            low, high = GAP_LINE_RANGES[level]
            outside = sum(1 for l in lines if not low <= count_words(l.line) <= high)
            if outside > len(lines) * 0.3:
                result.add_warning(
                    f"{outside} lines fall outside the {low}-{high} word range for {level.value}"
                )
        else:
            low, _ = DIALOGUE_LINE_RANGES[level]
            short = sum(1 for l in lines if count_words(l.line) < low)
            if short:
                result.add_warning(f"{short} lines are shorter than {low} words for {level.value}")

    def _check_language(self, lines, level, result):
        text = " ".join(line.line for line in lines)
        lowered = text.lower()
        if level.is_beginner:
            found = [w for w in BEGINNER_COMPLEX_WORDS if w in lowered]
            if found:
                result.add_warning(
                    f"Found complex vocabulary inappropriate for {level.value}: {', '.join(found)}"
                )
            if PRESENT_PERFECT.search(text):
                result.add_warning(f"Present perfect tense may be too complex for {level.value} level")
            if PASSIVE_VOICE.search(text):
                result.add_warning(f"Passive voice may be too complex for {level.value} level")
        elif level.is_advanced and len(lines) >= self.MIN_LINES:
            if not (
                RELATIVE_CLAUSE.search(text)
                or CONDITIONAL.search(text)
                or PERFECT_TENSE.search(text)
            ):
                result.add_warning(
                    f"Dialogue lacks complex grammar structures expected for {level.value} level"
                )


VALIDATORS: dict[str, Validator] = {
    "warmup": WarmupValidator(),
    "vocabulary": VocabularyValidator(),
    "reading": ReadingValidator(),
    "comprehension": QuestionListValidator("comprehension", 5),
    "discussion": DiscussionValidator(),
    "grammar": GrammarValidator(),
    "pronunciation": PronunciationValidator(),
    "wrapup": QuestionListValidator("wrap-up", 3),
    "dialogue_practice": DialogueValidator(),
    "dialogue_fill_gap": DialogueValidator(fill_gap=True),
}


def get_validator(section_name: str) -> Validator:
    return VALIDATORS[section_name]
