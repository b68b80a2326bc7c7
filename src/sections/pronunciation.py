"""Pronunciation section: challenging words and tongue twisters."""

import math
import re

from src.logger import get_logger
from src.model_client import GenerationOptions
from src.models import PronunciationPayload, PronunciationWord, TongueTwister
from src.repair import StructuredParseFailure
from src.sections.base import SectionGenerator, lesson_vocabulary, main_theme

logger = get_logger("lessongen.sections")

WORD_COUNT = 5
TWISTER_COUNT = 2

# (pattern, points, sound label). Scored once per occurrence.
CONSONANT_RULES = [
    (r"th", 5, "/θ/ /ð/"),
    (r"ch", 4, "/tʃ/"),
    (r"sh", 4, "/ʃ/"),
    (r"ph", 3, "/f/"),
    (r"gh", 4, "gh"),
    (r"ng", 3, "/ŋ/"),
    (r"wh", 3, "/w/"),
    (r"[^aeiou]r", 4, "/r/"),
]

VOWEL_RULES = [
    (r"ough|augh", 5, "ough"),
    (r"eau", 4, "eau"),
    (r"ieu", 4, "ieu"),
    (r"ou", 3, "/aʊ/"),
    (r"oo", 3, "/uː/"),
    (r"ea", 3, "/iː/"),
    (r"au|aw", 3, "/ɔː/"),
    (r"oi|oy", 3, "/ɔɪ/"),
    (r"ei|ey", 2, "/eɪ/"),
    (r"ie", 2, "ie"),
]

# Scored once per word.
ENDING_RULES = [
    (r"tion$", 3, "/ʃən/"),
    (r"sion$", 3, "/ʒən/"),
    (r"ture$", 3, "/tʃər/"),
    (r"sure$", 3, "/ʒər/"),
    (r"cious$", 2, "/ʃəs/"),
    (r"tious$", 2, "/ʃəs/"),
]

SILENT_RULES = [
    (r"^kn", 5, "silent k"),
    (r"^gn", 5, "silent g"),
    (r"^wr", 5, "silent w"),
    (r"^ps", 5, "silent p"),
    (r"mb$", 4, "silent b"),
    (r"bt$", 4, "silent b"),
    (r"lm$", 4, "silent l"),
    (r"lk$", 4, "silent l"),
    (r"[aeiou]gh", 3, "silent gh"),
]

CLUSTER_RULES = [
    (r"[^aeiou]{3,}", 3, "consonant cluster"),
    (r"[aeiou]{3,}", 2, "vowel sequence"),
]

STRESS_PATTERN = r"(ate|tion|ic)$"


def score_word(word: str) -> tuple[int, set[str]]:
    """
    Score how challenging a word is to pronounce.

    Returns:
        Tuple of (score, set of challenging sound labels found)
    """
    word = word.lower()
    score = min(len(word), 12)
    sounds: set[str] = set()

    for rules in (CONSONANT_RULES, VOWEL_RULES, CLUSTER_RULES):
        for pattern, points, sound in rules:
            matches = re.findall(pattern, word)
            if matches:
                score += points * len(matches)
                sounds.add(sound)

    for rules in (ENDING_RULES, SILENT_RULES):
        for pattern, points, sound in rules:
            if re.search(pattern, word):
                score += points
                sounds.add(sound)

    if len(word) > 6 and re.search(STRESS_PATTERN, word):
        score += 2
        sounds.add("word stress")

    return score, sounds


def select_challenging_words(
    candidates: list[str], count: int = WORD_COUNT, extra: list[str] | None = None
) -> list[str]:
    """
    Pick the words with the most varied pronunciation challenges.

    A first pass prefers words that add a new challenging sound (always
    taking the top half by score), a second pass fills by score, and any
    remaining slots come from `extra`.
    """
    scored = sorted(
        ((word, *score_word(word)) for word in candidates),
        key=lambda item: item[1],
        reverse=True,
    )
    selected: list[str] = []
    covered: set[str] = set()
    half = math.ceil(count / 2)

    for word, _, sounds in scored:
        if len(selected) >= count:
            break
        if sounds - covered or len(selected) < half:
            selected.append(word)
            covered |= sounds

    for word, _, _ in scored:
        if len(selected) >= count:
            break
        if word not in selected:
            selected.append(word)

    for word in extra or []:
        if len(selected) >= count:
            break
        if word not in selected:
            selected.append(word)

    return selected


def _labelled_fields(text: str) -> dict[str, str]:
    fields = {}
    for line in text.replace("*", "").splitlines():
        match = re.match(r"^\s*([A-Z][A-Z_]*\d*)\s*:\s*(.*)$", line)
        if match:
            fields[match.group(1)] = match.group(2).strip()
    return fields


def _split_sounds(value: str) -> list[str]:
    return [s.strip() for s in value.split(",") if s.strip()]


def parse_pronunciation_word(text: str, expected_word: str) -> PronunciationWord:
    """
    Parse a WORD/IPA/DIFFICULT_SOUNDS/TIP_n/PRACTICE response.

    Raises:
        StructuredParseFailure: If any required field is missing
    """
    fields = _labelled_fields(text)
    tips = [
        fields[key]
        for key in sorted(
            (k for k in fields if re.fullmatch(r"TIP_\d+", k)),
            key=lambda k: int(k.split("_")[1]),
        )
        if fields[key]
    ]
    word = fields.get("WORD", "")
    ipa = fields.get("IPA", "")
    practice = fields.get("PRACTICE", "")

    missing = [
        name
        for name, value in (("WORD", word), ("IPA", ipa), ("TIP", tips), ("PRACTICE", practice))
        if not value
    ]
    if missing:
        raise StructuredParseFailure(
            f"Pronunciation response for '{expected_word}' is missing: {', '.join(missing)}"
        )

    return PronunciationWord(
        word=word,
        ipa=ipa,
        difficult_sounds=_split_sounds(fields.get("DIFFICULT_SOUNDS", "")),
        tips=tips,
        practice_sentence=practice,
    )


def parse_tongue_twisters(text: str) -> list[TongueTwister]:
    fields = _labelled_fields(text)
    numbers = sorted(
        int(key.split("_")[1]) for key in fields if re.fullmatch(r"TWISTER_\d+", key)
    )
    twisters = []
    for n in numbers:
        body = fields[f"TWISTER_{n}"]
        if not body:
            continue
        twisters.append(
            TongueTwister(
                text=body,
                target_sounds=_split_sounds(fields.get(f"SOUNDS_{n}", "")),
                difficulty=fields.get(f"DIFFICULTY_{n}") or "moderate",
            )
        )
    return twisters


class PronunciationGenerator(SectionGenerator):
    name = "pronunciation"
    instruction = "Practice pronunciation with your tutor. Focus on the difficult sounds and try the tongue twisters:"

    async def generate(self, client, context, prior_sections):
        candidates = [
            w.lower()
            for w in lesson_vocabulary(context, prior_sections, limit=12)
            if w.isalpha()
        ]
        extra = [w.lower() for w in context.key_vocabulary if w.isalpha()]
        words = select_challenging_words(candidates, WORD_COUNT, extra=extra)
        logger.info(f"  Pronunciation words: {', '.join(words)}")

        entries = []
        for i, word in enumerate(words):
            logger.info(f"  [{i+1}/{len(words)}] Pronunciation: {word}")
            response = await client.complete(
                self._word_prompt(word, context), GenerationOptions(max_output_length=400)
            )
            entries.append(parse_pronunciation_word(response, word))

        response = await client.complete(
            self._twister_prompt(context), GenerationOptions(max_output_length=400)
        )
        twisters = parse_tongue_twisters(response)

        return PronunciationPayload(
            instruction=self.instruction, words=entries, tongue_twisters=twisters
        )

    def _word_prompt(self, word, context) -> str:
        theme = main_theme(context, default="general topics")
        related = ", ".join(w for w in context.key_vocabulary if w.lower() != word)[:80]
        return f"""Create pronunciation practice for the word "{word}" for {context.difficulty_level.value} level students.

CONTEXT: {context.content_summary[:200]}
TOPIC: {theme}
RELATED VOCABULARY: {related}

Requirements:
1. Accurate IPA transcription
2. 2-3 sounds in the word that are difficult for learners
3. Practical tips about mouth and tongue position
4. A practice sentence using "{word}" naturally and relating to {theme}

Answer in exactly this format:
WORD: {word}
IPA: [IPA transcription]
DIFFICULT_SOUNDS: [sounds separated by commas, e.g. /θ/, /r/]
TIP_1: [tip for the first difficult sound]
TIP_2: [tip for the second difficult sound]
PRACTICE: [practice sentence]"""

    def _twister_prompt(self, context) -> str:
        themes = " and ".join(context.main_themes[:2]) or "everyday life"
        return f"""Create {TWISTER_COUNT} tongue twisters for {context.difficulty_level.value} level students about "{themes}".

Requirements:
- Try to use these words: {', '.join(context.key_vocabulary[:5])}
- Focus on challenging sounds (th, r, l, s, sh, ch)
- 6-12 words each

Answer in exactly this format:
TWISTER_1: [tongue twister]
SOUNDS_1: [target sounds separated by commas]
DIFFICULTY_1: moderate

TWISTER_2: [tongue twister]
SOUNDS_2: [target sounds separated by commas]
DIFFICULTY_2: moderate"""
