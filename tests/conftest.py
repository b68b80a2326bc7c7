"""
Pytest Configuration and Fixtures.

Provides a scripted model client that answers prompts by keyword, so the
pipeline can run end to end without network access.
"""
import json
import re
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.model_client import estimate_tokens  # noqa: E402
from src.models import CEFRLevel, SharedContext  # noqa: E402


READING_SENTENCES = [
    "Renewable energy comes from sources that nature refills, such as sunlight, wind and moving water.",
    "In the last ten years, solar panels have become much cheaper for families and businesses.",
    "Many homes now produce their own electricity on the roof and sell extra power to the grid.",
    "Large wind turbines stand in fields and at sea, where the wind is strong and steady.",
    "Together, these technologies help to cut the emissions that cause climate change.",
    "However, the sun does not shine at night and the wind does not always blow.",
    "This is why storage is one of the biggest challenges for clean energy today.",
    "Engineers are building huge batteries that keep extra electricity until people need it.",
    "Some cities also pump water up a hill and let it flow down again to make power.",
    "Governments play an important role because they decide how much money goes into the grid.",
    "Experts say that a modern grid must move power from windy and sunny places to busy cities.",
    "The change will take time, but most people agree that renewable energy is the future.",
]

READING_PASSAGE = " ".join(READING_SENTENCES)

SOURCE_TEXT = " ".join(
    READING_SENTENCES
    + [
        "Countries around the world are setting targets to produce most of their electricity from clean sources by the middle of this century.",
        "Denmark already gets about half of its power from wind, and Spain has built some of the largest solar farms in Europe.",
        "These projects create new jobs in construction, engineering and maintenance.",
        "Critics point out that wind farms can change the landscape and that some minerals used in batteries are difficult to mine responsibly.",
        "Supporters reply that the costs of doing nothing are much higher, because extreme weather is already damaging homes, farms and roads.",
        "Researchers are also testing new ideas, such as floating solar panels on lakes and green hydrogen made with surplus electricity.",
        "Ordinary people can help as well, for example by using less energy at home, choosing efficient appliances and supporting local community projects.",
    ]
)

VOCABULARY_WORDS = [
    "renewable",
    "solar",
    "turbines",
    "electricity",
    "emissions",
    "storage",
    "batteries",
    "grid",
]

SUMMARY = (
    "Renewable energy from solar panels and wind turbines is growing quickly. "
    "It lowers emissions but needs better storage and investment in the grid."
)

DIALOGUE_LINES = [
    "Student: I have been reading about solar panels and wind turbines this week.",
    "Tutor: That is a great topic because renewable energy is changing how we live.",
    "Student: I think solar power is useful, but I worry about the cost.",
    "Tutor: Prices have dropped a lot, so many families can now afford panels.",
    "Student: What happens to the electricity when the sun goes down at night?",
    "Tutor: Good question, that is why batteries and storage are so important now.",
    "Student: So the grid needs to store energy for cloudy days and evenings?",
    "Tutor: Exactly, and engineers are finding new ways to deal with that problem.",
    "Student: Do wind turbines also help to cut emissions in big cities?",
    "Tutor: Yes, they produce clean electricity without burning any coal or gas.",
    "Student: In my opinion, governments should invest more money in clean energy.",
    "Tutor: Many experts agree, and some countries are already doing that quite well.",
    "Student: I would like to find out more about energy in my country.",
    "Tutor: That sounds like a good plan for our next lesson together.",
]

DIALOGUE = "\n".join(DIALOGUE_LINES)

GAPPED_DIALOGUE = (
    DIALOGUE.replace("about solar panels", "about _____ panels", 1)
    .replace("about the cost.", "about the _____.", 1)
    .replace("why batteries and", "why _____ and", 1)
    .replace("to cut emissions", "to cut _____", 1)
    .replace("should invest more", "should _____ more", 1)
)

GAP_ANSWERS = "solar\ncost\nbatteries\nemissions\ninvest"

GRAMMAR_JSON = json.dumps(
    {
        "grammarPoint": "Present perfect",
        "explanation": {
            "form": "Use have or has with the past participle of the verb.",
            "usage": "Use it for past actions that are still important now.",
            "levelNotes": "B1 learners often confuse it with the past simple.",
        },
        "examples": [
            "Many countries have built large solar farms.",
            "Energy prices have fallen in recent years.",
            "Our town has installed new wind turbines.",
        ],
        "exercises": [
            {"prompt": "The city ___ (build) a new wind farm.", "answer": "has built", "explanation": "Singular subject."},
            {"prompt": "We ___ (save) energy this month.", "answer": "have saved", "explanation": "Plural subject."},
            {"prompt": "She ___ (never / see) a solar farm.", "answer": "has never seen", "explanation": "Life experience."},
        ],
    }
)

TWISTERS = """TWISTER_1: Seven solar sellers sell shiny solar panels slowly.
SOUNDS_1: /s/, /ʃ/
DIFFICULTY_1: moderate

TWISTER_2: Three thin turbines turn through thick thunderstorms.
SOUNDS_2: /θ/, /t/
DIFFICULTY_2: challenging"""

WARMUP_QUESTIONS = """What do you think about renewable energy in your country?
Have you ever used solar power at home?
Why do you think many people choose clean energy today?"""

COMPREHENSION_QUESTIONS = """1. What are the two main sources of renewable energy in the text?
2. Why have solar panels become cheaper in recent years?
3. What problem does energy storage help to solve?
4. How do wind turbines reduce emissions?
5. What do governments need to invest in?"""

DISCUSSION_QUESTIONS = """What is your opinion about renewable energy in your country?
Why do you think some people still prefer coal and gas?
How would your daily life change if your home used only solar power?
What are the advantages and disadvantages of wind turbines?
Should governments spend more money on clean electricity?"""

WRAPUP_QUESTIONS = """What is the most useful thing you learned about renewable energy today?
Which new words about electricity will you use this week?
How could you save energy at home after this lesson?"""

FOLLOW_UP_QUESTIONS = """How would you explain energy storage to a friend?
What else would you like to know about solar power?
Why is clean electricity important for your city?"""

EXAMPLE_TEMPLATES = [
    "Many families now discuss {word} when they plan their home energy budget.",
    "Our town council talked about {word} during a meeting on energy policy.",
    "Students learn that {word} matters for the future of clean energy.",
    "The new report links {word} to lower energy costs for local businesses.",
]


def vocabulary_examples(prompt: str) -> str:
    word = re.search(r'using "([^"]+)"', prompt).group(1)
    count = int(re.search(r"Create (\d+) sentences", prompt).group(1))
    return "\n".join(t.format(word=word) for t in EXAMPLE_TEMPLATES[:count])


def pronunciation_word(prompt: str) -> str:
    word = re.search(r'for the word "([^"]+)"', prompt).group(1)
    return (
        f"WORD: {word}\n"
        f"IPA: /ˈ{word}/\n"
        "DIFFICULT_SOUNDS: /r/, /θ/\n"
        "TIP_1: Keep the tip of your tongue behind your top teeth.\n"
        "TIP_2: Round your lips slightly for the vowel.\n"
        f"PRACTICE: We talked about {word} and renewable energy in class today."
    )


def default_rules() -> list[tuple[str, object]]:
    """Keyword rules checked in order against each prompt."""
    return [
        ("Create a short, engaging title", "Powering Tomorrow with Renewable Energy"),
        ("List 8-12 important vocabulary words", "\n".join(VOCABULARY_WORDS)),
        ("Identify 3-5 main themes", "renewable energy\nclimate change\nclean electricity"),
        ("Summarize this text", SUMMARY),
        ("warm-up questions", WARMUP_QUESTIONS),
        ('Define "', "Something connected with how we produce or use energy."),
        ("sentences using", vocabulary_examples),
        ("Rewrite this text for", READING_PASSAGE),
        ("comprehension questions", COMPREHENSION_QUESTIONS),
        ("follow-up discussion questions", FOLLOW_UP_QUESTIONS),
        ("discussion questions for", DISCUSSION_QUESTIONS),
        ("wrap-up questions", WRAPUP_QUESTIONS),
        ("Identify ONE grammar point", GRAMMAR_JSON),
        ("Create pronunciation practice for the word", pronunciation_word),
        ("tongue twisters for", TWISTERS),
        ("gaps marked", GAP_ANSWERS),
        ("Replace 1-2 key words", GAPPED_DIALOGUE),
        ("Create a natural conversation", DIALOGUE),
    ]


class Scripted:
    """Returns the given responses one per call, repeating the last one."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    def __call__(self, prompt):
        response = self.responses[min(self.calls, len(self.responses) - 1)]
        self.calls += 1
        return response


class FakeModelClient:
    """Stands in for GenerativeModelClient, answering prompts by keyword."""

    def __init__(self, rules=None):
        self.rules = list(rules) if rules is not None else default_rules()
        self.prompts: list[str] = []
        self.total_tokens = 0

    def override(self, keyword: str, response) -> None:
        """Answer prompts containing `keyword` with `response`, ahead of other rules."""
        self.rules.insert(0, (keyword, response))

    async def complete(self, prompt, options=None):
        self.prompts.append(prompt)
        for keyword, response in self.rules:
            if keyword not in prompt:
                continue
            if callable(response):
                response = response(prompt)
            if isinstance(response, Exception):
                raise response
            self.total_tokens += estimate_tokens(prompt) + estimate_tokens(response)
            return response
        raise AssertionError(f"Unexpected prompt: {prompt[:120]}")

    async def complete_batch(self, prompts, options=None):
        results = []
        for prompt in prompts:
            try:
                results.append(await self.complete(prompt, options))
            except Exception as e:
                results.append(e)
        return results

    def prompts_containing(self, keyword: str) -> list[str]:
        return [p for p in self.prompts if keyword in p]


@pytest.fixture
def source_text():
    """A ~300 word text about renewable energy."""
    return SOURCE_TEXT


@pytest.fixture
def fake_client():
    return FakeModelClient()


@pytest.fixture
def b1_context():
    """Shared context as the builder produces it for the renewable energy text."""
    return SharedContext(
        lesson_title="Powering Tomorrow with Renewable Energy",
        key_vocabulary=list(VOCABULARY_WORDS),
        main_themes=["renewable energy", "climate change", "clean electricity"],
        difficulty_level=CEFRLevel.B1,
        content_summary=SUMMARY,
        source_text=SOURCE_TEXT[:1000],
    )
