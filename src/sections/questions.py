"""Question-list sections: warm-up, comprehension, discussion and wrap-up."""

from src.model_client import GenerationOptions
from src.models import CEFRLevel
from src.sections.base import (
    SectionGenerator,
    find_section,
    main_theme,
    parse_questions,
)
from src.validators import reading_passage

WARMUP_LEVEL_INSTRUCTIONS = {
    CEFRLevel.A1: "Use very simple present tense questions with basic vocabulary about personal experiences and familiar situations.",
    CEFRLevel.A2: "Use simple questions in the present and past tense about personal experiences and everyday situations.",
    CEFRLevel.B1: "Use varied question structures and tenses. Include questions about opinions and experiences.",
    CEFRLevel.B2: "Use complex question structures. Include hypothetical and analytical questions about experiences.",
    CEFRLevel.C1: "Use sophisticated question structures. Include abstract and evaluative questions that encourage critical thinking.",
}

COMPREHENSION_LEVEL_INSTRUCTIONS = {
    CEFRLevel.A1: "Ask about facts stated directly in the text. Use short questions (5-8 words) in the present or past simple with everyday words.",
    CEFRLevel.A2: "Ask about main facts and simple sequences of events. Use clear questions (6-10 words) with who, what, where and when.",
    CEFRLevel.B1: "Mix factual questions with questions about reasons and main ideas. Use questions of 8-14 words with common phrasal verbs.",
    CEFRLevel.B2: "Include questions about the writer's purpose, causes and consequences. Use questions of 10-16 words and topic-specific vocabulary.",
    CEFRLevel.C1: "Include inference questions about implied meaning, tone and the strength of arguments. Use precise academic vocabulary.",
}

WRAPUP_LEVEL_INSTRUCTIONS = {
    CEFRLevel.A1: "Use very simple present tense questions about what the student learned and liked.",
    CEFRLevel.A2: "Use simple present and past tense questions about new words and how the student will use them.",
    CEFRLevel.B1: "Use varied question structures that ask for opinions and personal plans to use the new language.",
    CEFRLevel.B2: "Use complex question structures, including hypotheticals, that connect the topic to the student's own life.",
    CEFRLevel.C1: "Use sophisticated, evaluative questions that ask the student to reflect on their learning and on wider implications.",
}

DISCUSSION_LEVELS = {
    CEFRLevel.A1: {
        "description": "Simple questions with basic vocabulary about familiar topics and personal experiences",
        "question_types": [
            'Yes/No questions: "Do you like...?", "Have you ever...?"',
            'Simple Wh- questions: "What is your favorite...?", "Where do you...?"',
            'Preference questions: "Which do you prefer...?"',
        ],
        "structures": [
            "Present simple and past simple only",
            "Short questions (4-10 words)",
            "Common, everyday vocabulary",
        ],
        "response": "Students answer with 1-3 simple sentences",
        "examples": [
            "Do you like watching sports on TV?",
            "What is your favorite way to travel?",
        ],
    },
    CEFRLevel.A2: {
        "description": "Simple questions in several tenses about experiences and everyday situations",
        "question_types": [
            'Opinion questions: "What do you think about...?"',
            'Experience questions: "Can you describe...?"',
            'Simple hypotheticals: "What would you do if...?"',
        ],
        "structures": [
            "Present, past and future tenses",
            "First conditional",
            "Moderate length (5-12 words)",
        ],
        "response": "Students answer with 3-5 sentences giving simple opinions",
        "examples": [
            "What do you think about working from home?",
            "What would you do if you had a free weekend?",
        ],
    },
    CEFRLevel.B1: {
        "description": "Varied question structures including opinions, comparisons and justification",
        "question_types": [
            'Opinion and justification: "Why do you think...?"',
            'Comparison: "How does X compare to Y?"',
            'Advantages and disadvantages: "What are the pros and cons of...?"',
        ],
        "structures": [
            "Varied tenses including present perfect",
            "First and second conditionals",
            "Moderate complexity (6-15 words)",
        ],
        "response": "Students give 5-8 sentences with explanations and examples",
        "examples": [
            "Why do you think more people are choosing to live in cities?",
            "What are the advantages of learning a language online?",
        ],
    },
    CEFRLevel.B2: {
        "description": "Complex questions requiring analysis and justification",
        "question_types": [
            'Analytical: "To what extent do you agree that...?"',
            'Evaluation: "What are the implications of...?"',
            'Hypothetical: "How might the situation change if...?"',
        ],
        "structures": [
            "Conditionals of all types",
            "Passive voice and modal verbs",
            "Questions of 8-18 words",
        ],
        "response": "Students give detailed answers with analysis and counterarguments",
        "examples": [
            "To what extent should governments regulate new technology?",
            "How might our daily lives change if public transport were free?",
        ],
    },
    CEFRLevel.C1: {
        "description": "Sophisticated questions requiring evaluation and critical thinking",
        "question_types": [
            'Evaluative: "What are the broader implications of...?"',
            'Critical analysis: "In what ways could this be interpreted...?"',
            'Abstract reasoning: "How might one reconcile...?"',
        ],
        "structures": [
            "Advanced structures and nuanced expressions",
            "Abstract concepts",
            "Questions of 10-20 words with complex syntax",
        ],
        "response": "Students give comprehensive answers weighing several perspectives",
        "examples": [
            "In what ways might economic growth conflict with environmental protection?",
            "How might one reconcile individual freedom with collective responsibility?",
        ],
    },
}


class WarmupGenerator(SectionGenerator):
    name = "warmup"
    instruction = "Have the following conversations or discussions with your tutor before reading the text:"
    QUESTION_COUNT = 3

    async def generate(self, client, context, prior_sections):
        theme = main_theme(context)
        level = context.difficulty_level
        prompt = f"""Create 3 warm-up questions for {level.value} level students about the general topic of "{theme}".

CRITICAL REQUIREMENTS:
1. DO NOT mention specific events, people, names, dates or outcomes from any text
2. DO NOT assume students have read anything about the topic
3. Focus on personal experiences, opinions and general knowledge
4. Activate what students already know about the TOPIC
5. {WARMUP_LEVEL_INSTRUCTIONS[level]}

GOOD: "Have you ever ...?", "What do you think about ...?", "In your opinion, why is ... important?"
BAD: "What happened when ...?", "Why did ... happen in the story?", "What do you remember about ...?"

Return ONLY 3 questions, one per line, with no numbering or extra text:"""
        response = await client.complete(prompt)
        return [self.instruction, *parse_questions(response, self.QUESTION_COUNT)]

    def fallback(self, context, prior_sections):
        theme = main_theme(context)
        return [
            self.instruction,
            f"What do you already know about {theme}?",
            f"Have you ever talked with friends about {theme}?",
            f"Why do you think people are interested in {theme}?",
        ]


class ComprehensionGenerator(SectionGenerator):
    name = "comprehension"
    instruction = "After reading the text, answer these comprehension questions:"
    QUESTION_COUNT = 5

    async def generate(self, client, context, prior_sections):
        level = context.difficulty_level
        reading = find_section(prior_sections, "reading")
        passage = reading_passage(reading.content)[:800] if reading else ""
        prompt = (
            f"Create 5 {level.value} level comprehension questions "
            f"about this content.\n\nSUMMARY: {context.content_summary}\n\n"
            f"TEXT: {passage}\n\n"
            f"{COMPREHENSION_LEVEL_INSTRUCTIONS[level]}\n"
            "Each question must be answerable from the text. "
            "Return only the questions, one per line:"
        )
        response = await client.complete(prompt)
        return [self.instruction, *parse_questions(response, self.QUESTION_COUNT)]

    def fallback(self, context, prior_sections):
        theme = main_theme(context, default="the topic")
        return [
            self.instruction,
            "What is the main idea of the text?",
            f"What does the text say about {theme}?",
            "Which details in the text support the main idea?",
            "What new information did you learn from the text?",
            "How does the text end, and why is that important?",
        ]


class DiscussionGenerator(SectionGenerator):
    name = "discussion"
    instruction = "Discuss these questions with your tutor to explore the topic in depth:"
    QUESTION_COUNT = 5

    async def generate(self, client, context, prior_sections):
        level = context.difficulty_level
        settings = DISCUSSION_LEVELS[level]
        themes = " and ".join(context.main_themes[:2]) or "this topic"
        question_types = "\n".join(
            f"{i}. {item}" for i, item in enumerate(settings["question_types"], start=1)
        )
        structures = "\n".join(f"- {item}" for item in settings["structures"])
        examples = "\n".join(f"- {item}" for item in settings["examples"])

        prompt = f"""Create exactly 5 discussion questions for {level.value} level students about {themes}.

SOURCE CONTEXT: {context.content_summary}
RELATED VOCABULARY: {', '.join(context.key_vocabulary[:5])}

LEVEL REQUIREMENTS FOR {level.value}:
{settings["description"]}

QUESTION TYPES TO USE:
{question_types}

LANGUAGE STRUCTURES:
{structures}

EXPECTED ANSWERS: {settings["response"]}

EXAMPLE QUESTIONS:
{examples}

CRITICAL REQUIREMENTS:
1. Exactly 5 questions, each ending with a question mark
2. Start with an accessible question and build towards deeper ones
3. Begin the questions with different words
4. Connect every question to the topic

Return ONLY the 5 questions, one per line, with no numbering:"""
        response = await client.complete(prompt)
        return [self.instruction, *parse_questions(response, self.QUESTION_COUNT)]

    def fallback(self, context, prior_sections):
        theme = main_theme(context)
        return [
            self.instruction,
            f"What is your opinion about {theme}?",
            f"How does {theme} affect people in your country?",
            f"What are the advantages and disadvantages of {theme}?",
            f"How do you think {theme} will change in the future?",
            f"Why is {theme} important for your community?",
        ]


class WrapupGenerator(SectionGenerator):
    name = "wrapup"
    instruction = "Reflect on your learning by discussing these wrap-up questions:"
    QUESTION_COUNT = 3

    async def generate(self, client, context, prior_sections):
        level = context.difficulty_level
        prompt = (
            f"Create 3 {level.value} level wrap-up questions for a "
            f'lesson titled "{context.lesson_title}" about {", ".join(context.main_themes[:3])}. '
            f"The questions should help students reflect on what they learned and how "
            f"they will use the vocabulary ({', '.join(context.key_vocabulary[:5])}).\n"
            f"{WRAPUP_LEVEL_INSTRUCTIONS[level]}\n"
            "Return only the questions, one per line:"
        )
        response = await client.complete(prompt, GenerationOptions(max_output_length=300))
        return [self.instruction, *parse_questions(response, self.QUESTION_COUNT)]

    def fallback(self, context, prior_sections):
        theme = main_theme(context)
        return [
            self.instruction,
            "What is the most important thing you learned in this lesson?",
            f"Which new words about {theme} will you use in the future?",
            f"What else would you like to learn about {theme}?",
        ]
