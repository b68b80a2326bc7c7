"""Tests for shared context derivation."""

import pytest

from src.context_builder import (
    DEFAULT_THEMES,
    DEFAULT_VOCABULARY,
    MIN_VOCABULARY,
    SharedContextBuilder,
    contextual_title,
    detect_themes,
    fallback_vocabulary,
    is_valid_title,
)
from src.model_client import TransportError
from src.models import CEFRLevel


class TestSharedContextBuilder:
    """One request per facet, with deterministic fallbacks."""

    @pytest.mark.asyncio
    async def test_builds_context_from_model(self, fake_client, source_text):
        context = await SharedContextBuilder(fake_client).build(
            source_text, "discussion", CEFRLevel.B1, "english"
        )

        assert context.lesson_title == "Powering Tomorrow with Renewable Energy"
        assert 6 <= len(context.key_vocabulary) <= 12
        assert any("energy" in theme for theme in context.main_themes)
        assert context.difficulty_level == CEFRLevel.B1
        assert context.content_summary.startswith("Renewable energy")
        assert len(context.source_text) <= 1000
        assert len(fake_client.prompts) == 4

    @pytest.mark.asyncio
    async def test_falls_back_when_model_fails(self, fake_client, source_text):
        fake_client.rules = [("", TransportError("Service unavailable", status=503))]

        context = await SharedContextBuilder(fake_client).build(
            source_text, "discussion", CEFRLevel.B1, "english"
        )

        assert context.lesson_title == "Business Communication Discussion"
        assert len(context.key_vocabulary) >= 4
        assert "energy" in context.main_themes
        assert context.content_summary.endswith("...")

    @pytest.mark.asyncio
    async def test_rejects_title_mentioning_lesson(self, fake_client, source_text):
        fake_client.override("Create a short, engaging title", "Lesson about energy")

        context = await SharedContextBuilder(fake_client).build(
            source_text, "discussion", CEFRLevel.B1, "english"
        )

        assert "lesson" not in context.lesson_title.lower()

    @pytest.mark.asyncio
    async def test_too_few_vocabulary_words_uses_fallback(self, fake_client, source_text):
        fake_client.override("List 8-12 important vocabulary words", "energy\nsolar")

        context = await SharedContextBuilder(fake_client).build(
            source_text, "discussion", CEFRLevel.B1, "english"
        )

        assert context.key_vocabulary == fallback_vocabulary(source_text)


class TestContextualTitle:
    def test_topic_keyword(self):
        text = "The Ryder Cup is a famous golf competition between Europe and the USA."
        assert contextual_title(text, "discussion", CEFRLevel.B1) == "Ryder Cup Golf Discussion"

    def test_proper_noun(self):
        text = "yesterday we visited Barcelona with friends."
        assert contextual_title(text, "discussion", CEFRLevel.A2) == "Barcelona Discussion"

    def test_generic_title(self):
        text = "a short note without names or topics."
        assert contextual_title(text, "grammar", CEFRLevel.B2) == "Grammar Focus - B2 Level"
        assert contextual_title(text, "poetry", CEFRLevel.C1) == "English - C1 Level"

    def test_title_validity(self):
        assert is_valid_title("Powering Tomorrow")
        assert not is_valid_title("Hi")
        assert not is_valid_title("A Lesson About Wind")


class TestFallbacks:
    def test_detect_themes(self):
        assert detect_themes("Solar panels and climate policy") == ["energy"]
        assert detect_themes("Nothing matches here") == DEFAULT_THEMES

    def test_fallback_vocabulary_skips_stop_words(self):
        words = fallback_vocabulary(
            "The wind and the solar panels bring clean electricity to homes, "
            "while batteries store power for cities."
        )

        assert "the" not in words
        assert "wind" in words
        assert len(words) <= 8

    def test_fallback_vocabulary_defaults_for_tiny_text(self):
        assert len(fallback_vocabulary("Hi there.")) == 6

    def test_fallback_vocabulary_never_returns_fewer_than_six_words(self):
        words = fallback_vocabulary("Solar panels power quiet homes.")

        assert words == DEFAULT_VOCABULARY
        assert len(words) >= MIN_VOCABULARY
