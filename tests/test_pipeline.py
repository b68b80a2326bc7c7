"""End-to-end tests for the lesson pipeline and the command line entry point."""

import json
import sys

import pytest

import config
import main
from src.model_client import TransportError
from src.pipeline import InputRejected, LessonPipeline, SectionGenerationError, save_lesson
from src.quality_metrics import QualityMetricsTracker
from src.scheduler import DEFAULT_SECTIONS
from src.session_store import SessionStore

from tests.conftest import FakeModelClient


def make_pipeline(client):
    return LessonPipeline(client, tracker=QualityMetricsTracker())


class TestLessonPipeline:
    """Full lesson generation against the scripted model."""

    @pytest.mark.asyncio
    async def test_generates_every_section(self, fake_client, source_text):
        lesson = await make_pipeline(fake_client).generate(
            source_text, "B1", "discussion", "english"
        )

        assert lesson.title == "Powering Tomorrow with Renewable Energy"
        assert set(lesson.sections) == {s.name for s in DEFAULT_SECTIONS}

        vocabulary = lesson.sections["vocabulary"]
        assert vocabulary[0]["word"] == "INSTRUCTION"
        assert 6 <= len(vocabulary) - 1 <= 10

        reading = lesson.sections["reading"]
        passage = reading.split("\n\n", 1)[1]
        assert 150 <= len(passage.split()) <= 350

        dialogue = lesson.sections["dialogue_practice"]["dialogue"]
        assert len(dialogue) >= 12
        assert dialogue[0]["character"] == "Student"
        speakers = [line["character"] for line in dialogue]
        assert all(a != b for a, b in zip(speakers, speakers[1:]))
        assert len(lesson.sections["dialogue_practice"]["followUpQuestions"]) == 3

        fill_gap = lesson.sections["dialogue_fill_gap"]
        assert sum(1 for line in fill_gap["dialogue"] if line.get("isGap")) == len(fill_gap["answers"])

    @pytest.mark.asyncio
    async def test_quality_and_metadata(self, fake_client, source_text):
        lesson = await make_pipeline(fake_client).generate(
            source_text, "B1", "discussion", "english"
        )

        assert set(lesson.quality["sections"]) == set(lesson.sections)
        assert all(s["attempts"] >= 1 for s in lesson.quality["sections"].values())
        assert lesson.quality["overallScore"] > 0
        assert lesson.metadata["lessonType"] == "discussion"
        assert lesson.metadata["tokensUsed"] == fake_client.total_tokens
        assert "generationTimeMs" in lesson.metadata
        assert "timestamp" in lesson.metadata

    @pytest.mark.asyncio
    async def test_vocabulary_feeds_later_sections(self, fake_client, source_text):
        await make_pipeline(fake_client).generate(source_text, "B1", "discussion", "english")

        # The reading prompt must list the vocabulary words generated before it
        reading_prompt = fake_client.prompts_containing("Rewrite this text for")[0]
        assert "Use these vocabulary words: Renewable, Solar," in reading_prompt

    @pytest.mark.asyncio
    async def test_empty_input_rejected_before_any_model_call(self, fake_client):
        with pytest.raises(InputRejected) as excinfo:
            await make_pipeline(fake_client).generate("   ", "B1", "discussion", "english")

        assert "No content" in excinfo.value.reason
        assert fake_client.prompts == []

    @pytest.mark.asyncio
    async def test_short_input_rejected(self, fake_client):
        with pytest.raises(InputRejected) as excinfo:
            await make_pipeline(fake_client).generate(
                "Solar power is cheap.", "B1", "discussion", "english"
            )

        assert excinfo.value.suggestions

    @pytest.mark.asyncio
    async def test_unknown_level(self, fake_client, source_text):
        with pytest.raises(ValueError):
            await make_pipeline(fake_client).generate(source_text, "Z9", "discussion", "english")

    @pytest.mark.asyncio
    async def test_section_subset_pulls_in_dependencies(self, fake_client, source_text):
        lesson = await make_pipeline(fake_client).generate(
            source_text, "B1", "discussion", "english", sections=["wrapup"]
        )

        assert list(lesson.sections) == [
            "vocabulary",
            "reading",
            "comprehension",
            "discussion",
            "wrapup",
        ]
        assert not fake_client.prompts_containing("Identify ONE grammar point")

    @pytest.mark.asyncio
    async def test_failing_section_aborts_lesson(self, fake_client, source_text):
        fake_client.override("Identify ONE grammar point", TransportError("down", status=503))

        with pytest.raises(SectionGenerationError) as excinfo:
            await make_pipeline(fake_client).generate(source_text, "B1", "discussion", "english")

        assert excinfo.value.section == "grammar"
        assert not fake_client.prompts_containing("Create pronunciation practice")

    @pytest.mark.asyncio
    async def test_save_lesson(self, fake_client, source_text, tmp_path):
        lesson = await make_pipeline(fake_client).generate(
            source_text, "B1", "discussion", "english", sections=["grammar"]
        )
        path = tmp_path / "out" / "lesson.json"

        save_lesson(lesson, path)

        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert data["targetLanguage"] == "english"
        assert data["lessonType"] == "discussion"
        assert data["level"] == "B1"
        assert "levelNotes" in data["sections"]["grammar"]["explanation"]


class AsyncFakeModelClient(FakeModelClient):
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None


class TestCommandLine:
    """main.py against the scripted model, with sessions and logs in tmp_path."""

    @pytest.fixture(autouse=True)
    def isolate(self, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "LOGS_DIR", tmp_path / "logs")
        monkeypatch.setattr(main, "GenerativeModelClient", AsyncFakeModelClient)
        monkeypatch.setattr(main, "SessionStore", lambda: SessionStore(tmp_path / "sessions"))
        self.store = SessionStore(tmp_path / "sessions")
        self.tmp_path = tmp_path

    def run_main(self, monkeypatch, *args):
        monkeypatch.setattr(sys, "argv", ["main.py", *args])
        main.main()

    def test_generates_lesson_and_records_session(self, monkeypatch, source_text):
        source = self.tmp_path / "article.txt"
        source.write_text(source_text, encoding="utf-8")
        output = self.tmp_path / "lesson.json"

        self.run_main(
            monkeypatch,
            "--input", str(source),
            "--sections", "grammar",
            "--output", str(output),
            "--session", "energy",
        )

        with open(output, encoding="utf-8") as f:
            assert "grammar" in json.load(f)["sections"]
        saved = self.store.load("energy")
        assert saved["status"] == "completed"
        assert saved["output_path"] == str(output)
        assert saved["sections"] == ["grammar"]

    def test_resume_reruns_saved_request(self, monkeypatch, source_text):
        self.store.save(
            "energy",
            {"source_text": source_text, "level": "B1", "sections": ["warmup"], "status": "failed"},
        )
        output = self.tmp_path / "resumed.json"

        self.run_main(monkeypatch, "--resume", "--session", "energy", "--output", str(output))

        with open(output, encoding="utf-8") as f:
            assert list(json.load(f)["sections"]) == ["warmup"]
        assert self.store.load("energy")["status"] == "completed"

    def test_rejected_input_exit_code(self, monkeypatch):
        with pytest.raises(SystemExit) as excinfo:
            self.run_main(monkeypatch, "--text", "Too short.", "--session", "short")

        assert excinfo.value.code == main.EXIT_INPUT_REJECTED
        saved = self.store.load("short")
        assert saved["status"] == "failed"
        assert "too short" in saved["error"].lower()

    def test_generation_failure_exit_code(self, monkeypatch, source_text):
        def failing_client():
            client = AsyncFakeModelClient()
            client.override("Identify ONE grammar point", TransportError("down", status=503))
            return client

        monkeypatch.setattr(main, "GenerativeModelClient", failing_client)

        with pytest.raises(SystemExit) as excinfo:
            self.run_main(monkeypatch, "--text", source_text, "--sections", "grammar")

        assert excinfo.value.code == main.EXIT_GENERATION_FAILED

    def test_resume_requires_session(self, monkeypatch):
        with pytest.raises(SystemExit) as excinfo:
            self.run_main(monkeypatch, "--resume")

        assert excinfo.value.code == 2

    def test_unknown_resume_session(self, monkeypatch):
        with pytest.raises(SystemExit) as excinfo:
            self.run_main(monkeypatch, "--resume", "--session", "missing")

        assert excinfo.value.code == main.EXIT_GENERATION_FAILED
