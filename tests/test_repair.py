"""Tests for structured response repair."""

import json

import pytest

from src.repair import (
    StructuredParseFailure,
    close_structure,
    extract_object_span,
    parse_structured,
    strip_code_fences,
)


class TestCloseStructure:
    def test_closes_string_and_brackets_in_stack_order(self):
        assert close_structure('{"a": [1, 2, "x') == '{"a": [1, 2, "x"]}'

    def test_drops_trailing_comma(self):
        assert json.loads(close_structure('{"a": 1, "b": [1, 2,')) == {"a": 1, "b": [1, 2]}

    def test_balanced_input_unchanged(self):
        assert close_structure('{"a": {"b": 1}}') == '{"a": {"b": 1}}'


class TestExtractObjectSpan:
    def test_ignores_surrounding_prose(self):
        assert extract_object_span('Here you go: {"a": 1} Hope it helps') == '{"a": 1}'

    def test_braces_inside_strings(self):
        assert extract_object_span('{"a": "}"} tail') == '{"a": "}"}'

    def test_unterminated_object_runs_to_end(self):
        assert extract_object_span('prefix {"a": [1') == '{"a": [1'

    def test_no_object(self):
        assert extract_object_span("no json here") is None


class TestParseStructured:
    """End-to-end parsing with repair."""

    def test_valid_json_in_code_fence(self):
        text = '```json\n{"grammarPoint": "Present perfect"}\n```'
        assert parse_structured(text) == {"grammarPoint": "Present perfect"}

    def test_repairs_truncated_response(self):
        assert parse_structured('{"a": [1, 2, "x') == {"a": [1, 2, "x"]}

    def test_repairs_dangling_key(self):
        assert parse_structured('{"focus": "Passive", "examples": ["One."], "exer') == {
            "focus": "Passive",
            "examples": ["One."],
        }

    def test_repairs_dangling_key_with_colon(self):
        assert parse_structured('{"focus": "Passive", "examples":') == {"focus": "Passive"}

    def test_no_object_raises(self):
        with pytest.raises(StructuredParseFailure):
            parse_structured("I cannot help with that.")

    def test_unrepairable_raises(self):
        with pytest.raises(StructuredParseFailure):
            parse_structured("{not: json at all ::}")

    def test_strip_code_fences(self):
        assert strip_code_fences("```\n{}\n```") == "{}"
