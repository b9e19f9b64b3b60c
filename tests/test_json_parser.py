"""Tests for JSON extraction utility."""

import pytest

from resume_studio.utils.json_parser import extract_json, json_list_or_none, loads_or_none


class TestExtractJson:
    def test_too_deeply_nested_raises_value_error(self):
        with pytest.raises(ValueError):
            extract_json("{" + "[" * 100_000)

    def test_non_finite_numbers_parse(self):
        assert extract_json('{"matchScore": Infinity}') == {"matchScore": float("inf")}

    def test_direct_json(self):
        result = extract_json('{"name": "test"}')
        assert result == {"name": "test"}

    def test_fenced_code_block(self):
        text = 'Here is the result:\n```json\n{"name": "test"}\n```\nDone.'
        result = extract_json(text)
        assert result == {"name": "test"}

    def test_fenced_without_json_tag(self):
        text = '```\n{"key": "value"}\n```'
        result = extract_json(text)
        assert result == {"key": "value"}

    def test_embedded_json(self):
        text = 'The decisions are: {"decisions": [], "ok": true} as shown above.'
        result = extract_json(text)
        assert result == {"decisions": [], "ok": True}

    def test_top_level_array(self):
        assert extract_json('[{"name": "JARVIS"}]') == [{"name": "JARVIS"}]

    def test_truncated_output_is_repaired(self):
        text = '{"contactInfo": {"name": "Ada"}, "skills": ["Python", "Rust"'
        result = extract_json(text)
        assert result["contactInfo"] == {"name": "Ada"}
        assert result["skills"] == ["Python", "Rust"]

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError, match="Could not extract JSON"):
            extract_json("no json here at all")

    def test_empty_string_raises(self):
        with pytest.raises(ValueError):
            extract_json("")


class TestLoadsOrNone:
    def test_valid(self):
        assert loads_or_none('{"a": 1}') == {"a": 1}

    def test_invalid_returns_none(self):
        assert loads_or_none("{not json") is None

    def test_non_string_returns_none(self):
        assert loads_or_none(None) is None
        assert loads_or_none(42) is None
        assert loads_or_none("   ") is None

    def test_too_deeply_nested_returns_none(self):
        assert loads_or_none("[" * 100_000 + "]" * 100_000) is None


class TestJsonListOrNone:
    def test_native_list_passes_through(self):
        items = [{"company": "Acme"}]
        assert json_list_or_none(items) is items

    def test_json_string(self):
        assert json_list_or_none('[{"company": "Acme"}]') == [{"company": "Acme"}]

    def test_fenced_string(self):
        assert json_list_or_none('```json\n["a", "b"]\n```') == ["a", "b"]

    def test_list_inside_chatter(self):
        text = 'Here you go: [{"name": "x"}, {"name": "y"}] hope that helps'
        assert json_list_or_none(text) == [{"name": "x"}, {"name": "y"}]

    def test_object_is_not_a_list(self):
        assert json_list_or_none('{"company": "Acme"}') is None

    def test_garbage(self):
        assert json_list_or_none("not json") is None
        assert json_list_or_none("") is None
        assert json_list_or_none(None) is None
        assert json_list_or_none(12) is None
