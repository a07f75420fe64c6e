"""Tests for JSON extraction from model output."""

import pytest

from worldforge.exceptions import GenerationError
from worldforge.utils.json_extract import extract_json_object, repair_json, require_array


class TestExtract:

    def test_plain_object(self):
        result = extract_json_object('{"factions": []}')
        assert result.ok
        assert result.data == {"factions": []}
        assert result.repaired is False

    def test_object_inside_prose_and_fences(self):
        text = 'Here is your world:\n```json\n{"npcs": [{"name": "Ilene"}]}\n```\nEnjoy!'
        result = extract_json_object(text)
        assert result.data == {"npcs": [{"name": "Ilene"}]}

    def test_trailing_commas_repaired(self):
        result = extract_json_object('{"factions": [{"name": "A"},],}')
        assert result.ok
        assert result.repaired is True
        assert result.data == {"factions": [{"name": "A"}]}

    def test_smart_and_single_quotes_repaired(self):
        result = extract_json_object("{“name”: 'Order of the Dawn'}")
        assert result.data == {"name": "Order of the Dawn"}

    def test_no_object(self):
        result = extract_json_object("I'd rather not.")
        assert not result.ok
        assert result.error == "No JSON object found in response"

    def test_empty_and_none(self):
        assert not extract_json_object("").ok
        assert not extract_json_object(None).ok

    def test_unrepairable(self):
        result = extract_json_object('{"factions": [unquoted words]}')
        assert not result.ok
        assert result.error.startswith("Invalid JSON after repair")
        assert result.raw == '{"factions": [unquoted words]}'

    def test_repair_leaves_valid_json_alone(self):
        text = '{"a": [1, 2], "b": "x, y"}'
        assert repair_json(text) == text


class TestRequireArray:

    def test_returns_list(self):
        assert require_array({"secrets": [1]}, "secrets") == [1]

    @pytest.mark.parametrize("data", [{}, {"secrets": "none"}, {"secrets": None}, None])
    def test_missing_or_wrong_type(self, data):
        with pytest.raises(GenerationError, match="Failed to parse secrets from AI response"):
            require_array(data, "secrets")
