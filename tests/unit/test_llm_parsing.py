"""Unit tests for parsing model responses."""

import pytest

from llmkit.core.errors import ParseError
from llmkit.extraction.models import ChunkExtraction
from llmkit.llm.client import api_model_name, parse_json_array, parse_json_object, validate_json


class TestParseJson:
    def test_plain_object(self):
        assert parse_json_object('{"a": 1}') == {"a": 1}

    def test_markdown_fence_and_chatter(self):
        text = 'Sure! Here it is:\n```json\n{"companies": ["Stripe"]}\n```\nAnything else?'
        assert parse_json_object(text) == {"companies": ["Stripe"]}

    def test_no_object(self):
        with pytest.raises(ParseError):
            parse_json_object("I could not find anything.")

    def test_invalid_object(self):
        with pytest.raises(ParseError):
            parse_json_object("{'single': 'quotes'}")

    def test_array(self):
        assert parse_json_array('```\n["Amazon", "Microsoft"]\n```') == ["Amazon", "Microsoft"]

    def test_no_array(self):
        with pytest.raises(ParseError):
            parse_json_array("none")


class TestValidateJson:
    def test_valid_payload_with_camel_case_keys(self):
        payload = validate_json(
            '{"keyTakeaway": "Infra wins", "companies": ["Stripe"], '
            '"concepts": {"business": ["usage pricing"], "technical": []}, '
            '"quotes": [{"quote": "Hi", "speaker": null}], "summary": "Short."}',
            ChunkExtraction,
        )
        assert payload.key_takeaway == "Infra wins"
        assert payload.quotes[0].speaker is None

    def test_schema_mismatch(self):
        with pytest.raises(ParseError):
            validate_json('{"companies": "not a list"}', ChunkExtraction)


def test_api_model_name_strips_provider():
    assert api_model_name("openai/gpt-4o-mini") == "gpt-4o-mini"
    assert api_model_name("gpt-4o-mini") == "gpt-4o-mini"
