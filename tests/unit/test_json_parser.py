"""Unit tests for lenient JSON extraction from model output."""

from __future__ import annotations

import pytest

from app.ai.json_parser import JSONPayloadError, extract_json_object, parse_json_object


def test_parses_object_wrapped_in_prose_and_fences() -> None:
  raw = 'Sure! Here it is:\n```json\n{"title": "A", "values": [1, 2]}\n```\nLet me know.'
  assert parse_json_object(raw) == {"title": "A", "values": [1, 2]}


def test_braces_inside_strings_do_not_end_the_object() -> None:
  raw = 'prefix {"text": "a } brace and a \\" quote", "n": 1} suffix {"other": 2}'
  assert parse_json_object(raw) == {"text": 'a } brace and a " quote', "n": 1}


def test_trailing_commas_are_tolerated() -> None:
  assert parse_json_object('{"a": [1, 2,], "b": 3,}') == {"a": [1, 2], "b": 3}


def test_missing_or_unbalanced_object_raises() -> None:
  with pytest.raises(JSONPayloadError, match="no JSON object"):
    parse_json_object("no json here")
  assert extract_json_object('{"a": 1') is None


def test_malformed_object_raises() -> None:
  with pytest.raises(JSONPayloadError, match="not valid JSON"):
    parse_json_object("{'single': 'quotes'}")
