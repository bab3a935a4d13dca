"""Lenient JSON extraction for LLM text that wraps a JSON object in prose."""

from __future__ import annotations

import json
import re
from typing import Any

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


class JSONPayloadError(ValueError):
  """Raised when model text does not contain a parseable JSON object."""


def parse_json_object(raw: str) -> dict[str, Any]:
  """Locate the first balanced ``{...}`` block in ``raw`` and parse it."""
  candidate = extract_json_object(raw)
  if candidate is None:
    raise JSONPayloadError("no JSON object found in model output")

  # Prefer strict parsing so valid JSON is preserved without mutation.
  try:
    parsed = json.loads(candidate)
  except json.JSONDecodeError:
    # Trailing commas are the most common near-miss in model output.
    try:
      parsed = json.loads(_strip_trailing_commas(candidate))
    except json.JSONDecodeError as exc:
      raise JSONPayloadError(f"model output is not valid JSON: {exc.msg}") from exc

  if not isinstance(parsed, dict):
    raise JSONPayloadError("model output JSON is not an object")
  return parsed


def extract_json_object(raw: str) -> str | None:
  """Return the first balanced JSON object substring, honoring string escapes."""
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start_index is None:
      if char == "{":
        start_index = index
        depth = 1
      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char == "{":
      depth += 1
    elif char == "}":
      depth -= 1
      if depth == 0:
        return raw[start_index : index + 1]

  return None


def _strip_trailing_commas(raw: str) -> str:
  """Remove trailing commas before closing brackets."""
  return _TRAILING_COMMA_RE.sub(r"\1", raw)
