"""Shared plumbing for the stage executors."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from app.ai.json_parser import JSONPayloadError, parse_json_object
from app.ai.providers.base import TextClient

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = logging.getLogger(__name__)


class StageError(RuntimeError):
  """A stage executor could not produce its artifact.

  Executors do not know which pipeline stage they serve; the orchestrator tags the failure.
  """


async def request_json(client: TextClient, prompt: str, *, max_tokens: int, agent: str) -> dict[str, Any]:
  """Call the text model once and parse the JSON object out of its first text block."""
  blocks = await client.create_message(prompt, max_tokens)
  text = next((block.text for block in blocks if block.type == "text" and block.text is not None), None)
  if text is None:
    raise StageError("no text response")

  try:
    payload = parse_json_object(text)
  except JSONPayloadError as exc:
    logger.warning("%s returned unparseable output: %s", agent, exc)
    raise StageError("invalid JSON") from exc

  return payload


def missing_keys(payload: dict[str, Any], required: tuple[str, ...]) -> list[str]:
  """Required keys that are absent or empty."""
  return [key for key in required if payload.get(key) in (None, "", [], {})]


def validate_payload(model: type[ModelT], payload: dict[str, Any], *, required: tuple[str, ...], label: str) -> ModelT:
  """Check required keys first so the error names them, then validate the full shape."""
  missing = missing_keys(payload, required)
  if missing:
    raise StageError(f"{label} missing required fields: {', '.join(missing)}")

  try:
    return model.model_validate(payload)
  except ValidationError as exc:
    problems = sorted({".".join(str(part) for part in error["loc"]) or error["msg"] for error in exc.errors()})
    raise StageError(f"{label} has malformed fields: {', '.join(problems)}") from exc
