"""Passage and passage-question stages for text-only reading items."""

from __future__ import annotations

import logging

from app.ai.agents.base import request_json, validate_payload
from app.ai.agents.prompts import build_passage_generation_prompt, build_reading_question_prompt
from app.ai.pipeline.contracts import GeneratedPassage, GeneratedReadingQuestion, SampledReadingParams
from app.ai.providers.base import TextClient

logger = logging.getLogger(__name__)

PASSAGE_MAX_TOKENS = 2000
READING_QUESTION_MAX_TOKENS = 1500
PASSAGE_REQUIRED_FIELDS = ("passage", "mainIdea", "authorPurpose")
READING_QUESTION_REQUIRED_FIELDS = ("questionStem", "choices", "explanation")


async def generate_passage(client: TextClient, params: SampledReadingParams) -> GeneratedPassage:
  """Write a passage matching the sampled type, length and complexity."""
  prompt = build_passage_generation_prompt(params)
  logger.info("Generating %s passage (complexity: %.2f)", params.passage_type, params.passage_complexity)
  payload = await request_json(client, prompt, max_tokens=PASSAGE_MAX_TOKENS, agent="PassageWriter")
  passage = validate_payload(GeneratedPassage, payload, required=PASSAGE_REQUIRED_FIELDS, label="passage")
  logger.info("Generated %r by %s (~%d words)", passage.title or "Untitled", passage.author or "unknown", len(passage.passage.split()))
  return passage


async def generate_reading_question(client: TextClient, params: SampledReadingParams, passage: GeneratedPassage) -> GeneratedReadingQuestion:
  """Write a ``params.question_type`` question for ``passage``."""
  prompt = build_reading_question_prompt(params, passage)
  logger.info("Generating %s question", params.question_type)
  payload = await request_json(client, prompt, max_tokens=READING_QUESTION_MAX_TOKENS, agent="ReadingQuestionWriter")
  return validate_payload(GeneratedReadingQuestion, payload, required=READING_QUESTION_REQUIRED_FIELDS, label="question")
