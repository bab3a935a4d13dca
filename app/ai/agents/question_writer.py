"""Question stage for chart-based items."""

from __future__ import annotations

import logging

from app.ai.agents.base import request_json, validate_payload
from app.ai.agents.prompts import build_question_generation_prompt, format_chart_data
from app.ai.pipeline.contracts import ChartData, GeneratedQuestionContent, SampledQuestionParams
from app.ai.providers.base import TextClient

logger = logging.getLogger(__name__)

QUESTION_MAX_TOKENS = 2000
QUESTION_REQUIRED_FIELDS = ("passage", "questionStem", "choices", "explanation")


async def generate_question(client: TextClient, params: SampledQuestionParams, chart_data: ChartData) -> GeneratedQuestionContent:
  """Write the passage, stem and four choices for a chart."""
  prompt = build_question_generation_prompt(params, format_chart_data(chart_data))
  logger.info("Generating %s question targeting %s", params.question_position, params.target_data_point)
  payload = await request_json(client, prompt, max_tokens=QUESTION_MAX_TOKENS, agent="QuestionWriter")
  return validate_payload(GeneratedQuestionContent, payload, required=QUESTION_REQUIRED_FIELDS, label="question")
