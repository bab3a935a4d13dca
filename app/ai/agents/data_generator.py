"""Chart data stage: ask the text model for a dataset and accept it only if it is well-formed."""

from __future__ import annotations

import logging

from app.ai.agents.base import StageError, request_json
from app.ai.agents.prompts import build_data_generation_prompt
from app.ai.pipeline.chart_prompts import chart_data_problems
from app.ai.pipeline.contracts import ChartData, DataType, SampledQuestionParams
from app.ai.providers.base import TextClient

logger = logging.getLogger(__name__)

DATA_MAX_TOKENS = 1000


async def generate_data(client: TextClient, params: SampledQuestionParams, data_type: DataType) -> ChartData:
  """Generate chart data for ``data_type`` or raise ``StageError``."""
  prompt = build_data_generation_prompt(params, data_type)
  logger.info("Generating %s data (domain=%s claim=%s)", data_type, params.domain, params.claim_type)
  payload = await request_json(client, prompt, max_tokens=DATA_MAX_TOKENS, agent="DataGenerator")

  problems = chart_data_problems(data_type, payload)
  if problems:
    raise StageError(f"{data_type} data missing or malformed keys: {', '.join(problems)}")

  logger.info("Generated chart data: %s", payload.get("title"))
  return payload
