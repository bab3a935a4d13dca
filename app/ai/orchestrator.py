"""Orchestration for the chart-based reading question pipeline.

Stages run strictly in order: data -> image -> question -> storage. Any artifact
passed in as resume state skips its stage, and a failure returns everything
produced so far so the next attempt resumes at the failed stage.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from app.ai.agents.chart_renderer import generate_image
from app.ai.agents.data_generator import generate_data
from app.ai.agents.question_writer import generate_question
from app.ai.pipeline.chart_prompts import chart_data_problems
from app.ai.pipeline.contracts import CHOICE_KEYS, ChartData, DataType, GeneratedQuestionContent, ImageReference, PipelineFailure, PipelineResult, PipelineSuccess, SampledQuestionParams
from app.ai.pipeline.reading_data_templates import CLAIM_STRENGTH_MEAN, CLAIM_STRENGTH_STD_DEV, compute_rw_difficulty
from app.ai.providers.base import ImageClient, TextClient
from app.services.media_store import ImageStore
from app.storage.questions_repo import QuestionRepository

logger = logging.getLogger(__name__)

AGENT_VERSION = "reading-data-v1"
PROMPT_TEMPLATE = "reading_data_question"


@dataclass(frozen=True)
class PipelineDeps:
  """External collaborators for one pipeline run."""

  text_client: TextClient
  image_client: ImageClient
  image_store: ImageStore
  questions: QuestionRepository


def error_message(exc: BaseException) -> str:
  return str(exc) or type(exc).__name__


def build_options(choices: dict[str, str]) -> list[dict[str, Any]]:
  return [{"key": key, "content": choices[key], "order": order} for order, key in enumerate(CHOICE_KEYS)]


def build_question_document(
  *,
  data_type: DataType,
  params: SampledQuestionParams,
  chart_data: ChartData,
  image: ImageReference,
  question: GeneratedQuestionContent,
  batch_id: str | None,
  generated_at_ms: int | None = None,
) -> dict[str, Any]:
  """Assemble the stored question document for a chart item."""
  sampled = params.to_document()
  return {
    "type": "multiple_choice",
    "category": "reading_writing",
    "domain": "information_and_ideas",
    "skill": "command_of_evidence",
    "prompt": f"{question.passage}\n\n{question.question_stem}",
    "correctAnswer": "A",
    "options": build_options(question.choices),
    "explanation": question.explanation,
    "wrongAnswerExplanations": question.distractor_explanations,
    "rwDifficulty": compute_rw_difficulty(params),
    "figure": {
      "imageId": image.image_id,
      "figureType": "table" if data_type == "data_table" else "data_display",
      "caption": chart_data.get("title"),
    },
    "generationMetadata": {
      "generatedAt": generated_at_ms if generated_at_ms is not None else int(time.time() * 1000),
      "agentVersion": AGENT_VERSION,
      "promptTemplate": PROMPT_TEMPLATE,
      "promptParameters": sampled,
      "verbalizedSampling": {
        "targetDifficultyDistribution": [{"factor": "claimStrength", "mean": CLAIM_STRENGTH_MEAN, "stdDev": CLAIM_STRENGTH_STD_DEV}],
        "sampledValues": {**sampled, "rawChartData": chart_data},
      },
    },
    "generationBatchId": batch_id,
    "tags": [
      "reading_writing",
      "information_and_ideas",
      "command_of_evidence",
      "data_interpretation",
      data_type,
      params.domain,
      params.claim_type,
      "agent_generated",
    ],
  }


async def run_pipeline(
  deps: PipelineDeps,
  data_type: DataType,
  params: SampledQuestionParams,
  *,
  batch_id: str | None = None,
  existing_chart_data: ChartData | None = None,
  existing_image: ImageReference | None = None,
  existing_question: GeneratedQuestionContent | None = None,
) -> PipelineResult:
  """Run one chart item to completion or to its first failing stage. Never raises."""
  chart_data = existing_chart_data
  image = existing_image
  question = existing_question

  if chart_data is None:
    logger.info("Stage 1: generating %s data", data_type)
    try:
      chart_data = await generate_data(deps.text_client, params, data_type)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Data generation failed: %s", exc)
      return PipelineFailure(error=error_message(exc), error_stage="data_generation", sampled_params=params)
  else:
    problems = chart_data_problems(data_type, chart_data)
    if problems:
      logger.warning("Stored %s data is unusable: %s", data_type, ", ".join(problems))
      return PipelineFailure(error=f"Unreadable resume state: {', '.join(problems)}", error_stage="data_generation", sampled_params=params)
    logger.info("Stage 1: reusing stored %s data", data_type)

  if image is None:
    logger.info("Stage 2: generating image")
    try:
      image = await generate_image(deps.image_client, deps.image_store, data_type, chart_data)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Image generation failed: %s", exc)
      return PipelineFailure(error=error_message(exc), error_stage="image_generation", sampled_params=params, chart_data=chart_data)
  else:
    logger.info("Stage 2: reusing image %s", image.image_id)

  if question is None:
    logger.info("Stage 3: generating question")
    try:
      question = await generate_question(deps.text_client, params, chart_data)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Question generation failed: %s", exc)
      return PipelineFailure(error=error_message(exc), error_stage="question_generation", sampled_params=params, chart_data=chart_data, image=image)
  else:
    logger.info("Stage 3: reusing generated question")

  logger.info("Stage 4: storing question")
  try:
    document = build_question_document(data_type=data_type, params=params, chart_data=chart_data, image=image, question=question, batch_id=batch_id)
    question_id = await deps.questions.create_question(document)
  except Exception as exc:  # noqa: BLE001
    logger.warning("Question storage failed: %s", exc)
    return PipelineFailure(error=error_message(exc), error_stage="storage", sampled_params=params, chart_data=chart_data, image=image, question=question)

  logger.info("Stored question %s with image %s", question_id, image.image_id)
  return PipelineSuccess(question_id=question_id, image_id=image.image_id, chart_data=chart_data, chart_title=str(chart_data.get("title", "")), sampled_params=params)
