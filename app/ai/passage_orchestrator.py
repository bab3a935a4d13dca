"""Orchestration for passage-based reading questions: passage -> question -> storage."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from app.ai.agents.passage_writer import generate_passage, generate_reading_question
from app.ai.orchestrator import build_options, error_message
from app.ai.pipeline.contracts import GeneratedPassage, GeneratedReadingQuestion, ReadingPipelineFailure, ReadingPipelineResult, ReadingPipelineSuccess, SampledReadingParams
from app.ai.pipeline.reading_question_templates import FACTOR_DISTRIBUTIONS, compute_reading_rw_difficulty, domain_and_skill
from app.ai.providers.base import TextClient
from app.storage.questions_repo import PassageRecord, PassageRepository, QuestionRepository

logger = logging.getLogger(__name__)

AGENT_VERSION = "reading-question-v1"


@dataclass(frozen=True)
class ReadingPipelineDeps:
  text_client: TextClient
  questions: QuestionRepository
  passages: PassageRepository


def build_passage_record(params: SampledReadingParams, passage: GeneratedPassage) -> PassageRecord:
  return PassageRecord(
    title=passage.title or None,
    author=passage.author,
    content=passage.passage,
    source=passage.source,
    passage_type=params.passage_type,
    complexity=params.passage_complexity,
    analyzed_features={
      "paragraphPurposes": passage.paragraph_purposes,
      "testableVocabulary": [{"word": item.word, "contextualMeaning": item.contextual_meaning} for item in passage.testable_vocabulary],
      "keyInferences": passage.key_inferences,
      "mainIdea": passage.main_idea,
      "authorPurpose": passage.author_purpose,
    },
  )


def build_reading_question_document(
  *,
  params: SampledReadingParams,
  passage: GeneratedPassage,
  passage_id: str,
  question: GeneratedReadingQuestion,
  batch_id: str | None,
  generated_at_ms: int | None = None,
) -> dict[str, Any]:
  """Assemble the stored question document for a passage item."""
  domain, skill = domain_and_skill(params.question_type)
  sampled = params.to_document()
  return {
    "type": "multiple_choice",
    "category": "reading_writing",
    "domain": domain,
    "skill": skill,
    "prompt": question.question_stem,
    "passageId": passage_id,
    "correctAnswer": question.correct_answer,
    "options": build_options(question.choices),
    "explanation": question.explanation,
    "wrongAnswerExplanations": question.distractor_explanations,
    "rwDifficulty": compute_reading_rw_difficulty(params),
    "generationMetadata": {
      "generatedAt": generated_at_ms if generated_at_ms is not None else int(time.time() * 1000),
      "agentVersion": AGENT_VERSION,
      "promptTemplate": f"reading_{params.question_type}",
      "promptParameters": sampled,
      "verbalizedSampling": {
        "targetDifficultyDistribution": [
          {"factor": "passageComplexity", "mean": FACTOR_DISTRIBUTIONS["passage_complexity"][0], "stdDev": FACTOR_DISTRIBUTIONS["passage_complexity"][1]},
          {"factor": "inferenceDepth", "mean": FACTOR_DISTRIBUTIONS["inference_depth"][0], "stdDev": FACTOR_DISTRIBUTIONS["inference_depth"][1]},
        ],
        "sampledValues": {
          **sampled,
          "passageAnalysis": {"mainIdea": passage.main_idea, "authorPurpose": passage.author_purpose, "keyInferences": passage.key_inferences},
        },
      },
    },
    "generationBatchId": batch_id,
    "tags": ["reading_writing", domain, skill, params.question_type, params.passage_type, "agent_generated"],
  }


async def run_reading_pipeline(
  deps: ReadingPipelineDeps,
  params: SampledReadingParams,
  *,
  batch_id: str | None = None,
  existing_passage: GeneratedPassage | None = None,
  existing_question: GeneratedReadingQuestion | None = None,
  existing_passage_id: str | None = None,
) -> ReadingPipelineResult:
  """Run one passage item; a stored passage id skips the passage insert on resume. Never raises."""
  passage = existing_passage
  question = existing_question
  passage_id = existing_passage_id

  if passage is None:
    logger.info("Stage 1: generating %s passage", params.passage_type)
    try:
      passage = await generate_passage(deps.text_client, params)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Passage generation failed: %s", exc)
      return ReadingPipelineFailure(error=error_message(exc), error_stage="passage_generation", sampled_params=params)

  if question is None:
    logger.info("Stage 2: generating %s question", params.question_type)
    try:
      question = await generate_reading_question(deps.text_client, params, passage)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Question generation failed: %s", exc)
      return ReadingPipelineFailure(error=error_message(exc), error_stage="question_generation", sampled_params=params, passage=passage)

  logger.info("Stage 3: storing passage and question")
  try:
    if passage_id is None:
      passage_id = await deps.passages.create_passage(build_passage_record(params, passage))
    document = build_reading_question_document(params=params, passage=passage, passage_id=passage_id, question=question, batch_id=batch_id)
    question_id = await deps.questions.create_question(document)
  except Exception as exc:  # noqa: BLE001
    logger.warning("Reading question storage failed: %s", exc)
    return ReadingPipelineFailure(error=error_message(exc), error_stage="storage", sampled_params=params, passage=passage, question=question, passage_id=passage_id)

  logger.info("Stored question %s for passage %s", question_id, passage_id)
  return ReadingPipelineSuccess(question_id=question_id, passage_id=passage_id, sampled_params=params, passage=passage)
