"""Batch and retry drivers for the generation pipelines.

Items are processed one at a time with a fixed pause between them. Failures
never escape a driver loop: a failed first attempt becomes a DLQ row, a failed
retry is written back to its row.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
import random
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from app.ai.orchestrator import PipelineDeps, error_message, run_pipeline
from app.ai.passage_orchestrator import ReadingPipelineDeps, run_reading_pipeline
from app.ai.pipeline.chart_prompts import chart_data_problems
from app.ai.pipeline.contracts import (
  DATA_TYPES,
  PASSAGE_TYPES,
  READING_QUESTION_TYPES,
  DataType,
  GeneratedPassage,
  GeneratedQuestionContent,
  GeneratedReadingQuestion,
  ImageReference,
  PassageType,
  PipelineResult,
  ReadingPipelineResult,
  ReadingQuestionType,
  SampledQuestionParams,
  SampledReadingParams,
)
from app.ai.pipeline.reading_data_templates import sample_question_params
from app.ai.pipeline.reading_question_templates import sample_reading_params
from app.jobs.models import DLQRecord
from app.services.dlq import DeadLetterQueue, DLQItemNotFoundError, DLQTransitionError
from app.utils.ids import generate_batch_id

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

DEFAULT_DATA_TYPES: tuple[DataType, ...] = ("bar_chart", "line_graph", "data_table")


@dataclass
class BatchSummary:
  batch_id: str
  total: int
  successful: int = 0
  failed: int = 0
  dlq_write_failures: int = 0
  results: list[dict[str, Any]] = field(default_factory=list)

  def to_document(self) -> dict[str, Any]:
    return {
      "batchId": self.batch_id,
      "total": self.total,
      "successful": self.successful,
      "failed": self.failed,
      "dlqWriteFailures": self.dlq_write_failures,
      "results": self.results,
    }


@dataclass
class RetrySummary:
  succeeded: int = 0
  failed: int = 0
  skipped: int = 0

  def to_document(self) -> dict[str, int]:
    return {"succeeded": self.succeeded, "failed": self.failed, "skipped": self.skipped}


def _check_choices(name: str, values: Sequence[str], allowed: Sequence[str]) -> list[str]:
  unknown = [value for value in values if value not in allowed]
  if unknown:
    raise ValueError(f"Unsupported {name}: {', '.join(unknown)}")
  return list(values)


class _Driver(ABC):
  """Shared pacing and DLQ plumbing for both pipelines."""

  batch_prefix = "batch"

  def __init__(self, dlq: DeadLetterQueue, *, batch_pacing_seconds: float, retry_pacing_seconds: float, sleep: Sleep = asyncio.sleep, rng: random.Random | None = None) -> None:
    self._dlq = dlq
    self._batch_pacing_seconds = batch_pacing_seconds
    self._retry_pacing_seconds = retry_pacing_seconds
    self._sleep = sleep
    self._rng = rng or random.Random()

  async def _pause(self, seconds: float) -> None:
    if seconds > 0:
      await self._sleep(seconds)

  async def _dead_letter(self, summary: BatchSummary, **fields: Any) -> str | None:
    try:
      record = await self._dlq.add(batch_id=summary.batch_id, **fields)
    except Exception:  # noqa: BLE001
      summary.dlq_write_failures += 1
      logger.error("Failed to add %s item to DLQ", fields.get("item_type"), exc_info=True)
      return None
    return record.id

  async def _claim(self, item_id: str, summary: RetrySummary) -> DLQRecord | None:
    try:
      existing = await self._dlq.get(item_id)
    except DLQItemNotFoundError:
      logger.info("DLQ item %s not found, skipping", item_id)
      summary.skipped += 1
      return None
    if existing.status != "pending":
      logger.info("DLQ item %s is %s, skipping", item_id, existing.status)
      summary.skipped += 1
      return None
    try:
      return await self._dlq.mark_retrying(item_id)
    except (DLQItemNotFoundError, DLQTransitionError) as exc:
      # Another sweep took the row between the read and the claim.
      logger.info("DLQ item %s skipped: %s", item_id, exc)
      summary.skipped += 1
      return None

  async def retry_items(self, item_ids: Sequence[str]) -> RetrySummary:
    """Run one retry attempt for each pending id, resuming from its stored artifacts."""
    summary = RetrySummary()
    logger.info("Retrying %d %s DLQ items", len(item_ids), self._dlq.pipeline)
    for item_id in item_ids:
      try:
        record = await self._claim(item_id, summary)
      except Exception:  # noqa: BLE001
        logger.error("Could not claim DLQ item %s", item_id, exc_info=True)
        summary.skipped += 1
        continue
      if record is None:
        continue
      try:
        succeeded = await self._retry_one(record)
      except (DLQItemNotFoundError, DLQTransitionError) as exc:
        logger.error("DLQ item %s changed under a running retry: %s", item_id, exc)
        summary.failed += 1
      except Exception:  # noqa: BLE001
        logger.error("DLQ retry of %s aborted; row may still be retrying", item_id, exc_info=True)
        summary.failed += 1
      else:
        if succeeded:
          summary.succeeded += 1
        else:
          summary.failed += 1
      await self._pause(self._retry_pacing_seconds)
    logger.info("DLQ retry complete: %d succeeded, %d failed, %d skipped", summary.succeeded, summary.failed, summary.skipped)
    return summary

  @abstractmethod
  async def _retry_one(self, record: DLQRecord) -> bool:
    """Resume one claimed row and write its outcome back; True on success."""


class ReadingDataWorker(_Driver):
  """Drives the chart pipeline: data -> image -> question -> storage."""

  batch_prefix = "reading-data"

  def __init__(self, deps: PipelineDeps, dlq: DeadLetterQueue, *, batch_pacing_seconds: float = 3.0, retry_pacing_seconds: float = 3.0, sleep: Sleep = asyncio.sleep, rng: random.Random | None = None) -> None:
    super().__init__(dlq, batch_pacing_seconds=batch_pacing_seconds, retry_pacing_seconds=retry_pacing_seconds, sleep=sleep, rng=rng)
    self._deps = deps

  async def generate_one(self, data_type: DataType, overrides: dict[str, Any] | None = None, *, batch_id: str | None = None) -> PipelineResult:
    _check_choices("data type", [data_type], DATA_TYPES)
    params = sample_question_params(self._rng, overrides)
    return await run_pipeline(self._deps, data_type, params, batch_id=batch_id)

  async def run_batch(self, count: int, data_types: Sequence[DataType] | None = None, batch_id: str | None = None) -> BatchSummary:
    """Generate ``count`` items, cycling through ``data_types``."""
    types = _check_choices("data type", data_types or DEFAULT_DATA_TYPES, DATA_TYPES)
    if not types:
      raise ValueError("data_types must not be empty")
    summary = BatchSummary(batch_id=batch_id or generate_batch_id(self.batch_prefix), total=count)
    logger.info("Starting batch %s: %d items over %s", summary.batch_id, count, ", ".join(types))

    for index in range(count):
      data_type = types[index % len(types)]
      params = sample_question_params(self._rng)
      logger.info("[%d/%d] %s (%s, %s)", index + 1, count, data_type, params.claim_type, params.domain)
      result = await run_pipeline(self._deps, data_type, params, batch_id=summary.batch_id)

      if result.success:
        summary.successful += 1
        summary.results.append({"index": index, "success": True, "dataType": data_type, "questionId": result.question_id, "imageId": result.image_id, "chartTitle": result.chart_title})
      else:
        summary.failed += 1
        dlq_id = await self._dead_letter(
          summary,
          item_type=data_type,
          sampled_params=params.to_document(),
          error=result.error,
          error_stage=result.error_stage,
          last_artifact=result.last_artifact(),
        )
        summary.results.append({"index": index, "success": False, "dataType": data_type, "error": result.error, "errorStage": result.error_stage, "dlqId": dlq_id})

      if index < count - 1:
        await self._pause(self._batch_pacing_seconds)

    logger.info("Batch %s complete: %d/%d succeeded, %d sent to DLQ", summary.batch_id, summary.successful, count, summary.failed - summary.dlq_write_failures)
    return summary

  async def _retry_one(self, record: DLQRecord) -> bool:
    artifact = record.last_artifact or {}
    try:
      params = SampledQuestionParams.model_validate(record.sampled_params)
      data_type = _check_choices("data type", [record.item_type], DATA_TYPES)[0]
      image = ImageReference.model_validate(artifact["image"]) if artifact.get("image") else None
      question = GeneratedQuestionContent.model_validate(artifact["question"]) if artifact.get("question") else None
      if "chartData" in artifact:
        problems = chart_data_problems(data_type, artifact["chartData"])
        if problems:
          raise ValueError(f"invalid chartData: {', '.join(problems)}")
    except (ValidationError, ValueError) as exc:
      logger.error("DLQ item %s has unreadable resume state: %s", record.id, exc)
      await self._dlq.mark_failed(record.id, error=f"Unreadable DLQ state: {error_message(exc)}", error_stage=record.error_stage, last_artifact=record.last_artifact)
      return False

    result = await run_pipeline(self._deps, data_type, params, batch_id=record.batch_id, existing_chart_data=artifact.get("chartData"), existing_image=image, existing_question=question)
    if result.success:
      await self._dlq.mark_succeeded(record.id, question_id=result.question_id, image_id=result.image_id)
      return True
    await self._dlq.mark_failed(record.id, error=result.error, error_stage=result.error_stage, last_artifact=result.last_artifact())
    return False


class ReadingQuestionWorker(_Driver):
  """Drives the passage pipeline: passage -> question -> storage."""

  batch_prefix = "reading"

  def __init__(self, deps: ReadingPipelineDeps, dlq: DeadLetterQueue, *, batch_pacing_seconds: float = 0.5, retry_pacing_seconds: float = 2.0, sleep: Sleep = asyncio.sleep, rng: random.Random | None = None) -> None:
    super().__init__(dlq, batch_pacing_seconds=batch_pacing_seconds, retry_pacing_seconds=retry_pacing_seconds, sleep=sleep, rng=rng)
    self._deps = deps

  async def generate_one(self, overrides: dict[str, Any] | None = None, *, batch_id: str | None = None) -> ReadingPipelineResult:
    params = sample_reading_params(self._rng, overrides)
    return await run_reading_pipeline(self._deps, params, batch_id=batch_id)

  async def run_batch(
    self,
    count: int,
    question_types: Sequence[ReadingQuestionType] | None = None,
    passage_types: Sequence[PassageType] | None = None,
    batch_id: str | None = None,
  ) -> BatchSummary:
    """Generate ``count`` items; given type lists are cycled, otherwise types are sampled."""
    q_types = _check_choices("question type", question_types or (), READING_QUESTION_TYPES)
    p_types = _check_choices("passage type", passage_types or (), PASSAGE_TYPES)
    summary = BatchSummary(batch_id=batch_id or generate_batch_id(self.batch_prefix), total=count)
    logger.info("Starting batch %s: %d reading questions", summary.batch_id, count)

    for index in range(count):
      overrides = {
        "question_type": q_types[index % len(q_types)] if q_types else None,
        "passage_type": p_types[index % len(p_types)] if p_types else None,
      }
      params = sample_reading_params(self._rng, overrides)
      logger.info("[%d/%d] %s (%s)", index + 1, count, params.question_type, params.passage_type)
      result = await run_reading_pipeline(self._deps, params, batch_id=summary.batch_id)

      if result.success:
        summary.successful += 1
        summary.results.append({"index": index, "success": True, "questionType": params.question_type, "passageType": params.passage_type, "questionId": result.question_id, "passageId": result.passage_id})
      else:
        summary.failed += 1
        dlq_id = await self._dead_letter(
          summary,
          item_type=params.question_type,
          variant=params.passage_type,
          sampled_params=params.to_document(),
          error=result.error,
          error_stage=result.error_stage,
          last_artifact=result.last_artifact(),
        )
        summary.results.append({"index": index, "success": False, "questionType": params.question_type, "passageType": params.passage_type, "error": result.error, "errorStage": result.error_stage, "dlqId": dlq_id})

      if index < count - 1:
        await self._pause(self._batch_pacing_seconds)

    logger.info("Batch %s complete: %d/%d succeeded, %d sent to DLQ", summary.batch_id, summary.successful, count, summary.failed - summary.dlq_write_failures)
    return summary

  async def _retry_one(self, record: DLQRecord) -> bool:
    artifact = record.last_artifact or {}
    try:
      params = SampledReadingParams.model_validate(record.sampled_params)
      passage = GeneratedPassage.model_validate(artifact["passage"]) if artifact.get("passage") else None
      question = GeneratedReadingQuestion.model_validate(artifact["question"]) if artifact.get("question") else None
    except ValidationError as exc:
      logger.error("DLQ item %s has unreadable resume state: %s", record.id, exc)
      await self._dlq.mark_failed(record.id, error=f"Unreadable DLQ state: {error_message(exc)}", error_stage=record.error_stage, last_artifact=record.last_artifact)
      return False

    result = await run_reading_pipeline(self._deps, params, batch_id=record.batch_id, existing_passage=passage, existing_question=question, existing_passage_id=artifact.get("passageId"))
    if result.success:
      await self._dlq.mark_succeeded(record.id, question_id=result.question_id, passage_id=result.passage_id)
      return True
    await self._dlq.mark_failed(record.id, error=result.error, error_stage=result.error_stage, last_artifact=result.last_artifact())
    return False
