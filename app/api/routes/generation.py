"""Operator endpoints that start generation runs."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.ai.pipeline.contracts import PipelineResult, ReadingPipelineResult
from app.api.deps import get_reading_data_worker, get_reading_question_worker, require_admin_token
from app.api.models import BatchScheduledResponse, GenerationResultResponse, ReadingDataBatchRequest, ReadingDataRequest, ReadingQuestionBatchRequest, ReadingQuestionRequest
from app.jobs.worker import ReadingDataWorker, ReadingQuestionWorker
from app.utils.ids import generate_batch_id

router = APIRouter(dependencies=[Depends(require_admin_token)])
logger = logging.getLogger(__name__)


def _result_response(result: PipelineResult | ReadingPipelineResult) -> GenerationResultResponse:
  sampled = result.sampled_params.to_document()
  if result.success:
    return GenerationResultResponse(
      success=True,
      question_id=result.question_id,
      image_id=getattr(result, "image_id", None),
      passage_id=getattr(result, "passage_id", None),
      sampled_params=sampled,
    )
  return GenerationResultResponse(success=False, error=result.error, error_stage=result.error_stage, passage_id=getattr(result, "passage_id", None), sampled_params=sampled)


@router.post("/reading-data", response_model=GenerationResultResponse)
async def generate_reading_data_question(
  payload: ReadingDataRequest,
  worker: ReadingDataWorker = Depends(get_reading_data_worker),  # noqa: B008
) -> GenerationResultResponse:
  """Run the chart pipeline for one item and wait for the outcome."""
  result = await worker.generate_one(payload.data_type, payload.overrides())
  return _result_response(result)


@router.post("/reading-data/batch", response_model=BatchScheduledResponse, status_code=status.HTTP_202_ACCEPTED)
async def schedule_reading_data_batch(
  payload: ReadingDataBatchRequest,
  background_tasks: BackgroundTasks,
  worker: ReadingDataWorker = Depends(get_reading_data_worker),  # noqa: B008
) -> BatchScheduledResponse:
  """Start a chart batch in the background; failures land in the reading_data DLQ."""
  batch_id = payload.batch_id or generate_batch_id(ReadingDataWorker.batch_prefix)
  background_tasks.add_task(worker.run_batch, payload.count, payload.data_types, batch_id)
  logger.info("Scheduled reading-data batch %s (%d items)", batch_id, payload.count)
  return BatchScheduledResponse(batch_id=batch_id, count=payload.count)


@router.post("/reading-questions", response_model=GenerationResultResponse)
async def generate_reading_question(
  payload: ReadingQuestionRequest,
  worker: ReadingQuestionWorker = Depends(get_reading_question_worker),  # noqa: B008
) -> GenerationResultResponse:
  """Run the passage pipeline for one item and wait for the outcome."""
  result = await worker.generate_one(payload.model_dump(exclude_none=True))
  return _result_response(result)


@router.post("/reading-questions/batch", response_model=BatchScheduledResponse, status_code=status.HTTP_202_ACCEPTED)
async def schedule_reading_question_batch(
  payload: ReadingQuestionBatchRequest,
  background_tasks: BackgroundTasks,
  worker: ReadingQuestionWorker = Depends(get_reading_question_worker),  # noqa: B008
) -> BatchScheduledResponse:
  batch_id = payload.batch_id or generate_batch_id(ReadingQuestionWorker.batch_prefix)
  background_tasks.add_task(worker.run_batch, payload.count, payload.question_types, payload.passage_types, batch_id)
  logger.info("Scheduled reading-question batch %s (%d items)", batch_id, payload.count)
  return BatchScheduledResponse(batch_id=batch_id, count=payload.count)
