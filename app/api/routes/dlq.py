"""Operator endpoints for inspecting and draining the generation DLQs."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

import msgspec
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from starlette.responses import Response

from app.api.deps import get_dead_letter_queue, get_retry_registry, require_admin_token
from app.api.models import ClearResponse, DLQStatsResponse, RetryScheduledResponse
from app.api.msgspec_utils import encode_msgspec_response
from app.jobs.dispatch import RetryHandlerRegistry, run_retry_pass
from app.jobs.models import DLQRecord
from app.services.dlq import DEFAULT_RECENT_LIMIT, DeadLetterQueue

router = APIRouter(dependencies=[Depends(require_admin_token)])
logger = logging.getLogger(__name__)


class DLQItemView(msgspec.Struct, rename="camel"):
  """Camel-cased DLQ row, serialized with msgspec to skip Pydantic conversions."""

  id: str
  pipeline: str
  item_type: str
  variant: str | None
  sampled_params: dict[str, Any]
  last_artifact: dict[str, Any] | None
  batch_id: str | None
  error: str
  error_stage: str
  retry_count: int
  max_retries: int
  status: str
  last_attempt_at: str
  created_at: str
  question_id: str | None
  image_id: str | None
  passage_id: str | None


class DLQItemList(msgspec.Struct):
  items: list[DLQItemView]
  total: int


def _view(record: DLQRecord) -> DLQItemView:
  return DLQItemView(**asdict(record))


def _list_response(records: list[DLQRecord]) -> Response:
  return encode_msgspec_response(DLQItemList(items=[_view(record) for record in records], total=len(records)))


@router.get("/{pipeline}/stats", response_model=DLQStatsResponse)
async def get_dlq_stats(dlq: DeadLetterQueue = Depends(get_dead_letter_queue)) -> DLQStatsResponse:  # noqa: B008
  return DLQStatsResponse(**await dlq.get_stats())


@router.get("/{pipeline}/pending")
async def list_pending_items(dlq: DeadLetterQueue = Depends(get_dead_letter_queue)) -> Response:  # noqa: B008
  return _list_response(await dlq.list_pending())


@router.get("/{pipeline}/recent")
async def list_recent_items(
  limit: int = Query(default=DEFAULT_RECENT_LIMIT, ge=1, le=200),
  dlq: DeadLetterQueue = Depends(get_dead_letter_queue),  # noqa: B008
) -> Response:
  """Newest DLQ rows first, in every status."""
  return _list_response(await dlq.list_recent(limit))


@router.get("/{pipeline}/items/{item_id}")
async def get_item(item_id: str, dlq: DeadLetterQueue = Depends(get_dead_letter_queue)) -> Response:  # noqa: B008
  record = await dlq.get(item_id)
  return encode_msgspec_response(_view(record))


@router.post("/{pipeline}/retry", response_model=RetryScheduledResponse)
async def retry_pending_items(
  background_tasks: BackgroundTasks,
  dlq: DeadLetterQueue = Depends(get_dead_letter_queue),  # noqa: B008
  registry: RetryHandlerRegistry = Depends(get_retry_registry),  # noqa: B008
) -> RetryScheduledResponse:
  """Schedule one background retry pass over every pending item."""

  def _schedule(item_ids: list[str]) -> None:
    background_tasks.add_task(run_retry_pass, dlq.pipeline, item_ids, registry)

  return RetryScheduledResponse(**await dlq.retry_pending_items(_schedule))


@router.post("/{pipeline}/clear-succeeded", response_model=ClearResponse)
async def clear_succeeded_items(dlq: DeadLetterQueue = Depends(get_dead_letter_queue)) -> ClearResponse:  # noqa: B008
  return ClearResponse(deleted=await dlq.clear_succeeded())


@router.post("/{pipeline}/clear-all", response_model=ClearResponse)
async def clear_all_items(dlq: DeadLetterQueue = Depends(get_dead_letter_queue)) -> ClearResponse:  # noqa: B008
  logger.warning("Operator cleared every %s DLQ item", dlq.pipeline)
  return ClearResponse(deleted=await dlq.clear_all())
