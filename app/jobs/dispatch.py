"""Dispatch of scheduled DLQ retry passes to the owning pipeline driver."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from app.jobs.models import PipelineKind
from app.jobs.worker import RetrySummary

logger = logging.getLogger(__name__)


class RetryHandler(Protocol):
  """Driver contract for retrying DLQ items of one pipeline."""

  async def retry_items(self, item_ids: Sequence[str]) -> RetrySummary:
    """Retry the given DLQ ids and summarize the outcome."""


class RetryHandlerRegistry:
  """Registry mapping pipelines to retry handlers."""

  def __init__(self, handlers: dict[str, RetryHandler]) -> None:
    self._handlers = handlers

  def resolve(self, pipeline: str) -> RetryHandler:
    handler = self._handlers.get(pipeline)
    if handler is None:
      raise ValueError(f"Unsupported pipeline: {pipeline}")
    return handler


async def run_retry_pass(pipeline: PipelineKind, item_ids: Sequence[str], registry: RetryHandlerRegistry) -> RetrySummary | None:
  """Run one scheduled retry pass; used as a background task, so failures are logged."""
  handler = registry.resolve(pipeline)
  try:
    return await handler.retry_items(item_ids)
  except Exception:  # noqa: BLE001
    logger.error("Retry pass for %s over %d items aborted", pipeline, len(item_ids), exc_info=True)
    return None
