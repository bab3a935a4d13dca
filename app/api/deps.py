"""Shared FastAPI dependencies for operator auth and DLQ access."""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, Header, HTTPException, Path, status

from app.config import Settings, get_settings
from app.jobs.dispatch import RetryHandlerRegistry
from app.jobs.models import PipelineKind
from app.jobs.worker import ReadingDataWorker, ReadingQuestionWorker
from app.services.dlq import DeadLetterQueue
from app.services.generation import build_dead_letter_queue, build_reading_data_worker, build_reading_question_worker, build_retry_registry

logger = logging.getLogger(__name__)

ADMIN_TOKEN_HEADER = "X-SATGEN-Admin-Token"


async def require_admin_token(
  admin_token: str | None = Header(default=None, alias=ADMIN_TOKEN_HEADER),
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> None:
  """Reject requests that do not carry the configured operator token."""
  expected = settings.admin_token
  # Operator routes stay closed until a token is configured.
  if not expected:
    logger.warning("Rejected operator request: SATGEN_ADMIN_TOKEN is not configured")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operator access is disabled.")
  if not admin_token or not secrets.compare_digest(admin_token, expected):
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid operator token.")


async def get_dead_letter_queue(
  pipeline: PipelineKind = Path(...),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> DeadLetterQueue:
  """Resolve the DLQ for the pipeline named in the path."""
  return build_dead_letter_queue(pipeline, settings)


def _provider_unavailable(exc: ValueError) -> HTTPException:
  logger.error("Generation provider is not configured: %s", exc)
  return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Generation provider is not configured.")


async def get_reading_data_worker(settings: Settings = Depends(get_settings)) -> ReadingDataWorker:  # noqa: B008
  try:
    return build_reading_data_worker(settings)
  except ValueError as exc:
    raise _provider_unavailable(exc) from exc


async def get_reading_question_worker(settings: Settings = Depends(get_settings)) -> ReadingQuestionWorker:  # noqa: B008
  try:
    return build_reading_question_worker(settings)
  except ValueError as exc:
    raise _provider_unavailable(exc) from exc


async def get_retry_registry(settings: Settings = Depends(get_settings)) -> RetryHandlerRegistry:  # noqa: B008
  return build_retry_registry(settings)
