"""Factories that wire generation pipelines, DLQs and drivers from settings."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache

from app.ai.orchestrator import PipelineDeps
from app.ai.passage_orchestrator import ReadingPipelineDeps
from app.ai.providers.anthropic import AnthropicTextClient
from app.ai.providers.gemini import GeminiImageClient
from app.config import Settings
from app.jobs.dispatch import RetryHandlerRegistry
from app.jobs.models import PipelineKind
from app.jobs.worker import ReadingDataWorker, ReadingQuestionWorker, RetrySummary
from app.services.dlq import DeadLetterQueue
from app.services.media_store import GcsImageStore
from app.services.storage_client import build_storage_client
from app.storage.dlq_repo import DLQRepository
from app.storage.postgres_dlq_repo import PostgresDLQRepository
from app.storage.postgres_questions_repo import PostgresImageMetadataRepository, PostgresPassageRepository, PostgresQuestionRepository


@lru_cache(maxsize=1)
def _get_text_client(settings: Settings) -> AnthropicTextClient:
  return AnthropicTextClient(settings.text_model, settings.anthropic_api_key)


@lru_cache(maxsize=1)
def _get_image_client(settings: Settings) -> GeminiImageClient:
  return GeminiImageClient(settings.image_model, settings.gemini_api_key)


@lru_cache(maxsize=1)
def _get_image_store(settings: Settings) -> GcsImageStore:
  return GcsImageStore(build_storage_client(settings), PostgresImageMetadataRepository(), object_prefix=settings.image_object_prefix)


def _get_dlq_repo(settings: Settings) -> DLQRepository:
  _ = settings
  return PostgresDLQRepository()


def build_dead_letter_queue(pipeline: PipelineKind, settings: Settings) -> DeadLetterQueue:
  return DeadLetterQueue(_get_dlq_repo(settings), pipeline, max_retries=settings.dlq_max_retries)


def build_reading_data_worker(settings: Settings) -> ReadingDataWorker:
  deps = PipelineDeps(
    text_client=_get_text_client(settings),
    image_client=_get_image_client(settings),
    image_store=_get_image_store(settings),
    questions=PostgresQuestionRepository(),
  )
  return ReadingDataWorker(
    deps,
    build_dead_letter_queue("reading_data", settings),
    batch_pacing_seconds=settings.reading_data_batch_pacing_seconds,
    retry_pacing_seconds=settings.reading_data_retry_pacing_seconds,
  )


def build_reading_question_worker(settings: Settings) -> ReadingQuestionWorker:
  deps = ReadingPipelineDeps(text_client=_get_text_client(settings), questions=PostgresQuestionRepository(), passages=PostgresPassageRepository())
  return ReadingQuestionWorker(
    deps,
    build_dead_letter_queue("reading_question", settings),
    batch_pacing_seconds=settings.reading_question_batch_pacing_seconds,
    retry_pacing_seconds=settings.reading_question_retry_pacing_seconds,
  )


def build_retry_registry(settings: Settings) -> RetryHandlerRegistry:
  """Retry handlers are built lazily so one pipeline's missing API key does not block the other."""

  class _LazyHandler:
    def __init__(self, pipeline: PipelineKind) -> None:
      self._pipeline = pipeline

    async def retry_items(self, item_ids: Sequence[str]) -> RetrySummary:
      worker = build_reading_data_worker(settings) if self._pipeline == "reading_data" else build_reading_question_worker(settings)
      return await worker.retry_items(item_ids)

  return RetryHandlerRegistry({"reading_data": _LazyHandler("reading_data"), "reading_question": _LazyHandler("reading_question")})
