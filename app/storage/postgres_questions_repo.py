"""Postgres repositories for generated questions, passages and figure images."""

from __future__ import annotations

import logging
from typing import Any

from app.core.database import get_session_factory
from app.schema.generation import FigureImage, Passage, Question
from app.storage.questions_repo import ImageMetadata, PassageRecord
from app.utils.db_retry import execute_with_retry
from app.utils.ids import generate_record_id

logger = logging.getLogger(__name__)


def overall_difficulty(rw_difficulty: dict[str, Any]) -> float:
  """Mean of the numeric reading/writing difficulty factors."""
  factors = [float(value) for value in rw_difficulty.values() if isinstance(value, (int, float))]
  if not factors:
    return 0.5
  return sum(factors) / len(factors)


class _PostgresRepository:
  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")


class PostgresQuestionRepository(_PostgresRepository):
  """Persist question documents assembled by the pipelines."""

  async def create_question(self, document: dict[str, Any]) -> str:
    question_id = generate_record_id()
    rw_difficulty = dict(document.get("rwDifficulty") or {})

    async def _insert() -> None:
      async with self._session_factory() as session:
        session.add(
          Question(
            id=question_id,
            type=document["type"],
            category=document["category"],
            domain=document["domain"],
            skill=document["skill"],
            prompt=document["prompt"],
            passage_id=document.get("passageId"),
            figure=document.get("figure"),
            correct_answer=document["correctAnswer"],
            options=document["options"],
            explanation=document["explanation"],
            wrong_answer_explanations=document.get("wrongAnswerExplanations"),
            rw_difficulty=rw_difficulty,
            overall_difficulty=overall_difficulty(rw_difficulty),
            generation_metadata=document["generationMetadata"],
            tags=list(document.get("tags") or []),
            generation_batch_id=document.get("generationBatchId"),
          )
        )
        await session.commit()

    await execute_with_retry(operation_name="questions.create", func=_insert)
    logger.debug("Stored question %s (%s/%s)", question_id, document["domain"], document["skill"])
    return question_id


class PostgresPassageRepository(_PostgresRepository):
  async def create_passage(self, record: PassageRecord) -> str:
    passage_id = generate_record_id()

    async def _insert() -> None:
      async with self._session_factory() as session:
        session.add(
          Passage(
            id=passage_id,
            title=record.title,
            author=record.author,
            content=record.content,
            source=record.source,
            passage_type=record.passage_type,
            complexity=record.complexity,
            analyzed_features=record.analyzed_features,
          )
        )
        await session.commit()

    await execute_with_retry(operation_name="passages.create", func=_insert)
    return passage_id


class PostgresImageMetadataRepository(_PostgresRepository):
  async def store_image_metadata(self, metadata: ImageMetadata) -> str:
    image_id = generate_record_id()

    async def _insert() -> None:
      async with self._session_factory() as session:
        session.add(
          FigureImage(
            id=image_id,
            storage_bucket=metadata.storage_bucket,
            storage_object_name=metadata.storage_object_name,
            mime_type=metadata.mime_type,
            width=metadata.width,
            height=metadata.height,
            aspect_ratio=metadata.aspect_ratio,
            alt_text=metadata.alt_text,
          )
        )
        await session.commit()

    await execute_with_retry(operation_name="figure_images.create", func=_insert)
    return image_id
