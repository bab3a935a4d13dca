"""Postgres-backed repository for DLQ items using SQLAlchemy."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session_factory
from app.jobs.models import DLQRecord, DLQStatus, PipelineKind
from app.schema.generation import GenerationDLQItem
from app.storage.dlq_repo import CountField, DLQRepository
from app.utils.db_retry import execute_with_retry

_COUNT_COLUMNS = {
  "status": GenerationDLQItem.status,
  "item_type": GenerationDLQItem.item_type,
  "error_stage": GenerationDLQItem.error_stage,
}


def _parse_ts(value: str) -> datetime:
  return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _format_ts(value: datetime) -> str:
  return value.isoformat().replace("+00:00", "Z")


class PostgresDLQRepository(DLQRepository):
  """Persist DLQ rows to Postgres; transitions lock the row with SKIP LOCKED."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def insert(self, record: DLQRecord) -> None:
    async def _insert() -> None:
      async with self._session_factory() as session:
        session.add(
          GenerationDLQItem(
            id=record.id,
            pipeline=record.pipeline,
            item_type=record.item_type,
            variant=record.variant,
            sampled_params=record.sampled_params,
            last_artifact=record.last_artifact,
            batch_id=record.batch_id,
            error=record.error,
            error_stage=record.error_stage,
            retry_count=record.retry_count,
            max_retries=record.max_retries,
            status=record.status,
            last_attempt_at=_parse_ts(record.last_attempt_at),
            created_at=_parse_ts(record.created_at),
            question_id=record.question_id,
            image_id=record.image_id,
            passage_id=record.passage_id,
          )
        )
        await session.commit()

    await execute_with_retry(operation_name="dlq.insert", func=_insert)

  async def get(self, item_id: str) -> DLQRecord | None:
    async with self._session_factory() as session:
      row = await session.get(GenerationDLQItem, item_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def claim_for_retry(self, item_id: str, *, attempted_at: str) -> DLQRecord | None:
    async with self._session_factory() as session:
      row = await self._lock_in_status(session, item_id, "pending")
      if row is None:
        return None
      row.status = "retrying"
      row.retry_count = row.retry_count + 1
      row.last_attempt_at = _parse_ts(attempted_at)
      await session.commit()
      await session.refresh(row)
      return self._model_to_record(row)

  async def complete(self, item_id: str, *, question_id: str, image_id: str | None, passage_id: str | None, attempted_at: str) -> DLQRecord | None:
    async with self._session_factory() as session:
      row = await self._lock_in_status(session, item_id, "retrying")
      if row is None:
        return None
      row.status = "succeeded"
      row.question_id = question_id
      if image_id is not None:
        row.image_id = image_id
      if passage_id is not None:
        row.passage_id = passage_id
      row.last_attempt_at = _parse_ts(attempted_at)
      await session.commit()
      await session.refresh(row)
      return self._model_to_record(row)

  async def record_failure(self, item_id: str, *, error: str, error_stage: str, last_artifact: dict[str, Any] | None, attempted_at: str) -> DLQRecord | None:
    async with self._session_factory() as session:
      row = await self._lock_in_status(session, item_id, "retrying")
      if row is None:
        return None
      row.status = "pending" if row.retry_count < row.max_retries else "failed_permanently"
      row.error = error
      row.error_stage = error_stage
      row.last_artifact = last_artifact
      row.last_attempt_at = _parse_ts(attempted_at)
      await session.commit()
      await session.refresh(row)
      return self._model_to_record(row)

  async def list_by_status(self, pipeline: PipelineKind, status: DLQStatus, limit: int | None = None) -> list[DLQRecord]:
    async with self._session_factory() as session:
      stmt = select(GenerationDLQItem).where(GenerationDLQItem.pipeline == pipeline, GenerationDLQItem.status == status).order_by(GenerationDLQItem.created_at.asc())
      if limit is not None:
        stmt = stmt.limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._model_to_record(row) for row in rows]

  async def list_recent(self, pipeline: PipelineKind, limit: int) -> list[DLQRecord]:
    async with self._session_factory() as session:
      stmt = select(GenerationDLQItem).where(GenerationDLQItem.pipeline == pipeline).order_by(GenerationDLQItem.created_at.desc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._model_to_record(row) for row in rows]

  async def count_by(self, pipeline: PipelineKind, field: CountField) -> dict[str, int]:
    column = _COUNT_COLUMNS[field]
    async with self._session_factory() as session:
      stmt = select(column, func.count()).where(GenerationDLQItem.pipeline == pipeline).group_by(column)
      rows = (await session.execute(stmt)).all()
      return {str(key): int(count) for key, count in rows}

  async def delete_by_status(self, pipeline: PipelineKind, status: DLQStatus) -> int:
    async with self._session_factory() as session:
      result = await session.execute(delete(GenerationDLQItem).where(GenerationDLQItem.pipeline == pipeline, GenerationDLQItem.status == status))
      await session.commit()
      return int(result.rowcount or 0)

  async def delete_all(self, pipeline: PipelineKind) -> int:
    async with self._session_factory() as session:
      result = await session.execute(delete(GenerationDLQItem).where(GenerationDLQItem.pipeline == pipeline))
      await session.commit()
      return int(result.rowcount or 0)

  async def _lock_in_status(self, session: AsyncSession, item_id: str, status: DLQStatus) -> GenerationDLQItem | None:
    # A row held by another sweep is skipped rather than waited on.
    stmt = select(GenerationDLQItem).where(GenerationDLQItem.id == item_id, GenerationDLQItem.status == status).with_for_update(skip_locked=True)
    return (await session.execute(stmt)).scalar_one_or_none()

  def _model_to_record(self, row: GenerationDLQItem) -> DLQRecord:
    return DLQRecord(
      id=row.id,
      pipeline=row.pipeline,
      item_type=row.item_type,
      variant=row.variant,
      sampled_params=dict(row.sampled_params or {}),
      last_artifact=row.last_artifact,
      batch_id=row.batch_id,
      error=row.error,
      error_stage=row.error_stage,
      retry_count=int(row.retry_count),
      max_retries=int(row.max_retries),
      status=row.status,
      last_attempt_at=_format_ts(row.last_attempt_at),
      created_at=_format_ts(row.created_at),
      question_id=row.question_id,
      image_id=row.image_id,
      passage_id=row.passage_id,
    )
