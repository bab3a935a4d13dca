"""Dead-letter queue for failed generation items.

Status moves ``pending -> retrying -> succeeded | pending | failed_permanently``.
``retry_count`` is bumped when an attempt starts and never decreases; the retry
budget is fixed when the row is created. ``succeeded`` and ``failed_permanently``
are never left except through the operator bulk deletes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, NoReturn

from app.jobs.models import DLQ_STATUSES, DLQRecord, PipelineKind
from app.storage.dlq_repo import DLQRepository
from app.utils.ids import generate_record_id

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RECENT_LIMIT = 20


class DLQItemNotFoundError(LookupError):
  """Raised when a DLQ id does not exist."""

  def __init__(self, item_id: str) -> None:
    super().__init__(f"DLQ item {item_id} not found")
    self.item_id = item_id


class DLQTransitionError(RuntimeError):
  """Raised when a DLQ item is not in the state a transition requires."""

  def __init__(self, item_id: str, current: str, target: str) -> None:
    super().__init__(f"DLQ item {item_id} cannot move from {current} to {target}")
    self.item_id = item_id
    self.current = current
    self.target = target


def _now_iso() -> str:
  return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DeadLetterQueue:
  """State machine over a DLQ repository, scoped to one pipeline."""

  def __init__(self, repo: DLQRepository, pipeline: PipelineKind, *, max_retries: int = DEFAULT_MAX_RETRIES, clock: Callable[[], str] = _now_iso) -> None:
    if max_retries <= 0:
      raise ValueError("max_retries must be positive")
    self._repo = repo
    self.pipeline = pipeline
    self.max_retries = max_retries
    self._clock = clock

  async def add(
    self,
    *,
    item_type: str,
    sampled_params: dict[str, Any],
    error: str,
    error_stage: str,
    last_artifact: dict[str, Any] | None = None,
    batch_id: str | None = None,
    variant: str | None = None,
  ) -> DLQRecord:
    """Record a first-time failure as a pending item."""
    now = self._clock()
    record = DLQRecord(
      id=generate_record_id(),
      pipeline=self.pipeline,
      item_type=item_type,
      variant=variant,
      sampled_params=sampled_params,
      last_artifact=last_artifact or None,
      batch_id=batch_id,
      error=error,
      error_stage=error_stage,
      status="pending",
      retry_count=0,
      max_retries=self.max_retries,
      last_attempt_at=now,
      created_at=now,
    )
    await self._repo.insert(record)
    logger.info("Added %s item %s to DLQ (stage=%s): %s", self.pipeline, record.id, error_stage, error)
    return record

  async def get(self, item_id: str) -> DLQRecord:
    record = await self._repo.get(item_id)
    if record is None or record.pipeline != self.pipeline:
      raise DLQItemNotFoundError(item_id)
    return record

  async def mark_retrying(self, item_id: str) -> DLQRecord:
    """Claim a pending item for one attempt; the retry count is bumped up front."""
    record = await self._repo.claim_for_retry(item_id, attempted_at=self._clock())
    if record is None:
      await self._raise_transition(item_id, "retrying")
    logger.info("Retrying DLQ item %s (attempt %d/%d)", item_id, record.retry_count, record.max_retries)
    return record

  async def mark_succeeded(self, item_id: str, *, question_id: str, image_id: str | None = None, passage_id: str | None = None) -> DLQRecord:
    record = await self._repo.complete(item_id, question_id=question_id, image_id=image_id, passage_id=passage_id, attempted_at=self._clock())
    if record is None:
      await self._raise_transition(item_id, "succeeded")
    logger.info("DLQ item %s succeeded with question %s", item_id, question_id)
    return record

  async def mark_failed(self, item_id: str, *, error: str, error_stage: str, last_artifact: dict[str, Any] | None = None) -> DLQRecord:
    """Store the latest failure; the item returns to pending until its retries are spent."""
    record = await self._repo.record_failure(item_id, error=error, error_stage=error_stage, last_artifact=last_artifact or None, attempted_at=self._clock())
    if record is None:
      await self._raise_transition(item_id, "failed")
    if record.status == "failed_permanently":
      logger.error("DLQ item %s failed permanently after %d attempts (stage=%s): %s", item_id, record.retry_count, error_stage, error)
    else:
      logger.warning("DLQ item %s failed again (attempt %d/%d, stage=%s): %s", item_id, record.retry_count, record.max_retries, error_stage, error)
    return record

  async def list_pending(self) -> list[DLQRecord]:
    return await self._repo.list_by_status(self.pipeline, "pending")

  async def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[DLQRecord]:
    return await self._repo.list_recent(self.pipeline, max(1, limit))

  async def retry_pending_items(self, schedule: Callable[[list[str]], Any]) -> dict[str, Any]:
    """Hand every pending id to ``schedule`` as a single retry pass."""
    pending = await self.list_pending()
    if not pending:
      return {"message": "No pending items to retry", "count": 0}
    item_ids = [record.id for record in pending]
    schedule(item_ids)
    logger.info("Scheduled %s DLQ retry for %d items", self.pipeline, len(item_ids))
    return {"message": f"Scheduled retry for {len(item_ids)} items", "count": len(item_ids)}

  async def clear_succeeded(self) -> int:
    removed = await self._repo.delete_by_status(self.pipeline, "succeeded")
    logger.info("Cleared %d succeeded %s DLQ items", removed, self.pipeline)
    return removed

  async def clear_all(self) -> int:
    removed = await self._repo.delete_all(self.pipeline)
    logger.warning("Cleared all %d %s DLQ items", removed, self.pipeline)
    return removed

  async def get_stats(self) -> dict[str, Any]:
    by_status = await self._repo.count_by(self.pipeline, "status")
    return {
      "total": sum(by_status.values()),
      **{_stat_key(status): by_status.get(status, 0) for status in DLQ_STATUSES},
      "byItemType": await self._repo.count_by(self.pipeline, "item_type"),
      "byErrorStage": await self._repo.count_by(self.pipeline, "error_stage"),
    }

  async def _raise_transition(self, item_id: str, target: str) -> NoReturn:
    current = await self._repo.get(item_id)
    if current is None or current.pipeline != self.pipeline:
      raise DLQItemNotFoundError(item_id)
    raise DLQTransitionError(item_id, current.status, target)


def _stat_key(status: str) -> str:
  head, *rest = status.split("_")
  return head + "".join(part.capitalize() for part in rest)
