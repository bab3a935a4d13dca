"""Storage interfaces for dead-letter queue items."""

from __future__ import annotations

from typing import Any, Literal, Protocol

from app.jobs.models import DLQRecord, DLQStatus, PipelineKind

CountField = Literal["status", "item_type", "error_stage"]


class DLQRepository(Protocol):
  """Repository contract for DLQ persistence.

  Transition methods are conditional on the current status and return ``None``
  when the row is missing or not in the expected source state.
  """

  async def insert(self, record: DLQRecord) -> None:
    """Persist a new DLQ row."""

  async def get(self, item_id: str) -> DLQRecord | None:
    """Fetch one row by id."""

  async def claim_for_retry(self, item_id: str, *, attempted_at: str) -> DLQRecord | None:
    """Move a pending row to retrying and bump its retry count."""

  async def complete(self, item_id: str, *, question_id: str, image_id: str | None, passage_id: str | None, attempted_at: str) -> DLQRecord | None:
    """Move a retrying row to succeeded and stamp the produced ids."""

  async def record_failure(self, item_id: str, *, error: str, error_stage: str, last_artifact: dict[str, Any] | None, attempted_at: str) -> DLQRecord | None:
    """Return a retrying row to pending, or to failed_permanently once retries are spent."""

  async def list_by_status(self, pipeline: PipelineKind, status: DLQStatus, limit: int | None = None) -> list[DLQRecord]:
    """Rows in one status, oldest first."""

  async def list_recent(self, pipeline: PipelineKind, limit: int) -> list[DLQRecord]:
    """Newest rows first."""

  async def count_by(self, pipeline: PipelineKind, field: CountField) -> dict[str, int]:
    """Row counts grouped by one column."""

  async def delete_by_status(self, pipeline: PipelineKind, status: DLQStatus) -> int:
    """Delete rows in one status and return how many were removed."""

  async def delete_all(self, pipeline: PipelineKind) -> int:
    """Delete every row of a pipeline and return how many were removed."""
