"""Domain models for dead-letter queue items."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

DLQStatus = Literal["pending", "retrying", "succeeded", "failed_permanently"]
PipelineKind = Literal["reading_data", "reading_question"]

DLQ_STATUSES: tuple[DLQStatus, ...] = ("pending", "retrying", "succeeded", "failed_permanently")
TERMINAL_STATUSES: frozenset[str] = frozenset({"succeeded", "failed_permanently"})
PIPELINE_KINDS: tuple[PipelineKind, ...] = ("reading_data", "reading_question")


@dataclass
class DLQRecord:
  """A failed generation work item plus everything needed to resume it."""

  id: str
  pipeline: PipelineKind
  item_type: str
  sampled_params: dict[str, Any]
  error: str
  error_stage: str
  status: DLQStatus
  retry_count: int
  max_retries: int
  last_attempt_at: str
  created_at: str
  variant: str | None = None
  last_artifact: dict[str, Any] | None = None
  batch_id: str | None = None
  question_id: str | None = None
  image_id: str | None = None
  passage_id: str | None = None

  @property
  def is_terminal(self) -> bool:
    return self.status in TERMINAL_STATUSES
