from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from app.ai.pipeline.contracts import ClaimType, DataDomain, DataType, PassageLength, PassageType, QuestionFocus, QuestionPosition, ReadingQuestionType, TargetDataPoint

MAX_BATCH_SIZE = 100


class ReadingDataRequest(BaseModel):
  """Generate one chart-based question, optionally pinning sampled framing."""

  data_type: DataType = Field(default="bar_chart", description="Kind of figure to generate.")
  claim_type: ClaimType | None = None
  claim_strength: float | None = Field(default=None, ge=0.0, le=1.0)
  target_data_point: TargetDataPoint | None = None
  question_position: QuestionPosition | None = None
  domain: DataDomain | None = None
  model_config = ConfigDict(extra="forbid")

  def overrides(self) -> dict[str, Any]:
    return self.model_dump(exclude={"data_type"}, exclude_none=True)


class ReadingDataBatchRequest(BaseModel):
  count: int = Field(ge=1, le=MAX_BATCH_SIZE)
  data_types: list[DataType] | None = Field(default=None, min_length=1, description="Cycled round-robin; defaults to all figure kinds.")
  batch_id: StrictStr | None = Field(default=None, min_length=1)
  model_config = ConfigDict(extra="forbid")


class ReadingQuestionRequest(BaseModel):
  """Generate one passage-based question, optionally pinning sampled framing."""

  question_type: ReadingQuestionType | None = None
  question_focus: QuestionFocus | None = None
  passage_type: PassageType | None = None
  passage_length: PassageLength | None = None
  model_config = ConfigDict(extra="forbid")


class ReadingQuestionBatchRequest(BaseModel):
  count: int = Field(ge=1, le=MAX_BATCH_SIZE)
  question_types: list[ReadingQuestionType] | None = Field(default=None, min_length=1)
  passage_types: list[PassageType] | None = Field(default=None, min_length=1)
  batch_id: StrictStr | None = Field(default=None, min_length=1)
  model_config = ConfigDict(extra="forbid")


class GenerationResultResponse(BaseModel):
  success: bool
  question_id: str | None = None
  image_id: str | None = None
  passage_id: str | None = None
  error: str | None = None
  error_stage: str | None = None
  sampled_params: dict[str, Any]


class BatchScheduledResponse(BaseModel):
  batch_id: str
  count: int
  status: Literal["scheduled"] = "scheduled"


class RetryScheduledResponse(BaseModel):
  message: str
  count: int


class ClearResponse(BaseModel):
  deleted: int


class DLQStatsResponse(BaseModel):
  total: int
  pending: int
  retrying: int
  succeeded: int
  failedPermanently: int  # noqa: N815
  byItemType: dict[str, int]  # noqa: N815
  byErrorStage: dict[str, int]  # noqa: N815
