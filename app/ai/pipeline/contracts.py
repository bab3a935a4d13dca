"""Shared data contracts for the generation pipelines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DataType = Literal["bar_chart", "line_graph", "data_table"]
ErrorStage = Literal["data_generation", "image_generation", "question_generation", "storage"]
ReadingErrorStage = Literal["passage_generation", "question_generation", "storage"]

ClaimType = Literal["causal", "correlational", "comparative", "trend-based"]
TargetDataPoint = Literal["max_value", "min_value", "trend_direction", "category_comparison", "specific_value", "percentage_change"]
QuestionPosition = Literal["support_claim", "weaken_claim", "complete_statement"]
DataDomain = Literal["science", "economics", "social_science", "health", "environment"]

ReadingQuestionType = Literal["central_ideas", "inferences", "command_of_evidence", "vocabulary_in_context", "text_structure", "rhetorical_synthesis"]
QuestionFocus = Literal["author_purpose", "evidence_relationship", "detail_interpretation", "structural_analysis", "tone_assessment", "comparative_elements", "logical_development"]
PassageType = Literal["literary_narrative", "social_science", "natural_science", "humanities"]
PassageLength = Literal["short", "medium", "long"]

ChartData = dict[str, Any]

DATA_TYPES: tuple[DataType, ...] = ("bar_chart", "line_graph", "data_table")
READING_QUESTION_TYPES: tuple[ReadingQuestionType, ...] = ("central_ideas", "inferences", "command_of_evidence", "vocabulary_in_context", "text_structure", "rhetorical_synthesis")
PASSAGE_TYPES: tuple[PassageType, ...] = ("literary_narrative", "social_science", "natural_science", "humanities")
CHOICE_KEYS: tuple[str, ...] = ("A", "B", "C", "D")


def clamp_unit(value: float) -> float:
  """Clamp a difficulty factor into [0, 1]."""
  return max(0.0, min(1.0, float(value)))


class CamelModel(BaseModel):
  """Frozen model that reads and writes camelCase keys."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

  def to_document(self) -> dict[str, Any]:
    return self.model_dump(by_alias=True, mode="json")


class SampledQuestionParams(CamelModel):
  """Sampled framing for one reading-data question."""

  claim_type: ClaimType
  claim_strength: float
  target_data_point: TargetDataPoint
  question_position: QuestionPosition
  distractor_strategies: tuple[str, str, str]
  domain: DataDomain

  @field_validator("claim_strength")
  @classmethod
  def _clamp_strength(cls, value: float) -> float:
    return clamp_unit(value)


class SampledReadingParams(CamelModel):
  """Sampled framing for one passage-based reading question."""

  question_type: ReadingQuestionType
  question_focus: QuestionFocus
  passage_type: PassageType
  passage_length: PassageLength
  passage_complexity: float
  inference_depth: float
  vocabulary_level: float
  evidence_evaluation: float
  synthesis_required: float
  distractor_strategies: tuple[str, str, str]
  target_overall_difficulty: float
  voice_style: str
  topic_area: str

  @field_validator("passage_complexity", "inference_depth", "vocabulary_level", "evidence_evaluation", "synthesis_required", "target_overall_difficulty")
  @classmethod
  def _clamp_factor(cls, value: float) -> float:
    return clamp_unit(value)


class ImageReference(CamelModel):
  """Stored chart image plus the fixed figure metadata."""

  image_id: str
  storage_id: str
  width: int = 1600
  height: int = 1200
  aspect_ratio: float = 4 / 3
  alt_text: str
  mime_type: str = "image/webp"


class GeneratedQuestionContent(CamelModel):
  """Question text produced for a chart."""

  passage: str = Field(min_length=1)
  question_stem: str = Field(min_length=1)
  choices: dict[str, str]
  explanation: str = Field(min_length=1)
  distractor_explanations: dict[str, str] | None = None

  @field_validator("choices")
  @classmethod
  def _require_choices(cls, value: dict[str, str]) -> dict[str, str]:
    missing = [key for key in CHOICE_KEYS if not value.get(key)]
    if missing:
      raise ValueError(f"choices missing keys: {', '.join(missing)}")
    return value


class VocabularyItem(CamelModel):
  """Vocabulary the passage uses in a context-dependent sense."""

  word: str
  sentence_context: str = ""
  contextual_meaning: str = ""
  alternative_meanings: list[str] = Field(default_factory=list)


class GeneratedPassage(CamelModel):
  """Passage and its analysis produced by the passage stage."""

  passage: str = Field(min_length=1)
  title: str | None = None
  author: str = ""
  source: str = ""
  paragraph_purposes: list[str] = Field(default_factory=list)
  testable_vocabulary: list[VocabularyItem] = Field(default_factory=list)
  key_inferences: list[str] = Field(default_factory=list)
  main_idea: str = Field(min_length=1)
  author_purpose: str = Field(min_length=1)


class GeneratedReadingQuestion(CamelModel):
  """Question produced for a passage; extra fields depend on the question type."""

  question_stem: str = Field(min_length=1)
  choices: dict[str, str]
  correct_answer: str = "A"
  explanation: str = Field(min_length=1)
  distractor_explanations: dict[str, str] | None = None
  target_word: str | None = None
  target_sentence: str | None = None
  claim: str | None = None
  target_element: str | None = None
  passage_with_blank: str | None = None

  @field_validator("choices")
  @classmethod
  def _require_choices(cls, value: dict[str, str]) -> dict[str, str]:
    missing = [key for key in CHOICE_KEYS if not value.get(key)]
    if missing:
      raise ValueError(f"choices missing keys: {', '.join(missing)}")
    return value

  @field_validator("correct_answer", mode="before")
  @classmethod
  def _default_answer(cls, value: Any) -> str:
    return value or "A"


@dataclass(frozen=True)
class PipelineSuccess:
  """Reading-data run that stored a question."""

  question_id: str
  image_id: str
  chart_data: ChartData
  chart_title: str
  sampled_params: SampledQuestionParams

  @property
  def success(self) -> bool:
    return True


@dataclass(frozen=True)
class PipelineFailure:
  """Reading-data run that stopped at ``error_stage`` with everything produced before it."""

  error: str
  error_stage: ErrorStage
  sampled_params: SampledQuestionParams
  chart_data: ChartData | None = None
  image: ImageReference | None = None
  question: GeneratedQuestionContent | None = None

  @property
  def success(self) -> bool:
    return False

  def last_artifact(self) -> dict[str, Any]:
    """Artifacts to persist so a retry resumes at ``error_stage``."""
    artifact: dict[str, Any] = {}
    if self.chart_data is not None:
      artifact["chartData"] = self.chart_data
    if self.image is not None:
      artifact["image"] = self.image.to_document()
    if self.question is not None:
      artifact["question"] = self.question.to_document()
    return artifact


PipelineResult = PipelineSuccess | PipelineFailure


@dataclass(frozen=True)
class ReadingPipelineSuccess:
  """Passage run that stored both the passage and its question."""

  question_id: str
  passage_id: str
  sampled_params: SampledReadingParams
  passage: GeneratedPassage

  @property
  def success(self) -> bool:
    return True


@dataclass(frozen=True)
class ReadingPipelineFailure:
  """Passage run that stopped at ``error_stage``."""

  error: str
  error_stage: ReadingErrorStage
  sampled_params: SampledReadingParams
  passage: GeneratedPassage | None = None
  question: GeneratedReadingQuestion | None = None
  passage_id: str | None = None

  @property
  def success(self) -> bool:
    return False

  def last_artifact(self) -> dict[str, Any]:
    artifact: dict[str, Any] = {}
    if self.passage is not None:
      artifact["passage"] = self.passage.to_document()
    if self.question is not None:
      artifact["question"] = self.question.to_document()
    if self.passage_id is not None:
      artifact["passageId"] = self.passage_id
    return artifact


ReadingPipelineResult = ReadingPipelineSuccess | ReadingPipelineFailure
