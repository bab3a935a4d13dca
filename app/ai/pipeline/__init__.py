"""Pipeline contracts, samplers and prompt templates."""

from app.ai.pipeline.contracts import (
  DATA_TYPES,
  PASSAGE_TYPES,
  READING_QUESTION_TYPES,
  GeneratedPassage,
  GeneratedQuestionContent,
  GeneratedReadingQuestion,
  ImageReference,
  PipelineFailure,
  PipelineResult,
  PipelineSuccess,
  ReadingPipelineFailure,
  ReadingPipelineResult,
  ReadingPipelineSuccess,
  SampledQuestionParams,
  SampledReadingParams,
)
from app.ai.pipeline.reading_data_templates import sample_question_params
from app.ai.pipeline.reading_question_templates import sample_reading_params

__all__ = [
  "DATA_TYPES",
  "PASSAGE_TYPES",
  "READING_QUESTION_TYPES",
  "GeneratedPassage",
  "GeneratedQuestionContent",
  "GeneratedReadingQuestion",
  "ImageReference",
  "PipelineFailure",
  "PipelineResult",
  "PipelineSuccess",
  "ReadingPipelineFailure",
  "ReadingPipelineResult",
  "ReadingPipelineSuccess",
  "SampledQuestionParams",
  "SampledReadingParams",
  "sample_question_params",
  "sample_reading_params",
]
