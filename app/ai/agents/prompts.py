"""Prompt builders shared by the stage executors.

Templates live under ``app/ai/prompts`` and use ``{name}`` placeholders. JSON
examples in the templates contain literal braces, so rendering is plain token
replacement rather than ``str.format``. Builders are pure: the same params
always render the same prompt.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from app.ai.pipeline.contracts import ChartData, DataType, GeneratedPassage, SampledQuestionParams, SampledReadingParams
from app.ai.pipeline.reading_data_templates import CLAIM_TYPE_DESCRIPTIONS, DISTRACTOR_STRATEGIES
from app.ai.pipeline.reading_question_templates import PASSAGE_LENGTH_WORDS, PASSAGE_TYPE_PROFILES, READING_DISTRACTOR_STRATEGIES

_CHOICE_LETTERS = ("B", "C", "D")


def _replace_tokens(template: str, values: dict[str, str]) -> str:
  """Replace every ``{key}`` occurrence with its value."""
  rendered = template
  for key, value in values.items():
    rendered = rendered.replace(f"{{{key}}}", value)

  return rendered


def build_data_generation_prompt(params: SampledQuestionParams, data_type: DataType) -> str:
  """Render the chart data prompt for one sampled question."""
  template = _load_prompt("reading_data_generation.md")
  return _replace_tokens(template, {"domain": params.domain, "dataType": data_type, "claimType": params.claim_type})


def format_chart_data(chart_data: ChartData) -> str:
  """Serialize chart data for embedding in the question prompt."""
  return json.dumps(chart_data, indent=2, ensure_ascii=False)


def build_question_generation_prompt(params: SampledQuestionParams, chart_data_json: str) -> str:
  """Render the question prompt around already-serialized chart data."""
  template = _load_prompt("reading_data_question.md")
  distractor_instructions = "\n".join(f"   - Choice {letter}: {DISTRACTOR_STRATEGIES.get(strategy, strategy)}" for letter, strategy in zip(_CHOICE_LETTERS, params.distractor_strategies, strict=False))
  # dataJson goes last so chart text containing placeholder-like tokens is never rewritten.
  rendered = _replace_tokens(
    template,
    {
      "claimTypeDescription": CLAIM_TYPE_DESCRIPTIONS[params.claim_type],
      "claimType": params.claim_type,
      "claimStrength": f"{params.claim_strength:.2f}",
      "targetDataPoint": params.target_data_point,
      "questionPosition": params.question_position,
      "distractorStrategies": ", ".join(params.distractor_strategies),
      "distractorInstructions": distractor_instructions,
    },
  )
  return _replace_tokens(rendered, {"dataJson": chart_data_json})


def build_passage_generation_prompt(params: SampledReadingParams) -> str:
  """Render the passage prompt; voice and topic come from the sampled params."""
  template = _load_prompt("passage_generation.md")
  profile = PASSAGE_TYPE_PROFILES[params.passage_type]
  min_words, max_words = PASSAGE_LENGTH_WORDS[params.passage_length]
  return _replace_tokens(
    template,
    {
      "passageTypeDescription": profile.description,
      "passageType": params.passage_type,
      "voiceStyle": params.voice_style,
      "topicArea": params.topic_area,
      "complexity": f"{params.passage_complexity:.2f}",
      "lengthCategory": params.passage_length,
      "length": f"{min_words}-{max_words}",
      "structureHints": ", ".join(profile.structure_hints[:2]),
    },
  )


def build_distractor_instructions(strategies: tuple[str, ...]) -> str:
  return "\n".join(f"- Choice {letter} ({strategy}): {READING_DISTRACTOR_STRATEGIES.get(strategy, strategy)}" for letter, strategy in zip(_CHOICE_LETTERS, strategies, strict=False))


def build_reading_question_prompt(params: SampledReadingParams, passage: GeneratedPassage) -> str:
  """Render the type-specific question prompt for a generated passage."""
  template = _load_prompt(f"reading_{params.question_type}.md")
  vocabulary = [item.to_document() for item in passage.testable_vocabulary]
  analysis = _replace_tokens(
    template,
    {
      "mainIdea": passage.main_idea,
      "authorPurpose": passage.author_purpose,
      "paragraphPurposes": "\n".join(f"Paragraph {index}: {purpose}" for index, purpose in enumerate(passage.paragraph_purposes, start=1)),
      "keyInferences": "\n".join(f"{index}. {inference}" for index, inference in enumerate(passage.key_inferences, start=1)),
      "testableVocabulary": json.dumps(vocabulary, indent=2, ensure_ascii=False),
      "distractorInstructions": build_distractor_instructions(params.distractor_strategies),
    },
  )
  return _replace_tokens(analysis, {"passage": passage.passage})


@lru_cache(maxsize=32)
def _load_prompt(name: str) -> str:
  try:
    path = Path(__file__).parents[1] / "prompts" / name
    return path.read_text(encoding="utf-8").strip()
  except (FileNotFoundError, PermissionError, UnicodeDecodeError) as exc:
    raise RuntimeError(f"Failed to load prompt '{name}': {exc}") from exc
