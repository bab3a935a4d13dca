"""Unit tests for the text-model prompt builders."""

from __future__ import annotations

import random

from app.ai.agents.prompts import build_data_generation_prompt, build_passage_generation_prompt, build_question_generation_prompt, build_reading_question_prompt, format_chart_data
from app.ai.pipeline.contracts import GeneratedPassage, SampledQuestionParams
from app.ai.pipeline.reading_question_templates import sample_reading_params


def _chart_params() -> SampledQuestionParams:
  return SampledQuestionParams(
    claim_type="causal",
    claim_strength=0.734,
    target_data_point="max_value",
    question_position="weaken_claim",
    distractor_strategies=("misread_value", "wrong_comparison", "opposite_trend"),
    domain="health",
  )


def test_data_prompt_fills_every_placeholder() -> None:
  prompt = build_data_generation_prompt(_chart_params(), "line_graph")
  assert "health" in prompt
  assert "line_graph" in prompt
  assert "{domain}" not in prompt
  assert "{claimType}" not in prompt


def test_question_prompt_replaces_repeated_tokens() -> None:
  prompt = build_question_generation_prompt(_chart_params(), format_chart_data({"title": "T"}))
  assert "{claimStrength}" not in prompt
  assert prompt.count("0.73") >= 2
  assert "Choice B: Use a value from an adjacent category" in prompt


def test_question_prompt_leaves_placeholder_text_inside_chart_data_alone() -> None:
  """Chart data is inserted last, so tokens inside it survive verbatim."""
  prompt = build_question_generation_prompt(_chart_params(), format_chart_data({"title": "Survey of {claimType} reasoning"}))
  assert "Survey of {claimType} reasoning" in prompt


def test_prompt_builders_are_deterministic() -> None:
  params = sample_reading_params(random.Random(3))
  assert build_passage_generation_prompt(params) == build_passage_generation_prompt(params)
  assert params.voice_style in build_passage_generation_prompt(params)
  assert params.topic_area in build_passage_generation_prompt(params)


def test_reading_question_prompt_embeds_passage_analysis() -> None:
  params = sample_reading_params(random.Random(5), {"question_type": "central_ideas"})
  passage = GeneratedPassage(passage="Text body.", main_idea="The idea.", author_purpose="To inform.", key_inferences=["first", "second"])
  prompt = build_reading_question_prompt(params, passage)
  assert "Text body." in prompt
  assert "The idea." in prompt
  assert "{passage}" not in prompt
  assert "{distractorInstructions}" not in prompt
