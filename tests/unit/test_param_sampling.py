"""Unit tests for parameter sampling and difficulty mapping."""

from __future__ import annotations

import random

import pytest

from app.ai.pipeline.contracts import SampledQuestionParams
from app.ai.pipeline.reading_data_templates import CLAIM_TYPES, DISTRACTOR_COMBOS, compute_rw_difficulty, sample_question_params
from app.ai.pipeline.reading_question_templates import PASSAGE_TYPE_PROFILES, compute_overall_difficulty, domain_and_skill, sample_reading_params
from app.ai.pipeline.sampling import sample_from, sample_gaussian, sample_weighted


def test_gaussian_draws_stay_in_unit_interval() -> None:
  rng = random.Random(11)
  draws = [sample_gaussian(0.6, 2.0, rng) for _ in range(500)]
  assert all(0.0 <= value <= 1.0 for value in draws)
  assert 0.0 in draws and 1.0 in draws


def test_sample_from_rejects_empty_sequences() -> None:
  with pytest.raises(ValueError):
    sample_from([])
  with pytest.raises(ValueError):
    sample_weighted({})


def test_weighted_sampling_never_picks_zero_weight_keys() -> None:
  rng = random.Random(2)
  picks = {sample_weighted({"a": 1.0, "b": 0.0}, rng) for _ in range(100)}
  assert picks == {"a"}


def test_question_params_use_known_vocabulary() -> None:
  params = sample_question_params(random.Random(7))
  assert params.claim_type in CLAIM_TYPES
  assert params.distractor_strategies in DISTRACTOR_COMBOS
  assert 0.0 <= params.claim_strength <= 1.0


def test_question_param_overrides_pin_fields_and_ignore_none() -> None:
  params = sample_question_params(random.Random(7), {"claim_type": "comparative", "domain": None, "claim_strength": 1.7})
  assert params.claim_type == "comparative"
  assert params.claim_strength == 1.0


def test_difficulty_tracks_claim_strength_and_position() -> None:
  params = SampledQuestionParams(
    claim_type="causal",
    claim_strength=0.5,
    target_data_point="max_value",
    question_position="weaken_claim",
    distractor_strategies=("misread_value", "wrong_comparison", "opposite_trend"),
    domain="science",
  )
  difficulty = compute_rw_difficulty(params)
  assert difficulty["inferenceDepth"] == pytest.approx(0.4)
  assert difficulty["synthesisRequired"] == 0.8


def test_reading_params_draw_voice_and_topic_from_passage_profile() -> None:
  params = sample_reading_params(random.Random(9), {"passage_type": "natural_science"})
  profile = PASSAGE_TYPE_PROFILES["natural_science"]
  assert params.voice_style in profile.voice_options
  assert params.topic_area in profile.topic_examples


def test_reading_params_are_reproducible_with_a_seed() -> None:
  assert sample_reading_params(random.Random(4)) == sample_reading_params(random.Random(4))


def test_overall_difficulty_is_factor_mean() -> None:
  params = sample_reading_params(random.Random(1), {"passage_complexity": 0.2, "inference_depth": 0.4, "vocabulary_level": 0.6, "evidence_evaluation": 0.8, "synthesis_required": 1.0})
  assert compute_overall_difficulty(params) == pytest.approx(0.6)


def test_domain_and_skill_mapping() -> None:
  assert domain_and_skill("vocabulary_in_context") == ("craft_and_structure", "vocabulary_in_context")
  with pytest.raises(ValueError, match="Unsupported reading question type"):
    domain_and_skill("poetry")
