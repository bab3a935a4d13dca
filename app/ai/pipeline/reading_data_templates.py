"""Sampling vocabulary and difficulty mapping for chart-based reading questions."""

from __future__ import annotations

import random
from typing import Any

from app.ai.pipeline.contracts import ClaimType, SampledQuestionParams
from app.ai.pipeline.sampling import sample_from, sample_gaussian

CLAIM_TYPES: tuple[str, ...] = ("causal", "correlational", "comparative", "trend-based")
CLAIM_STRENGTH_MEAN = 0.6
CLAIM_STRENGTH_STD_DEV = 0.2
TARGET_DATA_POINTS: tuple[str, ...] = ("max_value", "min_value", "trend_direction", "category_comparison", "specific_value", "percentage_change")
QUESTION_POSITIONS: tuple[str, ...] = ("support_claim", "weaken_claim", "complete_statement")
DATA_DOMAINS: tuple[str, ...] = ("science", "economics", "social_science", "health", "environment")

# Each describes a common misreading of a figure; the question prompt turns them into choices B-D.
DISTRACTOR_STRATEGIES: dict[str, str] = {
  "misread_value": "Use a value from an adjacent category, time period, or row (e.g., 54% instead of 45%). The number exists in the data but answers a different question.",
  "wrong_comparison": "Swap which category is higher/lower (e.g., claim 'A > B' when the data shows B > A). Use correct values but reverse the relationship.",
  "opposite_trend": "Claim the opposite direction (e.g., 'decreased by 15%' when data shows a 15% increase). Match the magnitude but flip the direction.",
  "percentage_confusion": "Confuse absolute numbers with percentages or vice versa (e.g., '20 participants' vs '20% of participants'). Use a number that appears in the data but with wrong units.",
  "irrelevant_data": "Reference accurate data from the wrong year, category, or series that doesn't answer the specific question asked.",
  "axis_misread": "Misinterpret which axis represents what, or confuse x and y values. Common with scatter plots and line graphs.",
  "extrapolation_error": "Extend a trend beyond the data shown, making claims about values not actually in the dataset.",
  "aggregation_error": "Confuse individual values with totals/averages, or misrepresent what a combined value means.",
}

DISTRACTOR_COMBOS: tuple[tuple[str, str, str], ...] = (
  ("misread_value", "wrong_comparison", "opposite_trend"),
  ("percentage_confusion", "irrelevant_data", "misread_value"),
  ("axis_misread", "wrong_comparison", "extrapolation_error"),
  ("aggregation_error", "misread_value", "opposite_trend"),
  ("irrelevant_data", "percentage_confusion", "wrong_comparison"),
  ("extrapolation_error", "misread_value", "aggregation_error"),
)

CLAIM_TYPE_DESCRIPTIONS: dict[ClaimType, str] = {
  "causal": 'The passage should suggest X causes/leads to/results in Y. Example: "Researchers found that increased screen time leads to reduced sleep quality."',
  "correlational": 'The passage should note X is associated with/related to Y without implying causation. Example: "The study observed a relationship between exercise frequency and reported stress levels."',
  "comparative": 'The passage should compare two or more groups/categories. Example: "Urban residents showed different patterns than rural residents in their commuting habits."',
  "trend-based": 'The passage should describe change over time. Example: "Over the past decade, renewable energy adoption has shifted significantly in the manufacturing sector."',
}


def sample_question_params(rng: random.Random | None = None, overrides: dict[str, Any] | None = None) -> SampledQuestionParams:
  """Draw fresh framing for one chart question; ``overrides`` pins individual fields."""
  rng = rng or random.Random()
  drawn: dict[str, Any] = {
    "claim_type": sample_from(CLAIM_TYPES, rng),
    "claim_strength": sample_gaussian(CLAIM_STRENGTH_MEAN, CLAIM_STRENGTH_STD_DEV, rng),
    "target_data_point": sample_from(TARGET_DATA_POINTS, rng),
    "question_position": sample_from(QUESTION_POSITIONS, rng),
    "distractor_strategies": sample_from(DISTRACTOR_COMBOS, rng),
    "domain": sample_from(DATA_DOMAINS, rng),
  }
  for key, value in (overrides or {}).items():
    if value is not None:
      drawn[key] = value
  return SampledQuestionParams(**drawn)


def compute_rw_difficulty(params: SampledQuestionParams) -> dict[str, float]:
  """Fixed reading/writing difficulty factors for a data-interpretation question."""
  return {
    "passageComplexity": 0.4,
    "inferenceDepth": params.claim_strength * 0.8,
    "vocabularyLevel": 0.5,
    "evidenceEvaluation": 0.7,
    "synthesisRequired": 0.8 if params.question_position == "weaken_claim" else 0.6,
  }
