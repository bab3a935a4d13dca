"""Sampling vocabulary for passage-based reading questions.

Only the reading-comprehension question types are generated here; their SAT
weights are renormalized when a type is drawn.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

from app.ai.pipeline.contracts import PassageType, ReadingQuestionType, SampledReadingParams
from app.ai.pipeline.sampling import sample_from, sample_gaussian, sample_weighted

QUESTION_TYPE_DISTRIBUTION: dict[ReadingQuestionType, float] = {
  "central_ideas": 0.12,
  "inferences": 0.12,
  "command_of_evidence": 0.12,
  "vocabulary_in_context": 0.10,
  "text_structure": 0.13,
  "rhetorical_synthesis": 0.13,
}

QUESTION_FOCUS: tuple[str, ...] = (
  "author_purpose",
  "evidence_relationship",
  "detail_interpretation",
  "structural_analysis",
  "tone_assessment",
  "comparative_elements",
  "logical_development",
)

PASSAGE_LENGTHS: tuple[str, ...] = ("short", "medium", "long")
PASSAGE_LENGTH_WORDS: dict[str, tuple[int, int]] = {"short": (100, 150), "medium": (150, 250), "long": (250, 350)}

# (mean, std_dev) per difficulty factor.
FACTOR_DISTRIBUTIONS: dict[str, tuple[float, float]] = {
  "passage_complexity": (0.5, 0.2),
  "inference_depth": (0.5, 0.25),
  "vocabulary_level": (0.5, 0.2),
  "evidence_evaluation": (0.5, 0.2),
  "synthesis_required": (0.4, 0.2),
  "target_overall_difficulty": (0.5, 0.15),
}


@dataclass(frozen=True)
class PassageTypeProfile:
  description: str
  voice_options: tuple[str, ...]
  topic_examples: tuple[str, ...]
  structure_hints: tuple[str, ...]


PASSAGE_TYPE_PROFILES: dict[PassageType, PassageTypeProfile] = {
  "literary_narrative": PassageTypeProfile(
    description="Fiction excerpt or personal narrative with literary devices",
    voice_options=("first-person reflective", "third-person limited", "third-person omniscient"),
    topic_examples=("coming-of-age realization", "cultural identity exploration", "relationship dynamics", "confronting adversity", "moment of self-discovery"),
    structure_hints=("sensory details and imagery", "internal monologue", "dialogue that reveals character", "symbolic objects or settings"),
  ),
  "social_science": PassageTypeProfile(
    description="Academic writing about human behavior, society, or economics",
    voice_options=("academic third-person", "journalistic", "research summary"),
    topic_examples=("cognitive psychology study", "behavioral economics finding", "sociological phenomenon", "educational research", "demographic trend analysis"),
    structure_hints=("claim followed by evidence", "study methodology summary", "counterargument acknowledgment", "implications for practice"),
  ),
  "natural_science": PassageTypeProfile(
    description="Scientific research, discovery, or phenomenon explanation",
    voice_options=("research paper summary", "science journalism", "academic explanation"),
    topic_examples=("biological mechanism", "ecological relationship", "physics discovery", "medical research finding", "environmental process"),
    structure_hints=("hypothesis and evidence", "process explanation", "cause-effect relationship", "scientific method reference"),
  ),
  "humanities": PassageTypeProfile(
    description="Historical analysis, philosophical argument, or cultural critique",
    voice_options=("historical narrative", "philosophical argument", "cultural analysis"),
    topic_examples=("historical figure's contribution", "philosophical concept", "artistic movement", "cultural tradition", "historical event analysis"),
    structure_hints=("thesis with supporting evidence", "chronological development", "compare/contrast elements", "significance/implications"),
  ),
}

READING_DISTRACTOR_STRATEGIES: dict[str, str] = {
  "too_broad": "Answer is technically true but too general. It could apply to many passages and doesn't specifically address the question. Missing the precise focus.",
  "too_narrow": "Answer focuses on a minor detail that's in the passage but misses the main point. True statement, wrong scope.",
  "opposite_meaning": "Answer reverses the author's actual position or the passage's meaning. Contradicts what the text says.",
  "unsupported_inference": "Answer makes a reasonable-sounding claim that goes beyond what the text actually supports. Plausible but not evidenced.",
  "wrong_scope": "Answer references content from the wrong paragraph or applies an idea from one part to a question about another part.",
  "misread_tone": "Answer misinterprets the author's attitude, confusing approval with criticism, certainty with hesitation, etc.",
  "partial_answer": "Answer addresses only part of what the question asks. Incomplete even if partially correct.",
  "plausible_but_wrong": "Answer uses language/phrases from the passage but draws an incorrect conclusion. Sounds right, isn't right.",
  "extreme_position": "Answer uses absolute language ('always', 'never', 'completely') when the passage is more nuanced.",
  "temporal_confusion": "Answer confuses sequence of events, or attributes to one time period what belongs to another.",
}

DISTRACTOR_COMBOS_BY_TYPE: dict[ReadingQuestionType, tuple[tuple[str, str, str], ...]] = {
  "central_ideas": (
    ("too_broad", "too_narrow", "opposite_meaning"),
    ("partial_answer", "too_narrow", "unsupported_inference"),
    ("extreme_position", "too_broad", "wrong_scope"),
  ),
  "inferences": (
    ("unsupported_inference", "opposite_meaning", "too_narrow"),
    ("plausible_but_wrong", "extreme_position", "wrong_scope"),
    ("unsupported_inference", "partial_answer", "too_broad"),
  ),
  "command_of_evidence": (
    ("wrong_scope", "partial_answer", "opposite_meaning"),
    ("too_narrow", "unsupported_inference", "plausible_but_wrong"),
    ("wrong_scope", "too_broad", "partial_answer"),
  ),
  "vocabulary_in_context": (
    ("plausible_but_wrong", "too_broad", "opposite_meaning"),
    ("wrong_scope", "plausible_but_wrong", "unsupported_inference"),
  ),
  "text_structure": (
    ("wrong_scope", "too_narrow", "opposite_meaning"),
    ("partial_answer", "plausible_but_wrong", "too_broad"),
  ),
  "rhetorical_synthesis": (
    ("partial_answer", "opposite_meaning", "unsupported_inference"),
    ("plausible_but_wrong", "wrong_scope", "too_narrow"),
  ),
}

FALLBACK_DISTRACTOR_COMBOS: tuple[tuple[str, str, str], ...] = (
  ("too_broad", "too_narrow", "opposite_meaning"),
  ("unsupported_inference", "partial_answer", "plausible_but_wrong"),
  ("wrong_scope", "misread_tone", "extreme_position"),
  ("too_narrow", "plausible_but_wrong", "unsupported_inference"),
  ("opposite_meaning", "wrong_scope", "too_broad"),
)

QUESTION_TYPE_DOMAIN_SKILL: dict[ReadingQuestionType, tuple[str, str]] = {
  "central_ideas": ("information_and_ideas", "central_ideas"),
  "inferences": ("information_and_ideas", "inferences"),
  "command_of_evidence": ("information_and_ideas", "command_of_evidence_textual"),
  "vocabulary_in_context": ("craft_and_structure", "vocabulary_in_context"),
  "text_structure": ("craft_and_structure", "text_structure"),
  "rhetorical_synthesis": ("expression_of_ideas", "rhetorical_synthesis"),
}


def sample_distractor_combo(question_type: str, rng: random.Random | None = None) -> tuple[str, str, str]:
  combos = DISTRACTOR_COMBOS_BY_TYPE.get(question_type) or FALLBACK_DISTRACTOR_COMBOS  # type: ignore[call-overload]
  return sample_from(combos, rng)


def sample_reading_params(rng: random.Random | None = None, overrides: dict[str, Any] | None = None) -> SampledReadingParams:
  """Draw fresh framing for one passage question.

  Overrides with a ``None`` value are ignored. Voice and topic are drawn from the
  final passage type so the prompt builder stays deterministic.
  """
  rng = rng or random.Random()
  pinned = {key: value for key, value in (overrides or {}).items() if value is not None}

  question_type = pinned.get("question_type") or sample_weighted(QUESTION_TYPE_DISTRIBUTION, rng)
  passage_type = pinned.get("passage_type") or sample_from(tuple(PASSAGE_TYPE_PROFILES), rng)
  profile = PASSAGE_TYPE_PROFILES[passage_type]

  drawn: dict[str, Any] = {
    "question_type": question_type,
    "question_focus": sample_from(QUESTION_FOCUS, rng),
    "passage_type": passage_type,
    "passage_length": sample_from(PASSAGE_LENGTHS, rng),
    "distractor_strategies": sample_distractor_combo(question_type, rng),
    "voice_style": sample_from(profile.voice_options, rng),
    "topic_area": sample_from(profile.topic_examples, rng),
  }
  for factor, (mean, std_dev) in FACTOR_DISTRIBUTIONS.items():
    drawn[factor] = sample_gaussian(mean, std_dev, rng)
  drawn.update(pinned)
  return SampledReadingParams(**drawn)


def compute_reading_rw_difficulty(params: SampledReadingParams) -> dict[str, float]:
  return {
    "passageComplexity": params.passage_complexity,
    "inferenceDepth": params.inference_depth,
    "vocabularyLevel": params.vocabulary_level,
    "evidenceEvaluation": params.evidence_evaluation,
    "synthesisRequired": params.synthesis_required,
  }


def compute_overall_difficulty(params: SampledReadingParams) -> float:
  """Mean of the five reading/writing difficulty factors."""
  factors = compute_reading_rw_difficulty(params)
  return sum(factors.values()) / len(factors)


def domain_and_skill(question_type: str) -> tuple[str, str]:
  """Map a reading question type to its SAT domain and skill."""
  try:
    return QUESTION_TYPE_DOMAIN_SKILL[question_type]  # type: ignore[index]
  except KeyError as exc:
    raise ValueError(f"Unsupported reading question type '{question_type}'.") from exc
