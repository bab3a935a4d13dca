"""Random draws used by the parameter samplers."""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def sample_gaussian(mean: float, std_dev: float, rng: random.Random | None = None) -> float:
  """Box-Muller draw from N(mean, std_dev), clamped to [0, 1]."""
  rng = rng or random.Random()
  # 1 - random() lies in (0, 1], keeping log() finite.
  u1 = 1.0 - rng.random()
  u2 = rng.random()
  z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
  return max(0.0, min(1.0, mean + z * std_dev))


def sample_from(options: Sequence[T], rng: random.Random | None = None) -> T:
  """Uniform choice from a non-empty sequence."""
  if not options:
    raise ValueError("Cannot sample from an empty sequence.")
  rng = rng or random.Random()
  return options[int(rng.random() * len(options))]


def sample_weighted(weights: dict[T, float], rng: random.Random | None = None) -> T:
  """Draw a key with probability proportional to its weight."""
  if not weights:
    raise ValueError("Cannot sample from empty weights.")
  rng = rng or random.Random()
  total = sum(weights.values())
  threshold = rng.random() * total
  cumulative = 0.0
  for key, weight in weights.items():
    cumulative += weight
    if threshold < cumulative:
      return key
  # Float rounding can leave the threshold at the very top of the range.
  return next(reversed(weights))
