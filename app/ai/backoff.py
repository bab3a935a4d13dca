"""Retry wrapper for provider calls that hit rate limits or quota exhaustion."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

DEFAULT_DELAYS: tuple[float, ...] = (5, 20, 50)


def is_rate_limited(exc: BaseException) -> bool:
  """Return True for 429 / quota errors raised by the Anthropic or google-genai SDKs."""
  for attr in ("status_code", "code"):
    if getattr(exc, attr, None) == 429:
      return True
  error_msg = str(exc)
  if "Resource Exhausted" in error_msg or "RESOURCE_EXHAUSTED" in error_msg or "Quota Exceeded" in error_msg:
    return True
  return "429" in error_msg or "Too Many Requests" in error_msg


async def retry_with_backoff(func: Callable[..., Awaitable[T]], *args, delays: Sequence[float] = DEFAULT_DELAYS, **kwargs) -> T:
  """
  Execute a provider call, sleeping through rate limits before giving up.

  Delays: 5s, 20s, 50s by default, then one final attempt whose error propagates.
  """
  for attempt, delay in enumerate(delays):
    try:
      return await func(*args, **kwargs)
    except Exception as exc:
      if not is_rate_limited(exc):
        raise
      logger.warning("Rate limited (attempt %d/%d): %s. Retrying in %ss...", attempt + 1, len(delays), exc, delay)
      await asyncio.sleep(delay)

  return await func(*args, **kwargs)
