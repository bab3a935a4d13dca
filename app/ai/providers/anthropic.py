"""Anthropic text provider backed by the async Messages API."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

from anthropic import AsyncAnthropic

from app.ai.backoff import DEFAULT_DELAYS, retry_with_backoff
from app.ai.providers.base import ContentBlock

logger = logging.getLogger(__name__)


class AnthropicTextClient:
  """Single-turn Claude client returning normalized content blocks."""

  def __init__(self, model: str, api_key: str | None = None, *, backoff_delays: Sequence[float] = DEFAULT_DELAYS) -> None:
    api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
      raise ValueError("ANTHROPIC_API_KEY environment variable is required")
    self.model = model
    self._client = AsyncAnthropic(api_key=api_key)
    self._backoff_delays = tuple(backoff_delays)

  async def create_message(self, prompt: str, max_tokens: int) -> list[ContentBlock]:
    """Send one user message and return its content blocks."""
    message = await retry_with_backoff(
      self._client.messages.create,
      model=self.model,
      max_tokens=max_tokens,
      messages=[{"role": "user", "content": prompt}],
      delays=self._backoff_delays,
    )
    usage = getattr(message, "usage", None)
    if usage is not None:
      logger.debug("Anthropic usage model=%s input_tokens=%s output_tokens=%s", self.model, usage.input_tokens, usage.output_tokens)
    return [ContentBlock(type=block.type, text=getattr(block, "text", None)) for block in message.content]
