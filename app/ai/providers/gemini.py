"""Gemini image provider using the google-genai SDK."""

from __future__ import annotations

import logging
import os
import warnings
from collections.abc import Sequence
from typing import Any

from pydantic.warnings import ArbitraryTypeWarning

with warnings.catch_warnings():
  warnings.filterwarnings("ignore", message=r"<built-in function any> is not a Python type.*", category=ArbitraryTypeWarning)
  from google import genai

from app.ai.backoff import DEFAULT_DELAYS, retry_with_backoff

logger = logging.getLogger(__name__)

CHART_IMAGE_CONFIG: dict[str, Any] = {"response_modalities": ["TEXT", "IMAGE"], "image_config": {"aspect_ratio": "4:3", "image_size": "2K"}}


class GeminiImageClient:
  """Gemini client that renders chart prompts into inline image parts."""

  def __init__(self, model: str, api_key: str | None = None, *, backoff_delays: Sequence[float] = DEFAULT_DELAYS) -> None:
    self.model = model
    # Configure Gemini API
    api_key = api_key or os.getenv("GEMINI_API_KEY")
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")
    self._client = genai.Client(api_key=api_key)
    self._backoff_delays = tuple(backoff_delays)

  async def generate_content(self, prompt: str, config: dict[str, Any]) -> Any:
    """Render the prompt; the caller picks the image part out of the candidates."""
    # Use the async client to avoid blocking the asyncio event loop.
    response = await retry_with_backoff(self._client.aio.models.generate_content, model=self.model, contents=prompt, config=config, delays=self._backoff_delays)
    if response.usage_metadata:
      logger.debug(
        "Gemini usage model=%s prompt_tokens=%s candidates_tokens=%s",
        self.model,
        response.usage_metadata.prompt_token_count,
        response.usage_metadata.candidates_token_count,
      )
    return response
