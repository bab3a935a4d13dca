"""Collaborator contracts for the text and image generation providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class ContentBlock:
  """One block of a text-model response; only ``type == "text"`` blocks carry text."""

  type: str
  text: str | None = None


class TextClient(Protocol):
  """Generative text collaborator."""

  async def create_message(self, prompt: str, max_tokens: int) -> list[ContentBlock]:
    """Send a single user prompt and return the response content blocks."""


class ImageClient(Protocol):
  """Generative image collaborator.

  The response follows the google-genai shape:
  ``response.candidates[i].content.parts[j].inline_data`` with ``mime_type`` and ``data``.
  """

  async def generate_content(self, prompt: str, config: dict[str, Any]) -> Any:
    """Render the prompt and return the raw candidate payload."""
