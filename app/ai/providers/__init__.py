"""Provider implementations."""

from app.ai.providers.anthropic import AnthropicTextClient
from app.ai.providers.base import ContentBlock, ImageClient, TextClient
from app.ai.providers.gemini import CHART_IMAGE_CONFIG, GeminiImageClient

__all__ = ["AnthropicTextClient", "CHART_IMAGE_CONFIG", "ContentBlock", "GeminiImageClient", "ImageClient", "TextClient"]
