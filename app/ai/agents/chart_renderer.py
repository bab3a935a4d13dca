"""Image stage: render chart data with the image model and store the figure."""

from __future__ import annotations

import base64
import io
import logging
from typing import Any

from PIL import Image

from app.ai.agents.base import StageError
from app.ai.pipeline.chart_prompts import build_chart_prompt
from app.ai.pipeline.contracts import ChartData, DataType, ImageReference
from app.ai.providers.base import ImageClient
from app.ai.providers.gemini import CHART_IMAGE_CONFIG
from app.services.media_store import ImageStore

logger = logging.getLogger(__name__)

FIGURE_WIDTH = 1600
FIGURE_HEIGHT = 1200
FIGURE_ASPECT_RATIO = 4 / 3


def extract_inline_image(response: Any) -> tuple[bytes, str]:
  """Return ``(bytes, mime_type)`` of the first inline image part, or raise ``StageError``."""
  for candidate in getattr(response, "candidates", None) or []:
    content = getattr(candidate, "content", None)
    for part in getattr(content, "parts", None) or []:
      inline = getattr(part, "inline_data", None)
      mime_type = getattr(inline, "mime_type", None) or ""
      data = getattr(inline, "data", None)
      if not mime_type.startswith("image/") or not data:
        continue
      # The REST surface returns base64 text; the SDK usually hands back raw bytes.
      if isinstance(data, str):
        data = base64.b64decode(data)
      return bytes(data), mime_type
  raise StageError("no image")


def _convert_to_webp(image_bytes: bytes) -> bytes:
  """Convert provider image bytes into a WebP payload."""
  image = Image.open(io.BytesIO(image_bytes))
  # Convert alpha-free and alpha images consistently to avoid mode-related encoder errors.
  converted = image.convert("RGBA") if image.mode not in {"RGB", "RGBA"} else image
  output = io.BytesIO()
  converted.save(output, format="WEBP", quality=88, method=6)
  return output.getvalue()


def _prepare_payload(image_bytes: bytes, mime_type: str) -> tuple[bytes, str]:
  try:
    return _convert_to_webp(image_bytes), "image/webp"
  except OSError as exc:
    logger.warning("Could not re-encode %s figure as WebP, uploading as-is: %s", mime_type, exc)
    return image_bytes, mime_type


async def generate_image(client: ImageClient, storage: ImageStore, data_type: DataType, chart_data: ChartData) -> ImageReference:
  """Render ``chart_data`` and upload it; returns the stored figure reference."""
  chart_prompt = build_chart_prompt(data_type, chart_data)
  logger.info("Rendering %s image for %r", data_type, chart_data.get("title"))
  response = await client.generate_content(chart_prompt.prompt, dict(CHART_IMAGE_CONFIG))
  raw_bytes, raw_mime_type = extract_inline_image(response)
  payload, mime_type = _prepare_payload(raw_bytes, raw_mime_type)

  target = await storage.request_upload_url(mime_type)
  await storage.upload(target, payload)
  storage_id = await storage.confirm_upload(target)
  image_id = await storage.store_image_metadata(
    storage_id=storage_id,
    mime_type=mime_type,
    width=FIGURE_WIDTH,
    height=FIGURE_HEIGHT,
    aspect_ratio=FIGURE_ASPECT_RATIO,
    alt_text=chart_prompt.alt_text,
  )
  logger.info("Stored figure image %s (%d bytes)", image_id, len(payload))
  return ImageReference(
    image_id=image_id,
    storage_id=storage_id,
    width=FIGURE_WIDTH,
    height=FIGURE_HEIGHT,
    aspect_ratio=FIGURE_ASPECT_RATIO,
    alt_text=chart_prompt.alt_text,
    mime_type=mime_type,
  )
