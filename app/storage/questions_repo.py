"""Storage interfaces for generated questions, passages and figure images."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class ImageMetadata:
  """Figure image row written after the bytes are confirmed in object storage."""

  storage_bucket: str
  storage_object_name: str
  mime_type: str
  width: int
  height: int
  aspect_ratio: float
  alt_text: str


@dataclass(frozen=True)
class PassageRecord:
  title: str | None
  author: str
  content: str
  source: str
  passage_type: str
  complexity: float
  analyzed_features: dict[str, Any]


class QuestionRepository(Protocol):
  """Repository contract for fully assembled question documents."""

  async def create_question(self, document: dict[str, Any]) -> str:
    """Persist a question document and return its identifier."""


class PassageRepository(Protocol):
  async def create_passage(self, record: PassageRecord) -> str:
    """Persist a passage and return its identifier."""


class ImageMetadataRepository(Protocol):
  async def store_image_metadata(self, metadata: ImageMetadata) -> str:
    """Persist image metadata and return the image identifier."""
