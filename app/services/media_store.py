"""Upload handshake for generated figure images: request URL, send bytes, confirm, record metadata."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from app.services.storage_client import StorageClient, UploadTarget
from app.storage.questions_repo import ImageMetadata, ImageMetadataRepository
from app.utils.ids import generate_object_name

logger = logging.getLogger(__name__)

_EXTENSIONS = {"image/webp": "webp", "image/png": "png", "image/jpeg": "jpg"}


class ImageStore(Protocol):
  """Object storage collaborator used by the image stage."""

  async def request_upload_url(self, content_type: str) -> UploadTarget:
    """Reserve an object and return where to send its bytes."""

  async def upload(self, target: UploadTarget, data: bytes) -> None:
    """Send the bytes to the reserved upload URL."""

  async def confirm_upload(self, target: UploadTarget) -> str:
    """Verify the object landed and return its stable storage id."""

  async def store_image_metadata(self, *, storage_id: str, mime_type: str, width: int, height: int, aspect_ratio: float, alt_text: str) -> str:
    """Record the image and return its identifier."""


class GcsImageStore:
  """ImageStore backed by Google Cloud Storage and the figure image table."""

  def __init__(self, storage_client: StorageClient, metadata_repo: ImageMetadataRepository, *, object_prefix: str = "figures", timeout_seconds: float = 60.0) -> None:
    self._storage = storage_client
    self._metadata_repo = metadata_repo
    self._object_prefix = object_prefix
    self._timeout_seconds = timeout_seconds

  async def request_upload_url(self, content_type: str) -> UploadTarget:
    object_name = generate_object_name(self._object_prefix, _EXTENSIONS.get(content_type, "bin"))
    return await self._storage.create_upload_target(object_name, content_type)

  async def upload(self, target: UploadTarget, data: bytes) -> None:
    # Never trust environment proxy variables for storage uploads.
    async with httpx.AsyncClient(trust_env=False, timeout=self._timeout_seconds) as client:
      try:
        response = await client.request(target.method, target.url, content=data, headers={"Content-Type": target.content_type})
        response.raise_for_status()
      except httpx.HTTPStatusError as e:
        logger.error("Figure upload returned %s for %s: %s", e.response.status_code, target.object_name, e.response.text)
        raise
      except httpx.RequestError as e:
        logger.error("Figure upload failed for %s: %s", target.object_name, e)
        raise

  async def confirm_upload(self, target: UploadTarget) -> str:
    if not await self._storage.exists(target.object_name):
      raise RuntimeError(f"Uploaded figure {target.object_name} not found in bucket {self._storage.bucket_name}")
    return target.object_name

  async def store_image_metadata(self, *, storage_id: str, mime_type: str, width: int, height: int, aspect_ratio: float, alt_text: str) -> str:
    metadata = ImageMetadata(
      storage_bucket=self._storage.bucket_name,
      storage_object_name=storage_id,
      mime_type=mime_type,
      width=width,
      height=height,
      aspect_ratio=aspect_ratio,
      alt_text=alt_text,
    )
    return await self._metadata_repo.store_image_metadata(metadata)
