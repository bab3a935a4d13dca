"""Object storage helper for generated figure images."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import quote, urlparse

from google.auth.credentials import AnonymousCredentials
from google.cloud import storage
from starlette.concurrency import run_in_threadpool

from app.config import Settings


@dataclass(frozen=True)
class UploadTarget:
  """Where and how to send the bytes of one new object."""

  url: str
  method: str
  object_name: str
  content_type: str


def _emulator_origin(storage_host: str) -> str:
  """Reduce ``GCS_STORAGE_HOST`` to scheme://host[:port]."""
  parsed = urlparse(storage_host)
  if parsed.scheme and parsed.netloc:
    return f"{parsed.scheme}://{parsed.netloc}"
  return storage_host.rstrip("/")


def _gcs_client(settings: Settings, emulator_origin: str | None) -> storage.Client:
  if emulator_origin is None:
    return storage.Client(project=settings.gcp_project_id)
  # The SDK reads this variable for resumable and media endpoints.
  os.environ["GCS_STORAGE_EMULATOR_HOST"] = emulator_origin
  return storage.Client(
    project=settings.gcp_project_id or "local-dev",
    credentials=AnonymousCredentials(),
    client_options={"api_endpoint": emulator_origin},
  )


class StorageClient:
  """Figure bucket access against GCS or the local emulator."""

  def __init__(self, settings: Settings) -> None:
    self._bucket_name = settings.image_bucket
    self._url_ttl = timedelta(seconds=int(settings.upload_url_ttl_seconds))
    self._emulator_origin = _emulator_origin(settings.gcs_storage_host) if settings.gcs_storage_host else None
    self._client = _gcs_client(settings, self._emulator_origin)

  @property
  def bucket_name(self) -> str:
    return self._bucket_name

  def _blob(self, object_name: str) -> storage.Blob:
    return self._client.bucket(self._bucket_name).blob(object_name)

  async def ensure_bucket(self) -> None:
    """Create the figure bucket on the emulator; a no-op against real GCS."""
    if self._emulator_origin is None:
      return
    client = self._client
    bucket = client.bucket(self._bucket_name)

    def _create() -> None:
      if not bucket.exists(client=client):
        client.create_bucket(bucket)

    await run_in_threadpool(_create)

  async def create_upload_target(self, object_name: str, content_type: str) -> UploadTarget:
    """Return a short-lived upload URL for ``object_name``."""
    if self._emulator_origin is not None:
      # No URL signing on the emulator; it takes unauthenticated media uploads.
      name = quote(object_name, safe="")
      url = f"{self._emulator_origin}/upload/storage/v1/b/{self._bucket_name}/o?uploadType=media&name={name}"
      return UploadTarget(url=url, method="POST", object_name=object_name, content_type=content_type)

    blob = self._blob(object_name)
    url = await run_in_threadpool(blob.generate_signed_url, version="v4", expiration=self._url_ttl, method="PUT", content_type=content_type)
    return UploadTarget(url=url, method="PUT", object_name=object_name, content_type=content_type)

  async def exists(self, object_name: str) -> bool:
    blob = self._blob(object_name)
    return bool(await run_in_threadpool(blob.exists))


def build_storage_client(settings: Settings) -> StorageClient:
  return StorageClient(settings)
