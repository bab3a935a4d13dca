"""Identifier utilities."""

from __future__ import annotations

import time
import uuid


def generate_record_id() -> str:
  """Return a new identifier for persisted rows (questions, images, passages, DLQ items)."""
  return str(uuid.uuid4())


def generate_batch_id(prefix: str) -> str:
  """Return a batch label such as ``reading-data-1718000000000``."""
  return f"{prefix}-{int(time.time() * 1000)}"


def generate_object_name(prefix: str, extension: str) -> str:
  """Return a unique object key under a storage prefix."""
  stem = uuid.uuid4().hex
  if prefix:
    return f"{prefix}/{stem}.{extension}"
  return f"{stem}.{extension}"
