import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.database import dispose_engine, get_db_engine
from app.core.logging import _initialize_logging
from app.services.storage_client import build_storage_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and storage after uvicorn starts; release the DB pool on shutdown."""
  from app.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except RuntimeError:
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  if get_db_engine() is None:
    logger.warning("SATGEN_PG_DSN is not set; generation and DLQ endpoints will fail until a database is configured.")

  # Ensure the figure bucket exists before image uploads begin.
  try:
    storage_client = build_storage_client(settings)
    await storage_client.ensure_bucket()
    logger.info("Figure bucket ensured: %s", storage_client.bucket_name)
  except Exception as exc:  # noqa: BLE001
    logger.warning("Failed to ensure figure bucket at startup: %s", exc)

  yield

  await dispose_engine()
