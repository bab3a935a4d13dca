"""Process-wide logging: console plus a size-rotated file under ``logs/``."""

import logging
import logging.handlers
import sys
import traceback
from pathlib import Path
from types import TracebackType

from app.config import Settings

LOG_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
LOG_FILE_NAME = "satgen.log"

# Routed through our handlers instead of their own defaults.
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")
# Provider SDKs log full request dumps at DEBUG.
QUIET_LOGGERS = ("httpx", "httpcore", "anthropic", "google_genai")

_log_file_path: Path | None = None


class TruncatedFormatter(logging.Formatter):
  """Keep the first traceback line and the innermost frames; long provider stacks bury the cause."""

  keep_frames = 5

  # ruff: noqa: N802
  def formatException(self, ei: tuple[type[BaseException] | None, BaseException | None, TracebackType | None]) -> str:
    lines = traceback.format_exception(*ei)
    if len(lines) <= self.keep_frames + 1:
      return "".join(lines)
    return "".join([lines[0], "    ...\n", *lines[-self.keep_frames :]])


def _rotated_name(default_name: str) -> str:
  """Name backups ``satgen.log-1`` instead of ``satgen.log.1``."""
  base, _, index = default_name.rpartition(".")
  return f"{base}-{index}" if base and index.isdigit() else default_name


def _log_directory() -> Path:
  log_dir = Path(__file__).resolve().parents[2] / "logs"
  try:
    log_dir.mkdir(parents=True, exist_ok=True)
  except OSError as exc:
    raise RuntimeError(f"Failed to create log directory at {log_dir}: {exc}") from exc
  return log_dir


def _file_handler(settings: Settings, path: Path) -> logging.Handler:
  try:
    handler = logging.handlers.RotatingFileHandler(path, encoding="utf-8", maxBytes=settings.log_max_bytes, backupCount=settings.log_backup_count)
  except OSError as exc:
    raise RuntimeError(f"Failed to open log file at {path}: {exc}") from exc
  handler.namer = _rotated_name
  handler.setFormatter(TruncatedFormatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
  return handler


def setup_logging(settings: Settings) -> Path:
  """Attach console and file handlers to the root and server loggers; returns the log file path."""
  log_path = _log_directory() / LOG_FILE_NAME
  console = logging.StreamHandler(sys.stdout)
  console.setFormatter(TruncatedFormatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
  handlers: list[logging.Handler] = [console, _file_handler(settings, log_path)]

  logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO, handlers=handlers, force=True)
  for name in SERVER_LOGGERS:
    server_logger = logging.getLogger(name)
    server_logger.handlers = list(handlers)
    server_logger.propagate = False
  for name in QUIET_LOGGERS:
    logging.getLogger(name).setLevel(logging.WARNING)
  return log_path


def _initialize_logging(settings: Settings) -> None:
  """Configure logging once per process and record the active pipeline settings."""
  global _log_file_path
  if _log_file_path is not None:
    return
  _log_file_path = setup_logging(settings)
  logger = logging.getLogger(__name__)
  logger.info("Logging initialized. Writing to %s", _log_file_path)
  logger.info(
    "Generation settings env=%s text_model=%s image_model=%s bucket=%s dlq_max_retries=%d",
    settings.environment,
    settings.text_model,
    settings.image_model,
    settings.image_bucket,
    settings.dlq_max_retries,
  )
