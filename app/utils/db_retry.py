"""Retry helper for database writes, split into transient and permanent failures."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE codes that indicate a transaction can be replayed safely.
_RETRYABLE_SQLSTATES: dict[str, tuple[str, str]] = {
  "40001": ("serialization_conflict", "Serialization failure - transaction conflict"),
  "40P01": ("deadlock", "Deadlock detected"),
}

# SQLSTATE class prefixes that will fail the same way on every attempt.
_PERMANENT_SQLSTATE_CLASSES: dict[str, tuple[str, str]] = {
  "23": ("integrity_error", "Integrity constraint violation"),
  "42": ("schema_error", "Schema/SQL error (undefined table/column, syntax error)"),
  "28": ("permission_error", "Authentication/permission error"),
}

_CONNECTIVITY_MARKERS = ("connection", "timeout", "reset", "network", "broken pipe", "lost connection")


@dataclass(frozen=True)
class DBFailureClassification:
  """Classification result for a database failure."""

  retryable: bool
  reason: str
  sqlstate: str | None
  category: str


def _extract_sqlstate(exc: Exception) -> str | None:
  """Extract the Postgres SQLSTATE from a wrapped driver exception."""
  if not isinstance(exc, DBAPIError):
    return None
  orig = getattr(exc, "orig", None)
  # asyncpg exposes `sqlstate`; psycopg drivers expose `pgcode`.
  for attr in ("sqlstate", "pgcode"):
    value = getattr(orig, attr, None)
    if value:
      return str(value)
  return None


def classify_db_failure(exc: Exception) -> DBFailureClassification:
  """
  Classify a database failure as retryable or not.

  SQLSTATE is the primary signal; exception type and message are the fallback.
  Serialization failures, deadlocks and dropped connections are retried.
  Integrity, schema, permission and programming errors are not.
  """
  sqlstate = _extract_sqlstate(exc)

  if sqlstate in _RETRYABLE_SQLSTATES:
    category, reason = _RETRYABLE_SQLSTATES[sqlstate]
    return DBFailureClassification(retryable=True, reason=reason, sqlstate=sqlstate, category=category)

  if sqlstate:
    permanent = _PERMANENT_SQLSTATE_CLASSES.get(sqlstate[:2])
    if permanent is not None:
      category, reason = permanent
      return DBFailureClassification(retryable=False, reason=reason, sqlstate=sqlstate, category=category)

  if isinstance(exc, IntegrityError):
    return DBFailureClassification(retryable=False, reason="Integrity constraint violation (detected by exception type)", sqlstate=sqlstate, category="integrity_error")

  if isinstance(exc, (AttributeError, TypeError, ValueError, KeyError, IndexError)):
    return DBFailureClassification(retryable=False, reason=f"Programming error: {type(exc).__name__}", sqlstate=sqlstate, category="programming_error")

  if isinstance(exc, OperationalError):
    error_msg = str(exc).lower()
    if any(marker in error_msg for marker in _CONNECTIVITY_MARKERS):
      return DBFailureClassification(retryable=True, reason="Transient connection/network error", sqlstate=sqlstate, category="connectivity_error")
    return DBFailureClassification(retryable=False, reason="Operational error (unknown cause)", sqlstate=sqlstate, category="operational_error_unknown")

  return DBFailureClassification(retryable=False, reason=f"Unknown error type: {type(exc).__name__}", sqlstate=sqlstate, category="unknown_error")


async def execute_with_retry(*, operation_name: str, func: Callable[[], Awaitable[T]], max_attempts: int = 2, initial_backoff_ms: int = 100, max_backoff_ms: int = 2000, jitter: bool = True) -> T:
  """
  Execute an idempotent database operation, replaying it on transient failures.

  Args:
    operation_name: Label used in log lines (e.g., "store_question").
    func: Zero-argument coroutine factory that performs the write.
    max_attempts: Total attempts including the first one.
    initial_backoff_ms: Delay before the first replay.
    max_backoff_ms: Ceiling for the exponential delay.
    jitter: Spread replays by +/-25% to avoid synchronized retries.

  Raises:
    The last exception when it is permanent or attempts are exhausted.
  """
  attempt = 0
  while True:
    attempt += 1
    try:
      result = await func()
    except Exception as exc:
      classification = classify_db_failure(exc)
      logger.warning(
        "DB operation failed: operation=%s, attempt=%d/%d, category=%s, sqlstate=%s, retryable=%s, reason=%s",
        operation_name,
        attempt,
        max_attempts,
        classification.category,
        classification.sqlstate or "none",
        classification.retryable,
        classification.reason,
        exc_info=not classification.retryable,
      )
      if not classification.retryable or attempt >= max_attempts:
        raise

      backoff_ms = min(initial_backoff_ms * (2 ** (attempt - 1)), max_backoff_ms)
      if jitter:
        jitter_range = backoff_ms * 0.25
        backoff_ms += random.uniform(-jitter_range, jitter_range)

      logger.info("Retrying DB operation after backoff: operation=%s, attempt=%d/%d, backoff_ms=%.1f", operation_name, attempt, max_attempts, backoff_ms)
      await asyncio.sleep(backoff_ms / 1000.0)
      continue

    if attempt > 1:
      logger.info("DB operation succeeded after retry: operation=%s, attempt=%d/%d", operation_name, attempt, max_attempts)
    return result
