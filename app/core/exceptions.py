"""Exception handlers that log with the request id and return sanitized payloads."""

import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.services.dlq import DLQItemNotFoundError, DLQTransitionError

logger = logging.getLogger("uvicorn.error")

_REDACTED_DETAIL_KEYS = frozenset({"input", "body", "payload", "content"})


def _coerce_json_safe(value: Any) -> Any:
  """Reduce arbitrary values (exceptions in validation ctx, tuples, objects) to JSON primitives."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    return f"{type(value).__name__}: {value}" if str(value) else type(value).__name__
  return str(value)


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


def _respond(request: Request, status_code: int, detail: Any) -> JSONResponse:
  payload: dict[str, Any] = {"detail": detail}
  request_id = _request_id(request)
  # Lets operators match a failed call to the server log line.
  if request_id:
    payload["requestId"] = request_id
  return JSONResponse(status_code=status_code, content=payload)


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Drop raw ``input`` values, top-level and inside ``ctx``, so request bodies never reach logs or clients."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if isinstance(scrubbed.get("ctx"), dict):
      scrubbed["ctx"] = {key: value for key, value in scrubbed["ctx"].items() if key != "input"}
    sanitized.append(_coerce_json_safe(scrubbed))
  return sanitized


def _sanitize_http_detail(detail: Any) -> Any:
  if isinstance(detail, dict):
    return {key: _sanitize_http_detail(value) for key, value in detail.items() if key not in _REDACTED_DETAIL_KEYS}
  if isinstance(detail, list):
    return [_sanitize_http_detail(item) for item in detail]
  return detail


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Last resort for anything a route let escape."""
  logger.error("Unhandled exception request_id=%s path=%s error_type=%s", _request_id(request), request.url.path, type(exc).__name__, exc_info=True)
  return _respond(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", _request_id(request), request.url.path, request.method, errors)
  return _respond(request, status.HTTP_422_UNPROCESSABLE_ENTITY, errors)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Pass 4xx details through; 5xx details stay in the log."""
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", _request_id(request), request.url.path, exc.status_code, exc.detail)
    return _respond(request, exc.status_code, "Internal Server Error")

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", _request_id(request), request.url.path, exc.status_code, _sanitize_http_detail(exc.detail))
  return _respond(request, exc.status_code, exc.detail)


async def dlq_not_found_handler(request: Request, exc: DLQItemNotFoundError) -> JSONResponse:
  if get_settings().log_http_4xx:
    logger.warning("DLQ item missing request_id=%s path=%s item_id=%s", _request_id(request), request.url.path, exc.item_id)
  return _respond(request, status.HTTP_404_NOT_FOUND, str(exc))


async def dlq_transition_handler(request: Request, exc: DLQTransitionError) -> JSONResponse:
  logger.warning("DLQ transition rejected request_id=%s item_id=%s from=%s to=%s", _request_id(request), exc.item_id, exc.current, exc.target)
  return _respond(request, status.HTTP_409_CONFLICT, str(exc))
