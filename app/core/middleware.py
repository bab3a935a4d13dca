import logging
import re
import time
import uuid
from typing import Any

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger("app.core.middleware")

REQUEST_ID_HEADER = "x-request-id"
_CALLER_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


def _request_target(scope: Scope) -> str:
  path = scope.get("path", "")
  query_string = scope.get("query_string", b"")
  return f"{path}?{query_string.decode('latin-1')}" if query_string else path


def _resolve_request_id(scope: Scope) -> str:
  """Reuse a well-formed caller id so batch scripts can correlate their calls; otherwise mint one."""
  supplied = Headers(scope=scope).get(REQUEST_ID_HEADER)
  if supplied and _CALLER_REQUEST_ID.match(supplied):
    return supplied
  return uuid.uuid4().hex


class RequestLoggingMiddleware:
  """Log each HTTP exchange and echo its request id on the response."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    request_id = _resolve_request_id(scope)
    scope.setdefault("state", {})["request_id"] = request_id
    started = time.perf_counter()
    logger.info("-> request_id=%s %s %s", request_id, scope.get("method", "UNKNOWN"), _request_target(scope))
    status_code = 0

    async def send_with_request_id(message: dict[str, Any]) -> None:
      nonlocal status_code
      if message["type"] == "http.response.start":
        status_code = message.get("status", 0)
        MutableHeaders(scope=message).setdefault(REQUEST_ID_HEADER, request_id)
      await send(message)

    try:
      await self.app(scope, receive, send_with_request_id)
    finally:
      logger.info("<- request_id=%s status=%s took=%.1fms", request_id, status_code, (time.perf_counter() - started) * 1000)


class SecurityHeadersMiddleware:
  """Hide server fingerprints and keep operator responses out of caches."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    async def send_hardened(message: dict[str, Any]) -> None:
      if message["type"] == "http.response.start":
        headers = MutableHeaders(scope=message)
        for name in ("server", "x-powered-by"):
          if name in headers:
            del headers[name]
        headers.setdefault("x-content-type-options", "nosniff")
        headers.setdefault("cache-control", "no-store")
      await send(message)

    await self.app(scope, receive, send_hardened)
