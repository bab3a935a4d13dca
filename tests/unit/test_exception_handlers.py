"""Unit tests for API error payload sanitization."""

from __future__ import annotations

import json

import pytest
from starlette.requests import Request

from app.core.exceptions import _sanitize_http_detail, _sanitize_validation_errors, dlq_transition_handler
from app.services.dlq import DLQTransitionError


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Validation errors stay JSON-serializable and never echo the request body."""
  errors = [{"type": "value_error", "loc": ("body", "count"), "msg": "Value error, count must be positive.", "input": {"count": -1}, "ctx": {"error": ValueError("count must be positive."), "input": -1}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["loc"] == ["body", "count"]
  assert sanitized[0]["ctx"] == {"error": "ValueError: count must be positive."}


def test_sanitize_http_detail_drops_payload_keys_recursively() -> None:
  detail = [{"message": "bad batch", "payload": {"count": 500}, "nested": {"body": "raw", "field": "count"}}]
  assert _sanitize_http_detail(detail) == [{"message": "bad batch", "nested": {"field": "count"}}]


@pytest.mark.anyio
async def test_dlq_transition_errors_map_to_conflict() -> None:
  request = Request({"type": "http", "method": "POST", "path": "/admin/generation/dlq/reading_data/retry", "headers": [], "query_string": b"", "state": {"request_id": "req-1"}})
  response = await dlq_transition_handler(request, DLQTransitionError("item-1", "succeeded", "retrying"))
  assert response.status_code == 409
  assert json.loads(response.body) == {"detail": "DLQ item item-1 cannot move from succeeded to retrying", "requestId": "req-1"}
