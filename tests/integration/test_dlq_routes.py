"""Integration tests for the operator DLQ endpoints."""

from __future__ import annotations

import pytest

from app.api.deps import get_retry_registry
from app.jobs.dispatch import RetryHandlerRegistry
from app.jobs.worker import RetrySummary
from app.main import app
from app.services.dlq import DeadLetterQueue


class RecordingRetryHandler:
  def __init__(self) -> None:
    self.passes: list[list[str]] = []

  async def retry_items(self, item_ids) -> RetrySummary:
    self.passes.append(list(item_ids))
    return RetrySummary(succeeded=len(item_ids))


async def _seed(dlq_repo, pipeline="reading_data", item_type="bar_chart", stage="image_generation"):
  dlq = DeadLetterQueue(dlq_repo, pipeline)
  return await dlq.add(item_type=item_type, sampled_params={"claimType": "causal"}, error="boom", error_stage=stage, last_artifact={"chartData": {"title": "T"}}, batch_id="batch-1")


@pytest.mark.anyio
async def test_operator_token_is_required(api_client) -> None:
  response = await api_client.get("/admin/generation/dlq/reading_data/stats", headers={"X-SATGEN-Admin-Token": "wrong"})
  assert response.status_code == 403
  assert response.json()["detail"] == "Invalid operator token."


@pytest.mark.anyio
async def test_unknown_pipeline_is_rejected(api_client) -> None:
  response = await api_client.get("/admin/generation/dlq/math/stats")
  assert response.status_code == 422
  assert "input" not in response.json()["detail"][0]


@pytest.mark.anyio
async def test_stats_report_counts_by_status_type_and_stage(api_client, dlq_repo) -> None:
  await _seed(dlq_repo)
  await _seed(dlq_repo, item_type="data_table", stage="storage")
  await _seed(dlq_repo, pipeline="reading_question", item_type="inferences", stage="passage_generation")

  response = await api_client.get("/admin/generation/dlq/reading_data/stats")

  assert response.status_code == 200
  assert response.json() == {
    "total": 2,
    "pending": 2,
    "retrying": 0,
    "succeeded": 0,
    "failedPermanently": 0,
    "byItemType": {"bar_chart": 1, "data_table": 1},
    "byErrorStage": {"image_generation": 1, "storage": 1},
  }


@pytest.mark.anyio
async def test_pending_and_item_views_are_camel_cased(api_client, dlq_repo) -> None:
  record = await _seed(dlq_repo)

  pending = await api_client.get("/admin/generation/dlq/reading_data/pending")
  assert pending.status_code == 200
  body = pending.json()
  assert body["total"] == 1
  item = body["items"][0]
  assert item["id"] == record.id
  assert item["itemType"] == "bar_chart"
  assert item["lastArtifact"] == {"chartData": {"title": "T"}}
  assert item["retryCount"] == 0

  detail = await api_client.get(f"/admin/generation/dlq/reading_data/items/{record.id}")
  assert detail.json()["errorStage"] == "image_generation"


@pytest.mark.anyio
async def test_unknown_item_maps_to_404(api_client, dlq_repo) -> None:
  record = await _seed(dlq_repo)
  response = await api_client.get(f"/admin/generation/dlq/reading_question/items/{record.id}")
  assert response.status_code == 404
  assert response.json()["detail"] == f"DLQ item {record.id} not found"
  assert "requestId" in response.json()


@pytest.mark.anyio
async def test_recent_limit_is_bounded(api_client, dlq_repo) -> None:
  for _ in range(3):
    await _seed(dlq_repo)
  response = await api_client.get("/admin/generation/dlq/reading_data/recent", params={"limit": 2})
  assert response.json()["total"] == 2
  assert (await api_client.get("/admin/generation/dlq/reading_data/recent", params={"limit": 0})).status_code == 422


@pytest.mark.anyio
async def test_retry_schedules_one_pass_over_pending_items(api_client, dlq_repo) -> None:
  handler = RecordingRetryHandler()
  app.dependency_overrides[get_retry_registry] = lambda: RetryHandlerRegistry({"reading_data": handler})
  first = await _seed(dlq_repo)
  second = await _seed(dlq_repo)

  response = await api_client.post("/admin/generation/dlq/reading_data/retry")

  assert response.status_code == 200
  assert response.json() == {"message": "Scheduled retry for 2 items", "count": 2}
  assert sorted(handler.passes[0]) == sorted([first.id, second.id])


@pytest.mark.anyio
async def test_retry_with_nothing_pending(api_client) -> None:
  handler = RecordingRetryHandler()
  app.dependency_overrides[get_retry_registry] = lambda: RetryHandlerRegistry({"reading_question": handler})
  response = await api_client.post("/admin/generation/dlq/reading_question/retry")
  assert response.json() == {"message": "No pending items to retry", "count": 0}
  assert handler.passes == []


@pytest.mark.anyio
async def test_clear_endpoints(api_client, dlq_repo) -> None:
  done = await _seed(dlq_repo)
  await _seed(dlq_repo)
  dlq = DeadLetterQueue(dlq_repo, "reading_data")
  await dlq.mark_retrying(done.id)
  await dlq.mark_succeeded(done.id, question_id="q-1", image_id="img-1")

  cleared = await api_client.post("/admin/generation/dlq/reading_data/clear-succeeded")
  assert cleared.json() == {"deleted": 1}
  cleared_all = await api_client.post("/admin/generation/dlq/reading_data/clear-all")
  assert cleared_all.json() == {"deleted": 1}
  assert dlq_repo.rows == {}
