"""Unit tests for the batch and retry drivers."""

from __future__ import annotations

import random

import pytest

from app.ai.orchestrator import PipelineDeps
from app.ai.passage_orchestrator import ReadingPipelineDeps
from app.ai.pipeline.reading_data_templates import sample_question_params
from app.ai.pipeline.reading_question_templates import sample_reading_params
from app.jobs.worker import ReadingDataWorker, ReadingQuestionWorker, _Driver
from app.services.dlq import DeadLetterQueue


class RecordingSleep:
  def __init__(self) -> None:
    self.delays: list[float] = []

  async def __call__(self, seconds: float) -> None:
    self.delays.append(seconds)


def _data_worker(stubs, dlq_repo, *, text, image=None, questions=None, sleep=None) -> ReadingDataWorker:
  deps = PipelineDeps(text_client=text, image_client=image or stubs.image([]), image_store=stubs.image_store(), questions=questions or stubs.questions())
  return ReadingDataWorker(deps, DeadLetterQueue(dlq_repo, "reading_data"), batch_pacing_seconds=3.0, retry_pacing_seconds=1.5, sleep=sleep or RecordingSleep(), rng=random.Random(8))


def _question_worker(stubs, dlq_repo, *, text, questions=None, passages=None, sleep=None) -> ReadingQuestionWorker:
  deps = ReadingPipelineDeps(text_client=text, questions=questions or stubs.questions(), passages=passages or stubs.passages())
  return ReadingQuestionWorker(deps, DeadLetterQueue(dlq_repo, "reading_question"), sleep=sleep or RecordingSleep(), rng=random.Random(8))


@pytest.mark.anyio
async def test_batch_cycles_data_types_and_dead_letters_failures(stubs, dlq_repo) -> None:
  sleep = RecordingSleep()
  worker = _data_worker(stubs, dlq_repo, text=stubs.text(["nope"] * 4), sleep=sleep)

  summary = await worker.run_batch(4, data_types=["bar_chart", "data_table"], batch_id="batch-x")

  assert [result["dataType"] for result in summary.results] == ["bar_chart", "data_table", "bar_chart", "data_table"]
  assert (summary.successful, summary.failed, summary.dlq_write_failures) == (0, 4, 0)
  assert sleep.delays == [3.0, 3.0, 3.0]
  rows = list(dlq_repo.rows.values())
  assert {row.id for row in rows} == {result["dlqId"] for result in summary.results}
  assert all(row.batch_id == "batch-x" and row.error_stage == "data_generation" and row.error == "invalid JSON" for row in rows)
  assert sorted(row.item_type for row in rows) == ["bar_chart", "bar_chart", "data_table", "data_table"]


@pytest.mark.anyio
async def test_batch_success_reports_ids(stubs, dlq_repo, payloads, png_bytes) -> None:
  worker = _data_worker(stubs, dlq_repo, text=stubs.text([payloads.bar_chart_json, payloads.chart_question_json]), image=stubs.image([stubs.image_response(png_bytes)]))
  summary = await worker.run_batch(1, data_types=["bar_chart"])
  assert summary.batch_id.startswith("reading-data-")
  assert summary.to_document()["results"] == [
    {"index": 0, "success": True, "dataType": "bar_chart", "questionId": "question-1", "imageId": "image-1", "chartTitle": payloads.bar_chart["title"]},
  ]
  assert dlq_repo.rows == {}


@pytest.mark.anyio
async def test_dlq_write_failure_does_not_abort_the_batch(stubs, dlq_repo) -> None:
  dlq_repo.fail_inserts = True
  worker = _data_worker(stubs, dlq_repo, text=stubs.text(["nope", "nope"]))
  summary = await worker.run_batch(2, data_types=["line_graph"])
  assert summary.failed == 2
  assert summary.dlq_write_failures == 2
  assert [result["dlqId"] for result in summary.results] == [None, None]


@pytest.mark.anyio
async def test_unknown_data_type_is_rejected(stubs, dlq_repo) -> None:
  worker = _data_worker(stubs, dlq_repo, text=stubs.text([]))
  with pytest.raises(ValueError, match="Unsupported data type: pie_chart"):
    await worker.run_batch(1, data_types=["pie_chart"])  # type: ignore[list-item]


@pytest.mark.anyio
async def test_single_generation_does_not_dead_letter(stubs, dlq_repo) -> None:
  worker = _data_worker(stubs, dlq_repo, text=stubs.text(["nope"]))
  result = await worker.generate_one("bar_chart", {"domain": "health"})
  assert not result.success
  assert result.sampled_params.domain == "health"
  assert dlq_repo.rows == {}


@pytest.mark.anyio
async def test_retry_resumes_from_stored_chart_data(stubs, dlq_repo, payloads, png_bytes) -> None:
  dlq = DeadLetterQueue(dlq_repo, "reading_data")
  params = sample_question_params(random.Random(1))
  row = await dlq.add(item_type="bar_chart", sampled_params=params.to_document(), error="image model overloaded", error_stage="image_generation", last_artifact={"chartData": payloads.bar_chart}, batch_id="batch-1")
  text = stubs.text([payloads.chart_question_json])
  sleep = RecordingSleep()
  worker = _data_worker(stubs, dlq_repo, text=text, image=stubs.image([stubs.image_response(png_bytes)]), sleep=sleep)

  summary = await worker.retry_items([row.id])

  assert summary.to_document() == {"succeeded": 1, "failed": 0, "skipped": 0}
  assert text.calls == 1
  stored = dlq_repo.rows[row.id]
  assert (stored.status, stored.question_id, stored.image_id, stored.retry_count) == ("succeeded", "question-1", "image-1", 1)
  assert sleep.delays == [1.5]


@pytest.mark.anyio
async def test_retry_failure_returns_row_to_pending_with_new_artifacts(stubs, dlq_repo, payloads) -> None:
  dlq = DeadLetterQueue(dlq_repo, "reading_data")
  row = await dlq.add(item_type="bar_chart", sampled_params=sample_question_params(random.Random(1)).to_document(), error="invalid JSON", error_stage="data_generation")
  worker = _data_worker(stubs, dlq_repo, text=stubs.text([payloads.bar_chart_json]), image=stubs.image([RuntimeError("no quota")]))

  summary = await worker.retry_items([row.id])

  assert summary.failed == 1
  stored = dlq_repo.rows[row.id]
  assert (stored.status, stored.error_stage, stored.error) == ("pending", "image_generation", "no quota")
  assert stored.last_artifact == {"chartData": payloads.bar_chart}


@pytest.mark.anyio
async def test_retry_skips_missing_and_non_pending_rows(stubs, dlq_repo) -> None:
  dlq = DeadLetterQueue(dlq_repo, "reading_data")
  row = await dlq.add(item_type="bar_chart", sampled_params={}, error="x", error_stage="storage")
  await dlq.mark_retrying(row.id)
  sleep = RecordingSleep()
  worker = _data_worker(stubs, dlq_repo, text=stubs.text([]), sleep=sleep)

  summary = await worker.retry_items(["missing", row.id])

  assert summary.to_document() == {"succeeded": 0, "failed": 0, "skipped": 2}
  assert sleep.delays == []


@pytest.mark.anyio
async def test_unreadable_resume_state_counts_as_a_failed_attempt(stubs, dlq_repo) -> None:
  dlq = DeadLetterQueue(dlq_repo, "reading_data", max_retries=1)
  row = await dlq.add(item_type="bar_chart", sampled_params={"claimType": "sarcastic"}, error="x", error_stage="data_generation")
  worker = _data_worker(stubs, dlq_repo, text=stubs.text([]))

  summary = await worker.retry_items([row.id])

  assert summary.failed == 1
  stored = dlq_repo.rows[row.id]
  assert stored.status == "failed_permanently"
  assert stored.error.startswith("Unreadable DLQ state:")


@pytest.mark.anyio
async def test_corrupt_stored_chart_data_is_unreadable_state(stubs, dlq_repo) -> None:
  dlq = DeadLetterQueue(dlq_repo, "reading_data")
  row = await dlq.add(item_type="bar_chart", sampled_params=sample_question_params(random.Random(1)).to_document(), error="x", error_stage="image_generation", last_artifact={"chartData": "corrupt"})
  text = stubs.text([])
  image = stubs.image([])
  worker = _data_worker(stubs, dlq_repo, text=text, image=image)

  summary = await worker.retry_items([row.id])

  assert summary.failed == 1
  stored = dlq_repo.rows[row.id]
  assert stored.status == "pending"
  assert stored.error.startswith("Unreadable DLQ state: invalid chartData")
  assert (text.calls, image.calls) == (0, [])


@pytest.mark.anyio
async def test_outcome_write_error_does_not_abort_the_retry_sweep(stubs, dlq_repo, monkeypatch) -> None:
  dlq = DeadLetterQueue(dlq_repo, "reading_data")
  params = sample_question_params(random.Random(1)).to_document()
  first = await dlq.add(item_type="bar_chart", sampled_params=params, error="x", error_stage="data_generation")
  second = await dlq.add(item_type="bar_chart", sampled_params=params, error="x", error_stage="data_generation")
  record_failure = dlq_repo.record_failure
  broken = [RuntimeError("connection reset")]

  async def flaky_record_failure(item_id, **kwargs):
    if broken:
      raise broken.pop()
    return await record_failure(item_id, **kwargs)

  monkeypatch.setattr(dlq_repo, "record_failure", flaky_record_failure)
  sleep = RecordingSleep()
  worker = _data_worker(stubs, dlq_repo, text=stubs.text(["nope", "nope"]), sleep=sleep)

  summary = await worker.retry_items([first.id, second.id])

  assert summary.to_document() == {"succeeded": 0, "failed": 2, "skipped": 0}
  assert dlq_repo.rows[first.id].status == "retrying"
  assert (dlq_repo.rows[second.id].status, dlq_repo.rows[second.id].retry_count) == ("pending", 1)
  assert sleep.delays == [1.5, 1.5]


def test_driver_without_retry_step_cannot_be_built(dlq_repo) -> None:
  class Incomplete(_Driver):
    pass

  with pytest.raises(TypeError):
    Incomplete(DeadLetterQueue(dlq_repo, "reading_data"), batch_pacing_seconds=0, retry_pacing_seconds=0)


@pytest.mark.anyio
async def test_reading_batch_cycles_types_and_records_variant(stubs, dlq_repo) -> None:
  sleep = RecordingSleep()
  worker = _question_worker(stubs, dlq_repo, text=stubs.text(["nope"] * 3), sleep=sleep)

  summary = await worker.run_batch(3, question_types=["inferences", "text_structure"], passage_types=["humanities"])

  assert summary.batch_id.startswith("reading-")
  assert [result["questionType"] for result in summary.results] == ["inferences", "text_structure", "inferences"]
  assert {row.variant for row in dlq_repo.rows.values()} == {"humanities"}
  assert {row.error_stage for row in dlq_repo.rows.values()} == {"passage_generation"}
  assert sleep.delays == [0.5, 0.5]


@pytest.mark.anyio
async def test_reading_retry_reuses_stored_passage_id(stubs, dlq_repo, payloads) -> None:
  dlq = DeadLetterQueue(dlq_repo, "reading_question")
  params = sample_reading_params(random.Random(2))
  row = await dlq.add(
    item_type=params.question_type,
    variant=params.passage_type,
    sampled_params=params.to_document(),
    error="database unavailable",
    error_stage="storage",
    last_artifact={"passage": payloads.passage, "question": payloads.reading_question, "passageId": "passage-77"},
  )
  passages = stubs.passages()
  questions = stubs.questions()
  worker = _question_worker(stubs, dlq_repo, text=stubs.text([]), questions=questions, passages=passages)

  summary = await worker.retry_items([row.id])

  assert summary.succeeded == 1
  assert passages.records == []
  assert questions.documents[0]["passageId"] == "passage-77"
  stored = dlq_repo.rows[row.id]
  assert (stored.status, stored.passage_id, stored.question_id) == ("succeeded", "passage-77", "question-1")
