"""Shared fixtures: provider stubs, in-memory repositories and the API client."""

from __future__ import annotations

import io
import json
import os
from collections import Counter
from dataclasses import replace
from types import SimpleNamespace
from typing import Any

# Required settings must exist before the app module is imported.
os.environ.setdefault("SATGEN_ALLOWED_ORIGINS", "http://localhost")
os.environ.setdefault("SATGEN_ADMIN_TOKEN", "test-admin-token")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from PIL import Image  # noqa: E402

from app.ai.providers.base import ContentBlock  # noqa: E402
from app.jobs.models import DLQRecord  # noqa: E402
from app.services.media_store import UploadTarget  # noqa: E402

ADMIN_TOKEN = "test-admin-token"


class StubTextClient:
  """Replays queued responses; an Exception entry is raised instead of returned."""

  def __init__(self, responses: list[str | Exception | list[ContentBlock]]) -> None:
    self._responses = list(responses)
    self.prompts: list[str] = []

  @property
  def calls(self) -> int:
    return len(self.prompts)

  async def create_message(self, prompt: str, max_tokens: int) -> list[ContentBlock]:
    self.prompts.append(prompt)
    if not self._responses:
      raise AssertionError("unexpected text model call")
    response = self._responses.pop(0)
    if isinstance(response, Exception):
      raise response
    if isinstance(response, list):
      return response
    return [ContentBlock(type="text", text=response)]


class StubImageClient:
  def __init__(self, responses: list[Any]) -> None:
    self._responses = list(responses)
    self.calls: list[tuple[str, dict[str, Any]]] = []

  async def generate_content(self, prompt: str, config: dict[str, Any]) -> Any:
    self.calls.append((prompt, config))
    if not self._responses:
      raise AssertionError("unexpected image model call")
    response = self._responses.pop(0)
    if isinstance(response, Exception):
      raise response
    return response


class StubImageStore:
  def __init__(self) -> None:
    self.uploads: list[tuple[str, bytes]] = []
    self.metadata: list[dict[str, Any]] = []

  async def request_upload_url(self, content_type: str) -> UploadTarget:
    return UploadTarget(url="https://storage.test/upload", method="PUT", object_name=f"figures/{len(self.uploads)}.webp", content_type=content_type)

  async def upload(self, target: UploadTarget, data: bytes) -> None:
    self.uploads.append((target.object_name, data))

  async def confirm_upload(self, target: UploadTarget) -> str:
    return target.object_name

  async def store_image_metadata(self, **kwargs: Any) -> str:
    self.metadata.append(kwargs)
    return f"image-{len(self.metadata)}"


class InMemoryQuestionRepo:
  def __init__(self, failures: int = 0) -> None:
    self.documents: list[dict[str, Any]] = []
    self._failures = failures

  async def create_question(self, document: dict[str, Any]) -> str:
    if self._failures:
      self._failures -= 1
      raise RuntimeError("database unavailable")
    self.documents.append(document)
    return f"question-{len(self.documents)}"


class InMemoryPassageRepo:
  def __init__(self) -> None:
    self.records: list[Any] = []

  async def create_passage(self, record: Any) -> str:
    self.records.append(record)
    return f"passage-{len(self.records)}"


class InMemoryDLQRepository:
  """Dict-backed DLQ repository with the same conditional transitions as Postgres."""

  def __init__(self) -> None:
    self.rows: dict[str, DLQRecord] = {}
    self.fail_inserts = False

  async def insert(self, record: DLQRecord) -> None:
    if self.fail_inserts:
      raise RuntimeError("dlq write failed")
    self.rows[record.id] = record

  async def get(self, item_id: str) -> DLQRecord | None:
    return self.rows.get(item_id)

  async def claim_for_retry(self, item_id: str, *, attempted_at: str) -> DLQRecord | None:
    row = self.rows.get(item_id)
    if row is None or row.status != "pending":
      return None
    self.rows[item_id] = replace(row, status="retrying", retry_count=row.retry_count + 1, last_attempt_at=attempted_at)
    return self.rows[item_id]

  async def complete(self, item_id: str, *, question_id: str, image_id: str | None, passage_id: str | None, attempted_at: str) -> DLQRecord | None:
    row = self.rows.get(item_id)
    if row is None or row.status != "retrying":
      return None
    self.rows[item_id] = replace(row, status="succeeded", question_id=question_id, image_id=image_id or row.image_id, passage_id=passage_id or row.passage_id, last_attempt_at=attempted_at)
    return self.rows[item_id]

  async def record_failure(self, item_id: str, *, error: str, error_stage: str, last_artifact: dict[str, Any] | None, attempted_at: str) -> DLQRecord | None:
    row = self.rows.get(item_id)
    if row is None or row.status != "retrying":
      return None
    status = "pending" if row.retry_count < row.max_retries else "failed_permanently"
    self.rows[item_id] = replace(row, status=status, error=error, error_stage=error_stage, last_artifact=last_artifact, last_attempt_at=attempted_at)
    return self.rows[item_id]

  async def list_by_status(self, pipeline: str, status: str, limit: int | None = None) -> list[DLQRecord]:
    rows = sorted((row for row in self.rows.values() if row.pipeline == pipeline and row.status == status), key=lambda row: row.created_at)
    return rows[:limit] if limit is not None else rows

  async def list_recent(self, pipeline: str, limit: int) -> list[DLQRecord]:
    rows = sorted((row for row in self.rows.values() if row.pipeline == pipeline), key=lambda row: row.created_at, reverse=True)
    return rows[:limit]

  async def count_by(self, pipeline: str, field: str) -> dict[str, int]:
    return dict(Counter(getattr(row, field) for row in self.rows.values() if row.pipeline == pipeline))

  async def delete_by_status(self, pipeline: str, status: str) -> int:
    doomed = [key for key, row in self.rows.items() if row.pipeline == pipeline and row.status == status]
    for key in doomed:
      del self.rows[key]
    return len(doomed)

  async def delete_all(self, pipeline: str) -> int:
    doomed = [key for key, row in self.rows.items() if row.pipeline == pipeline]
    for key in doomed:
      del self.rows[key]
    return len(doomed)


def image_response(data: bytes | str, mime_type: str = "image/png") -> SimpleNamespace:
  """Shape of a google-genai response carrying one inline image part."""
  text_part = SimpleNamespace(inline_data=None, text="Here is your chart.")
  image_part = SimpleNamespace(inline_data=SimpleNamespace(mime_type=mime_type, data=data))
  return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[text_part, image_part]))])


@pytest.fixture
def png_bytes() -> bytes:
  buffer = io.BytesIO()
  Image.new("RGB", (8, 6), color=(30, 60, 90)).save(buffer, format="PNG")
  return buffer.getvalue()


@pytest.fixture
def dlq_repo() -> InMemoryDLQRepository:
  return InMemoryDLQRepository()


@pytest.fixture
def stubs() -> SimpleNamespace:
  """Stub classes for tests that assemble their own pipeline collaborators."""
  return SimpleNamespace(
    text=StubTextClient,
    image=StubImageClient,
    image_store=StubImageStore,
    questions=InMemoryQuestionRepo,
    passages=InMemoryPassageRepo,
    image_response=image_response,
  )


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
async def api_client(monkeypatch: pytest.MonkeyPatch, dlq_repo: InMemoryDLQRepository):
  """ASGI client with the DLQ repository swapped for the in-memory double."""
  monkeypatch.setattr("app.services.generation._get_dlq_repo", lambda _settings: dlq_repo)
  from app.main import app

  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test", headers={"X-SATGEN-Admin-Token": ADMIN_TOKEN}) as client:
    yield client
  app.dependency_overrides.clear()


BAR_CHART = {
  "title": "Average Commute Time by City Size",
  "categories": ["Small", "Medium", "Large"],
  "values": [18, 24, 35],
  "yAxisLabel": "Minutes",
  "unit": "min",
  "source": "Regional Transit Survey",
}

CHART_QUESTION = {
  "passage": "Researchers examined commute times across cities of different sizes.",
  "questionStem": "Which choice best uses data from the graph to support the claim?",
  "choices": {"A": "Large cities averaged 35 minutes.", "B": "Small cities averaged 24 minutes.", "C": "Commutes fell as cities grew.", "D": "Medium cities averaged 35%."},
  "explanation": "Choice A cites the value the graph reports for large cities.",
  "distractorExplanations": {"B": "Misreads the medium value.", "C": "Reverses the trend.", "D": "Confuses units."},
}

PASSAGE = {
  "title": "The Night Gardener",
  "author": "Ada Whitlow",
  "source": "The Quiet Rows, 1911",
  "passage": "Every evening Marta walked the rows of her garden, counting what the frost had spared.",
  "paragraphPurposes": ["Introduces Marta's ritual"],
  "testableVocabulary": [{"word": "spared", "sentenceContext": "counting what the frost had spared", "contextualMeaning": "left unharmed"}],
  "keyInferences": ["Marta depends on the garden"],
  "mainIdea": "Marta's care for her garden reflects her resilience.",
  "authorPurpose": "To portray quiet perseverance.",
}

READING_QUESTION = {
  "questionStem": "Which choice best states the main idea of the text?",
  "choices": {"A": "Marta perseveres.", "B": "Marta dislikes winter.", "C": "The garden is large.", "D": "Frost is rare."},
  "correctAnswer": "A",
  "explanation": "The passage centers on Marta's steady care.",
}


@pytest.fixture
def payloads() -> SimpleNamespace:
  """Model outputs; the ``*_json`` variants are what the text client returns."""
  return SimpleNamespace(
    bar_chart=dict(BAR_CHART),
    chart_question=dict(CHART_QUESTION),
    passage=dict(PASSAGE),
    reading_question=dict(READING_QUESTION),
    bar_chart_json=json.dumps(BAR_CHART),
    chart_question_json=f"Here is the question:\n```json\n{json.dumps(CHART_QUESTION)}\n```",
    passage_json=json.dumps(PASSAGE),
    reading_question_json=json.dumps(READING_QUESTION),
  )
