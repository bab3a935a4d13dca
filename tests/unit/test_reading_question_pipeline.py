"""Unit tests for the passage pipeline orchestration."""

from __future__ import annotations

import random

import pytest

from app.ai.passage_orchestrator import ReadingPipelineDeps, build_passage_record, run_reading_pipeline
from app.ai.pipeline.contracts import GeneratedPassage, GeneratedReadingQuestion
from app.ai.pipeline.reading_question_templates import sample_reading_params


@pytest.mark.anyio
async def test_clean_run_stores_passage_then_question(stubs, payloads) -> None:
  deps = ReadingPipelineDeps(text_client=stubs.text([payloads.passage_json, payloads.reading_question_json]), questions=stubs.questions(), passages=stubs.passages())
  params = sample_reading_params(random.Random(1), {"question_type": "central_ideas", "passage_type": "literary_narrative"})

  result = await run_reading_pipeline(deps, params, batch_id="reading-1")

  assert result.success
  assert (result.question_id, result.passage_id) == ("question-1", "passage-1")
  document = deps.questions.documents[0]
  assert document["passageId"] == "passage-1"
  assert document["domain"] == "information_and_ideas"
  assert document["prompt"] == payloads.reading_question["questionStem"]
  assert document["generationMetadata"]["promptTemplate"] == "reading_central_ideas"
  assert document["tags"] == ["reading_writing", "information_and_ideas", "central_ideas", "central_ideas", "literary_narrative", "agent_generated"]
  record = deps.passages.records[0]
  assert record.analyzed_features["testableVocabulary"] == [{"word": "spared", "contextualMeaning": "left unharmed"}]


@pytest.mark.anyio
async def test_question_failure_keeps_the_passage(stubs, payloads) -> None:
  deps = ReadingPipelineDeps(text_client=stubs.text([payloads.passage_json, "{}"]), questions=stubs.questions(), passages=stubs.passages())
  result = await run_reading_pipeline(deps, sample_reading_params(random.Random(2)))
  assert not result.success
  assert result.error_stage == "question_generation"
  assert result.error.startswith("question missing required fields")
  assert set(result.last_artifact()) == {"passage"}
  assert deps.passages.records == []


@pytest.mark.anyio
async def test_storage_resume_reuses_stored_passage(stubs, payloads) -> None:
  questions = stubs.questions(failures=1)
  passages = stubs.passages()
  params = sample_reading_params(random.Random(3))
  deps = ReadingPipelineDeps(text_client=stubs.text([payloads.passage_json, payloads.reading_question_json]), questions=questions, passages=passages)

  failure = await run_reading_pipeline(deps, params)
  assert failure.error_stage == "storage"
  artifact = failure.last_artifact()
  assert artifact["passageId"] == "passage-1"

  resumed = ReadingPipelineDeps(text_client=stubs.text([]), questions=questions, passages=passages)
  result = await run_reading_pipeline(
    resumed,
    params,
    existing_passage=GeneratedPassage.model_validate(artifact["passage"]),
    existing_question=GeneratedReadingQuestion.model_validate(artifact["question"]),
    existing_passage_id=artifact["passageId"],
  )
  assert result.success
  assert result.passage_id == "passage-1"
  assert len(passages.records) == 1


def test_passage_record_carries_sampled_complexity(payloads) -> None:
  params = sample_reading_params(random.Random(4), {"passage_type": "humanities", "passage_complexity": 0.42})
  record = build_passage_record(params, GeneratedPassage.model_validate(payloads.passage))
  assert record.passage_type == "humanities"
  assert record.complexity == 0.42
  assert record.analyzed_features["mainIdea"] == payloads.passage["mainIdea"]
