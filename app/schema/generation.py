"""ORM models for generated content and the generation dead-letter queue."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class FigureImage(Base):
  """Chart image metadata and its object storage coordinates."""

  __tablename__ = "figure_images"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  storage_bucket: Mapped[str] = mapped_column(Text, nullable=False)
  storage_object_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
  mime_type: Mapped[str] = mapped_column(String, nullable=False)
  width: Mapped[int] = mapped_column(Integer, nullable=False)
  height: Mapped[int] = mapped_column(Integer, nullable=False)
  aspect_ratio: Mapped[float] = mapped_column(Float, nullable=False)
  alt_text: Mapped[str] = mapped_column(Text, nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Passage(Base):
  __tablename__ = "passages"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  title: Mapped[str | None] = mapped_column(Text, nullable=True)
  author: Mapped[str] = mapped_column(Text, nullable=False)
  content: Mapped[str] = mapped_column(Text, nullable=False)
  source: Mapped[str] = mapped_column(Text, nullable=False)
  passage_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
  complexity: Mapped[float] = mapped_column(Float, nullable=False)
  analyzed_features: Mapped[dict] = mapped_column(JSONB, nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Question(Base):
  """Agent-generated multiple choice question."""

  __tablename__ = "questions"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  type: Mapped[str] = mapped_column(String, nullable=False)
  category: Mapped[str] = mapped_column(String, nullable=False, index=True)
  domain: Mapped[str] = mapped_column(String, nullable=False, index=True)
  skill: Mapped[str] = mapped_column(String, nullable=False, index=True)
  prompt: Mapped[str] = mapped_column(Text, nullable=False)
  passage_id: Mapped[str | None] = mapped_column(ForeignKey("passages.id", ondelete="SET NULL"), nullable=True, index=True)
  figure: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  correct_answer: Mapped[str] = mapped_column(String, nullable=False)
  options: Mapped[list] = mapped_column(JSONB, nullable=False)
  explanation: Mapped[str] = mapped_column(Text, nullable=False)
  wrong_answer_explanations: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  rw_difficulty: Mapped[dict] = mapped_column(JSONB, nullable=False)
  overall_difficulty: Mapped[float] = mapped_column(Float, nullable=False)
  generation_metadata: Mapped[dict] = mapped_column(JSONB, nullable=False)
  tags: Mapped[list[str]] = mapped_column(JSONB, nullable=False)
  generation_batch_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class GenerationDLQItem(Base):
  """Failed generation work item awaiting retry."""

  __tablename__ = "generation_dlq_items"
  __table_args__ = (Index("ix_generation_dlq_items_pipeline_status", "pipeline", "status"), Index("ix_generation_dlq_items_pipeline_created", "pipeline", "created_at"))

  id: Mapped[str] = mapped_column(String, primary_key=True)
  pipeline: Mapped[str] = mapped_column(String, nullable=False)
  item_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
  variant: Mapped[str | None] = mapped_column(String, nullable=True)
  sampled_params: Mapped[dict] = mapped_column(JSONB, nullable=False)
  last_artifact: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  batch_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  error: Mapped[str] = mapped_column(Text, nullable=False)
  error_stage: Mapped[str] = mapped_column(String, nullable=False)
  retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  max_retries: Mapped[int] = mapped_column(Integer, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, index=True)
  last_attempt_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  question_id: Mapped[str | None] = mapped_column(String, nullable=True)
  image_id: Mapped[str | None] = mapped_column(String, nullable=True)
  passage_id: Mapped[str | None] = mapped_column(String, nullable=True)
