"""Create question, passage, figure image and generation DLQ tables.

Revision ID: 4f2a9c1d7e30
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from app.core.migration_guards import guarded_create_index, guarded_create_table, guarded_drop_table

revision = "4f2a9c1d7e30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  guarded_create_table(
    "figure_images",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("storage_bucket", sa.Text(), nullable=False),
    sa.Column("storage_object_name", sa.Text(), nullable=False),
    sa.Column("mime_type", sa.String(), nullable=False),
    sa.Column("width", sa.Integer(), nullable=False),
    sa.Column("height", sa.Integer(), nullable=False),
    sa.Column("aspect_ratio", sa.Float(), nullable=False),
    sa.Column("alt_text", sa.Text(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    sa.PrimaryKeyConstraint("id"),
  )
  guarded_create_index("ix_figure_images_storage_object_name", "figure_images", ["storage_object_name"])

  guarded_create_table(
    "passages",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("title", sa.Text(), nullable=True),
    sa.Column("author", sa.Text(), nullable=False),
    sa.Column("content", sa.Text(), nullable=False),
    sa.Column("source", sa.Text(), nullable=False),
    sa.Column("passage_type", sa.String(), nullable=False),
    sa.Column("complexity", sa.Float(), nullable=False),
    sa.Column("analyzed_features", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    sa.PrimaryKeyConstraint("id"),
  )
  guarded_create_index("ix_passages_passage_type", "passages", ["passage_type"])

  guarded_create_table(
    "questions",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("type", sa.String(), nullable=False),
    sa.Column("category", sa.String(), nullable=False),
    sa.Column("domain", sa.String(), nullable=False),
    sa.Column("skill", sa.String(), nullable=False),
    sa.Column("prompt", sa.Text(), nullable=False),
    sa.Column("passage_id", sa.String(), nullable=True),
    sa.Column("figure", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("correct_answer", sa.String(), nullable=False),
    sa.Column("options", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("explanation", sa.Text(), nullable=False),
    sa.Column("wrong_answer_explanations", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("rw_difficulty", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("overall_difficulty", sa.Float(), nullable=False),
    sa.Column("generation_metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("generation_batch_id", sa.String(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    sa.ForeignKeyConstraint(["passage_id"], ["passages.id"], ondelete="SET NULL"),
    sa.PrimaryKeyConstraint("id"),
  )
  for column in ("category", "domain", "skill", "passage_id", "generation_batch_id"):
    guarded_create_index(f"ix_questions_{column}", "questions", [column])

  guarded_create_table(
    "generation_dlq_items",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("pipeline", sa.String(), nullable=False),
    sa.Column("item_type", sa.String(), nullable=False),
    sa.Column("variant", sa.String(), nullable=True),
    sa.Column("sampled_params", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("last_artifact", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("batch_id", sa.String(), nullable=True),
    sa.Column("error", sa.Text(), nullable=False),
    sa.Column("error_stage", sa.String(), nullable=False),
    sa.Column("retry_count", sa.Integer(), nullable=False),
    sa.Column("max_retries", sa.Integer(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("question_id", sa.String(), nullable=True),
    sa.Column("image_id", sa.String(), nullable=True),
    sa.Column("passage_id", sa.String(), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )
  for column in ("item_type", "batch_id", "status"):
    guarded_create_index(f"ix_generation_dlq_items_{column}", "generation_dlq_items", [column])
  guarded_create_index("ix_generation_dlq_items_pipeline_status", "generation_dlq_items", ["pipeline", "status"])
  guarded_create_index("ix_generation_dlq_items_pipeline_created", "generation_dlq_items", ["pipeline", "created_at"])


def downgrade() -> None:
  """Downgrade schema."""
  for table_name in ("generation_dlq_items", "questions", "passages", "figure_images"):
    guarded_drop_table(table_name)
