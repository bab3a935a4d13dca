"""Stage executors for the generation pipelines."""

from app.ai.agents.base import StageError
from app.ai.agents.chart_renderer import generate_image
from app.ai.agents.data_generator import generate_data
from app.ai.agents.passage_writer import generate_passage, generate_reading_question
from app.ai.agents.question_writer import generate_question

__all__ = ["StageError", "generate_data", "generate_image", "generate_passage", "generate_question", "generate_reading_question"]
