"""Schema package exports."""

from .generation import FigureImage, GenerationDLQItem, Passage, Question

__all__ = ["FigureImage", "GenerationDLQItem", "Passage", "Question"]
