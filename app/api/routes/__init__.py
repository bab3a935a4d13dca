from . import dlq, generation

__all__ = ["dlq", "generation"]
