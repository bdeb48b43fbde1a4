"""API route modules."""
from elearning.routes import quizzes, subjects

__all__ = ["quizzes", "subjects"]
