"""Database models."""
from elearning.models.db.subject import QuizAttemptGroup, Subject, SubjectKind
from elearning.models.db.attempt import (
    TERMINAL_STATUSES,
    Attempt,
    AttemptAnswer,
    AttemptStatus,
)
from elearning.models.db.quiz import Question, Quiz, QuizQuestion, QuizStatusValue

__all__ = [
    "Subject",
    "SubjectKind",
    "QuizAttemptGroup",
    "Attempt",
    "AttemptAnswer",
    "AttemptStatus",
    "TERMINAL_STATUSES",
    "Quiz",
    "Question",
    "QuizQuestion",
    "QuizStatusValue",
]
