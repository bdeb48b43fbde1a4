"""Pydantic models."""
from elearning.models.attempts import (
    AttemptDecisionResponse,
    AttemptQuestionsResponse,
    AttemptResultsResponse,
    AttemptSummary,
    AttemptTiming,
    PresentedOption,
    PresentedQuestion,
    QuizOverviewResponse,
    ReviewedOption,
    ReviewedQuestion,
    StartAttemptResponse,
    SubjectCreate,
    SubjectResponse,
    SubmissionResponse,
    SubmitAnswersRequest,
)
from elearning.models.quizzes import (
    AcceptedAnswer,
    QuestionImport,
    QuestionModel,
    QuestionOption,
    QuestionType,
    QuizDefinition,
    QuizImport,
    QuizStatus,
    SelectedQuestion,
)

__all__ = [
    "AcceptedAnswer",
    "AttemptDecisionResponse",
    "AttemptQuestionsResponse",
    "AttemptResultsResponse",
    "AttemptSummary",
    "AttemptTiming",
    "PresentedOption",
    "PresentedQuestion",
    "QuestionImport",
    "QuestionModel",
    "QuestionOption",
    "QuestionType",
    "QuizDefinition",
    "QuizImport",
    "QuizOverviewResponse",
    "QuizStatus",
    "ReviewedOption",
    "ReviewedQuestion",
    "SelectedQuestion",
    "StartAttemptResponse",
    "SubjectCreate",
    "SubjectResponse",
    "SubmissionResponse",
    "SubmitAnswersRequest",
]
