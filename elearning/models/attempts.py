"""Attempt-related Pydantic models."""
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from elearning.models.quizzes import QuestionType
from elearning.utils.time_utils import ensure_utc


class SubjectCreate(BaseModel):
    """Model for registering a student or guest."""

    id: str = Field(..., min_length=1, max_length=64)
    kind: str = Field("guest", pattern="^(student|guest)$")
    display_name: str | None = Field(None, max_length=100)


class SubjectResponse(BaseModel):
    """Subject with aggregate attempt counters."""

    id: str
    kind: str
    display_name: str | None = None
    created_at: datetime
    last_active_at: datetime
    total_quiz_attempts: int = 0
    average_quiz_score: int = 0

    @field_validator("created_at", "last_active_at")
    @classmethod
    def as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    class Config:
        from_attributes = True


class AttemptSummary(BaseModel):
    """Attempt without its graded answers."""

    attempt_number: int
    status: str
    started_at: datetime
    expected_end: datetime | None = None
    completed_at: datetime | None = None
    score: int = 0
    total_questions: int = 0
    correct_answers: int = 0
    wrong_answers: int = 0
    skipped_answers: int = 0
    total_points: int = 0
    time_spent: int = 0
    passed: bool = False

    @field_validator("started_at", "expected_end", "completed_at")
    @classmethod
    def as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    class Config:
        from_attributes = True


class StartAttemptResponse(BaseModel):
    """Model for a started or resumed attempt."""

    is_new_attempt: bool
    attempt: AttemptSummary
    remaining_seconds: int | None = None


class SubmitAnswersRequest(BaseModel):
    """Model for submitting answers.

    ``answers`` maps question id to the chosen option text or written answer.
    """

    answers: dict[str, str | None] = Field(default_factory=dict)
    time_spent: int = Field(0, ge=0)


class SubmissionResponse(BaseModel):
    """Model for attempt submission result."""

    attempt_number: int
    score: int
    correct_answers: int
    wrong_answers: int
    skipped_answers: int
    total_questions: int
    total_points: int
    max_points: int
    passed: bool
    passing_score: int
    time_spent: int
    show_results: bool


class AttemptDecisionResponse(BaseModel):
    """Whether a new attempt may be started, and why not."""

    allowed: bool
    reason: str
    attempts_left: int | None = None
    has_passed: bool = False


class AttemptTiming(BaseModel):
    """Timing of the active attempt."""

    duration_minutes: int
    remaining_seconds: int | None = None
    is_expired: bool = False
    started_at: datetime
    expected_end: datetime | None = None

    @field_validator("started_at", "expected_end")
    @classmethod
    def as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)


class QuizOverviewResponse(BaseModel):
    """Quiz details page data for one subject."""

    quiz_id: str
    title: str
    can_attempt: AttemptDecisionResponse
    best_score: int | None = None
    attempt_history: list[AttemptSummary] = Field(default_factory=list)
    active_attempt: AttemptSummary | None = None
    timing: AttemptTiming | None = None
    can_view_detailed_results: bool = False
    has_passed: bool = False
    attempts_exhausted: bool = False
    remaining_attempts: int | None = None
    max_attempts: int = 0
    show_results: bool = True


class PresentedOption(BaseModel):
    """Option as shown to a test-taker (no correctness flag)."""

    text: str
    image: str | None = None


class PresentedQuestion(BaseModel):
    """Question as shown while taking an attempt."""

    id: str
    question_text: str
    question_type: QuestionType
    options: list[PresentedOption] = Field(default_factory=list)
    points: int = 1
    order: int = 0
    question_image: str | None = None


class AttemptQuestionsResponse(BaseModel):
    """Questions of the active attempt in presentation order."""

    attempt_number: int
    questions: list[PresentedQuestion]
    total_questions: int
    remaining_seconds: int | None = None


class ReviewedOption(BaseModel):
    """Option on the review screen; ``is_correct`` is None when withheld."""

    text: str
    image: str | None = None
    is_correct: bool | None = None


class ReviewedQuestion(BaseModel):
    """Question on the results screen.

    ``is_correct`` and ``earned_points`` are None while the verdict is withheld.
    """

    id: str
    question_text: str
    question_type: QuestionType
    options: list[ReviewedOption] = Field(default_factory=list)
    correct_answer: str | None = None
    explanation: str | None = None
    question_image: str | None = None
    user_answer: str | None = None
    is_correct: bool | None = None
    points: int = 1
    earned_points: int | None = None


class AttemptResultsResponse(BaseModel):
    """Results screen for one completed attempt."""

    quiz_id: str
    attempt: AttemptSummary
    questions: list[ReviewedQuestion] = Field(default_factory=list)
    all_attempts: list[AttemptSummary] = Field(default_factory=list)
    best_score: int = 0
    show_results: bool = True
    show_correct_answers: bool = False
    can_view_detailed_results: bool = False
    has_passed: bool = False
    attempts_exhausted: bool = False
    remaining_attempts: int | None = None
    max_attempts: int = 0
