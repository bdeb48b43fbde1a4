"""Quiz and question read models (pydantic)."""
from collections import Counter
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class QuestionType(str, Enum):
    """Supported question types."""

    MCQ = "MCQ"
    TRUE_FALSE = "TrueFalse"
    WRITTEN = "Written"


class QuizStatus(str, Enum):
    """Publication status of a quiz."""

    ACTIVE = "active"
    DRAFT = "draft"
    ARCHIVED = "archived"


class QuestionOption(BaseModel):
    """Answer option of an MCQ or True/False question."""

    text: str = ""
    is_correct: bool = False
    image: str | None = None


class AcceptedAnswer(BaseModel):
    """Accepted answer of a written question.

    ``text`` may hold several comma-separated alternatives.
    """

    text: str = ""


class QuestionModel(BaseModel):
    """Question as supplied by the content service."""

    id: str
    question_text: str = ""
    question_type: QuestionType = QuestionType.MCQ
    options: list[QuestionOption] = Field(default_factory=list)
    correct_answers: list[AcceptedAnswer] = Field(default_factory=list)
    explanation: str | None = None
    question_image: str | None = None

    class Config:
        from_attributes = True


class SelectedQuestion(BaseModel):
    """A question selected into a quiz."""

    question: QuestionModel
    points: int = 1
    order: int = 0

    class Config:
        from_attributes = True


class QuizDefinition(BaseModel):
    """Quiz definition consumed by the attempt engine."""

    id: str
    title: str = ""
    description: str | None = None
    status: QuizStatus = QuizStatus.ACTIVE
    duration: int = Field(0, ge=0)
    passing_score: int = Field(60, ge=0, le=100)
    max_attempts: int = Field(0, ge=0)
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_correct_answers: bool = True
    show_results: bool = True
    selected_questions: list[SelectedQuestion] = Field(default_factory=list)

    class Config:
        from_attributes = True

    @property
    def is_active(self) -> bool:
        return self.status == QuizStatus.ACTIVE


# Import payloads


class QuestionImport(BaseModel):
    """Question entry of a quiz import file."""

    id: str = Field(..., min_length=1, max_length=64)
    question_text: str = ""
    question_type: QuestionType = QuestionType.MCQ
    options: list[QuestionOption] = Field(default_factory=list)
    correct_answers: list[AcceptedAnswer] = Field(default_factory=list)
    explanation: str | None = None
    question_image: str | None = None
    points: int = Field(1, ge=0)


class QuizImport(BaseModel):
    """Quiz import file (used by the CLI)."""

    id: str = Field(..., min_length=1, max_length=64)
    title: str = Field(..., min_length=1)
    description: str | None = None
    status: QuizStatus = QuizStatus.ACTIVE
    duration: int = Field(0, ge=0)
    passing_score: int | None = Field(None, ge=0, le=100)
    max_attempts: int | None = Field(None, ge=0)
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_correct_answers: bool = True
    show_results: bool = True
    questions: list[QuestionImport] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_question_ids(self) -> "QuizImport":
        counts = Counter(question.id for question in self.questions)
        duplicates = sorted(question_id for question_id, count in counts.items() if count > 1)
        if duplicates:
            raise ValueError(f"Duplicate question ids: {', '.join(duplicates)}")
        return self
