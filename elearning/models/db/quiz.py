"""
Quiz, Question and QuizQuestion database models.

These are the content read models owned by the content-management side;
the attempt engine only reads them.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from elearning.database import Base
from elearning.utils.json_utils import dump_json_list, load_json_list


class QuizStatusValue(str, enum.Enum):
    """Publication status of a quiz."""

    ACTIVE = "active"
    DRAFT = "draft"
    ARCHIVED = "archived"


class Quiz(Base):
    """Quiz definition with its selected questions and attempt settings."""

    __tablename__ = "quizzes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=QuizStatusValue.ACTIVE.value, nullable=False
    )

    # Minutes, 0 = untimed
    duration: Mapped[int] = mapped_column(default=0, nullable=False)
    passing_score: Mapped[int] = mapped_column(default=60, nullable=False)
    # 0 = unlimited
    max_attempts: Mapped[int] = mapped_column(default=3, nullable=False)

    shuffle_questions: Mapped[bool] = mapped_column(default=False, nullable=False)
    shuffle_options: Mapped[bool] = mapped_column(default=False, nullable=False)
    show_correct_answers: Mapped[bool] = mapped_column(default=True, nullable=False)
    show_results: Mapped[bool] = mapped_column(default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    selected_questions: Mapped[list["QuizQuestion"]] = relationship(
        "QuizQuestion",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="QuizQuestion.order",
    )


class Question(Base):
    """
    Question bank entry.
    Options and accepted written answers are stored as JSON.
    """

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    question_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    question_type: Mapped[str] = mapped_column(String(20), nullable=False)
    question_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)

    options_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    correct_answers_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def options(self) -> list[dict[str, Any]]:
        """Parse options from JSON."""
        return load_json_list(self.options_json)

    @options.setter
    def options(self, value: list[dict[str, Any]] | None) -> None:
        """Serialize options to JSON."""
        self.options_json = dump_json_list(value)

    @property
    def correct_answers(self) -> list[dict[str, Any]]:
        """Parse accepted written answers from JSON."""
        return load_json_list(self.correct_answers_json)

    @correct_answers.setter
    def correct_answers(self, value: list[dict[str, Any]] | None) -> None:
        """Serialize accepted written answers to JSON."""
        self.correct_answers_json = dump_json_list(value)


class QuizQuestion(Base):
    """A question selected into a quiz, with its points and position."""

    __tablename__ = "quiz_questions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    quiz_id: Mapped[str] = mapped_column(
        ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    points: Mapped[int] = mapped_column(default=1, nullable=False)
    order: Mapped[int] = mapped_column(default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("quiz_id", "question_id", name="uq_quiz_question"),
    )

    # Relationships
    quiz: Mapped["Quiz"] = relationship("Quiz", back_populates="selected_questions")
    question: Mapped["Question"] = relationship("Question")
