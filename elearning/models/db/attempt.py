"""
Attempt and AttemptAnswer database models for quiz attempts.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from elearning.database import Base
from elearning.utils.json_utils import dump_json_list, load_json_list

if TYPE_CHECKING:
    from elearning.models.db.subject import QuizAttemptGroup


class AttemptStatus(str, enum.Enum):
    """Status of a quiz attempt."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    TIMEOUT = "timeout"
    ABANDONED = "abandoned"


TERMINAL_STATUSES = frozenset(
    {
        AttemptStatus.COMPLETED.value,
        AttemptStatus.TIMEOUT.value,
        AttemptStatus.ABANDONED.value,
    }
)


class Attempt(Base):
    """
    One timed or untimed run of a quiz by a subject.
    Rows are only ever appended to a group and moved between statuses.
    """

    __tablename__ = "attempts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    group_id: Mapped[int] = mapped_column(
        ForeignKey("quiz_attempt_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attempt_number: Mapped[int] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=AttemptStatus.IN_PROGRESS.value, nullable=False
    )

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    expected_end: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    time_spent: Mapped[int] = mapped_column(default=0, nullable=False)  # seconds

    # Results
    score: Mapped[int] = mapped_column(default=0, nullable=False)
    total_questions: Mapped[int] = mapped_column(default=0, nullable=False)
    correct_answers: Mapped[int] = mapped_column(default=0, nullable=False)
    wrong_answers: Mapped[int] = mapped_column(default=0, nullable=False)
    skipped_answers: Mapped[int] = mapped_column(default=0, nullable=False)
    total_points: Mapped[int] = mapped_column(default=0, nullable=False)
    passed: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Presentation order, set once per attempt (stored as JSON)
    question_order_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    options_order_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("group_id", "attempt_number", name="uq_group_attempt_number"),
    )

    # Relationships
    group: Mapped["QuizAttemptGroup"] = relationship(
        "QuizAttemptGroup", back_populates="attempts"
    )
    answers: Mapped[list["AttemptAnswer"]] = relationship(
        "AttemptAnswer",
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="AttemptAnswer.position",
    )

    @property
    def question_order(self) -> list[int]:
        """Parse question order from JSON."""
        return load_json_list(self.question_order_json)

    @question_order.setter
    def question_order(self, value: list[int] | None) -> None:
        """Serialize question order to JSON."""
        self.question_order_json = dump_json_list(value)

    @property
    def options_order(self) -> list[dict[str, Any]]:
        """Parse per-question option orders from JSON.

        Each entry is ``{"questionIndex": int, "optionsIndices": [int]}``.
        """
        return load_json_list(self.options_order_json)

    @options_order.setter
    def options_order(self, value: list[dict[str, Any]] | None) -> None:
        """Serialize per-question option orders to JSON."""
        self.options_order_json = dump_json_list(value)

    @property
    def is_in_progress(self) -> bool:
        """Check if attempt is still running."""
        return self.status == AttemptStatus.IN_PROGRESS.value

    @property
    def is_completed(self) -> bool:
        """Check if attempt is completed."""
        return self.status == AttemptStatus.COMPLETED.value

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Attempt(group_id={self.group_id}, number={self.attempt_number}, "
            f"status='{self.status}')>"
        )


class AttemptAnswer(Base):
    """
    Graded answer to one question within a completed attempt.
    ``correct_answer`` is a denormalized display copy taken at grading time.
    """

    __tablename__ = "attempt_answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    attempt_id: Mapped[int] = mapped_column(
        ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Position in quiz order (not presentation order)
    position: Mapped[int] = mapped_column(nullable=False)
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    question_type: Mapped[str] = mapped_column(String(20), nullable=False)

    selected_answer: Mapped[str] = mapped_column(Text, default="", nullable=False)
    correct_answer: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_correct: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_skipped: Mapped[bool] = mapped_column(default=False, nullable=False)
    points: Mapped[int] = mapped_column(default=0, nullable=False)

    # Relationships
    attempt: Mapped["Attempt"] = relationship("Attempt", back_populates="answers")
