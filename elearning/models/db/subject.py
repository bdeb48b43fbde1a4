"""Subject (student or guest) and QuizAttemptGroup database models."""
from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from elearning.database import Base

if TYPE_CHECKING:
    from elearning.models.db.attempt import Attempt


class SubjectKind(str, enum.Enum):
    """Who owns the attempts."""

    STUDENT = "student"
    GUEST = "guest"


class Subject(Base):
    """
    Aggregate root for quiz attempts.

    ``version`` is the optimistic concurrency counter: any flush that touches
    this row is rejected if another writer bumped it first.
    """

    __tablename__ = "subjects"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    kind: Mapped[str] = mapped_column(
        String(20), default=SubjectKind.GUEST.value, nullable=False
    )
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    last_active_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    version: Mapped[int] = mapped_column(nullable=False)

    # Relationships
    quiz_attempts: Mapped[list["QuizAttemptGroup"]] = relationship(
        "QuizAttemptGroup",
        back_populates="subject",
        cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def total_quiz_attempts(self) -> int:
        return sum(len(group.attempts) for group in self.quiz_attempts)

    @property
    def average_quiz_score(self) -> int:
        """Average score over every completed attempt, rounded."""
        scores = [
            attempt.score
            for group in self.quiz_attempts
            for attempt in group.attempts
            if attempt.is_completed
        ]
        if not scores:
            return 0
        return round(sum(scores) / len(scores))

    def __repr__(self) -> str:
        return f"<Subject(id='{self.id}', kind='{self.kind}', version={self.version})>"


class QuizAttemptGroup(Base):
    """All attempts by one subject against one quiz."""

    __tablename__ = "quiz_attempt_groups"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    subject_id: Mapped[str] = mapped_column(
        ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quiz_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    best_score: Mapped[int] = mapped_column(default=0, nullable=False)
    total_attempts: Mapped[int] = mapped_column(default=0, nullable=False)
    last_attempt_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("subject_id", "quiz_id", name="uq_subject_quiz"),
    )

    # Relationships
    subject: Mapped["Subject"] = relationship("Subject", back_populates="quiz_attempts")
    attempts: Mapped[list["Attempt"]] = relationship(
        "Attempt",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Attempt.attempt_number",
    )

    @property
    def completed_attempts(self) -> list["Attempt"]:
        return [attempt for attempt in self.attempts if attempt.is_completed]

    @property
    def active_attempt(self) -> "Attempt | None":
        return next(
            (attempt for attempt in self.attempts if attempt.is_in_progress), None
        )

    def get_attempt(self, attempt_number: int) -> "Attempt | None":
        return next(
            (a for a in self.attempts if a.attempt_number == attempt_number), None
        )
