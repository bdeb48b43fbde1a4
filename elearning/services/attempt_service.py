"""Service layer for the quiz attempt lifecycle.

State machine of a single attempt::

    [none] --start--> in_progress
    in_progress --expected_end passed and observed--> timeout
    in_progress --submit--> completed
    in_progress --abandon--> abandoned

Terminal attempts are never reused; a new attempt is always a new row.
Every public mutation is one read-modify-write of the subject aggregate,
retried as a whole on write conflicts.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session as DBSession

from elearning.config import SUBMISSION_GRACE_SECONDS
from elearning.errors import InvalidStateError, NotFoundError, PolicyViolationError
from elearning.models.db.attempt import Attempt, AttemptAnswer, AttemptStatus
from elearning.models.db.subject import QuizAttemptGroup, Subject
from elearning.models.quizzes import QuizDefinition
from elearning.services.access_service import can_start_attempt
from elearning.services.scoring_service import AttemptGrade
from elearning.services.subject_service import (
    find_group,
    get_or_create_group,
    load_subject,
    run_with_retry,
    save_subject,
    touch_subject,
)
from elearning.utils.time_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass
class StartResult:
    is_new_attempt: bool
    attempt: Attempt


# ----------------------------------------------------------------------
# Timing helpers
# ----------------------------------------------------------------------


def is_expired(
    attempt: Attempt,
    now: datetime,
    grace_seconds: int = SUBMISSION_GRACE_SECONDS,
) -> bool:
    """
    Check if a timed attempt is past its expected end plus the grace window.

    Starts, question fetches, reconciliation and submissions share this cutoff.
    """
    expected_end = ensure_utc(attempt.expected_end)
    if expected_end is None:
        return False
    return ensure_utc(now) > expected_end + timedelta(seconds=grace_seconds)


def remaining_seconds(attempt: Attempt, now: datetime) -> int | None:
    """Whole seconds left on a timed attempt, None when untimed."""
    expected_end = ensure_utc(attempt.expected_end)
    if expected_end is None:
        return None
    delta = (expected_end - ensure_utc(now)).total_seconds()
    return max(0, math.floor(delta))


# ----------------------------------------------------------------------
# In-memory transitions (caller persists)
# ----------------------------------------------------------------------


def _expire(attempt: Attempt, now: datetime) -> None:
    attempt.status = AttemptStatus.TIMEOUT.value
    attempt.completed_at = now
    logger.info(
        f"Attempt {attempt.attempt_number} of group {attempt.group_id} timed out"
    )


def _reconcile_group(group: QuizAttemptGroup, now: datetime) -> Attempt | None:
    """Time out the group's active attempt if it is past the expiry cutoff."""
    active = group.active_attempt
    if active is not None and is_expired(active, now):
        _expire(active, now)
        return active
    return None


def _open_attempt(
    group: QuizAttemptGroup, duration_minutes: int, now: datetime
) -> Attempt:
    attempt = Attempt(
        attempt_number=len(group.attempts) + 1,
        status=AttemptStatus.IN_PROGRESS.value,
        started_at=now,
        expected_end=(
            now + timedelta(minutes=duration_minutes) if duration_minutes > 0 else None
        ),
    )
    group.attempts.append(attempt)
    group.total_attempts = len(group.attempts)
    group.last_attempt_at = now
    return attempt


def _start_in_group(
    db: DBSession,
    subject: Subject,
    group: QuizAttemptGroup,
    duration_minutes: int,
    now: datetime,
    quiz: QuizDefinition | None = None,
) -> StartResult:
    active = group.active_attempt
    if active is not None and not is_expired(active, now):
        logger.info(
            f"Resuming attempt {active.attempt_number} for subject {subject.id} "
            f"on quiz {group.quiz_id}"
        )
        return StartResult(is_new_attempt=False, attempt=active)

    expired = _reconcile_group(group, now)

    if quiz is not None:
        decision = can_start_attempt(group, quiz)
        if not decision.allowed:
            if expired is not None:
                touch_subject(subject, now)
                save_subject(db, subject)
            else:
                db.rollback()
            logger.info(
                f"Subject {subject.id} denied attempt on quiz {quiz.id}: "
                f"{decision.reason}"
            )
            raise PolicyViolationError(decision.reason)

    attempt = _open_attempt(group, duration_minutes, now)
    touch_subject(subject, now)
    save_subject(db, subject)
    logger.info(
        f"Started attempt {attempt.attempt_number} for subject {subject.id} "
        f"on quiz {group.quiz_id}"
    )
    return StartResult(is_new_attempt=True, attempt=attempt)


# ----------------------------------------------------------------------
# Lifecycle operations
# ----------------------------------------------------------------------


def start_attempt(
    db: DBSession,
    subject_id: str,
    quiz_id: str,
    duration_minutes: int,
    now: datetime | None = None,
) -> StartResult:
    """
    Start a new attempt or resume the active one.

    An active attempt past its expected end is timed out first and a fresh
    attempt is created in its place.
    """

    def operation() -> StartResult:
        current = now or utc_now()
        subject = load_subject(db, subject_id)
        group = get_or_create_group(subject, quiz_id)
        return _start_in_group(db, subject, group, duration_minutes, current)

    return run_with_retry(db, operation)


def begin_quiz_attempt(
    db: DBSession,
    subject_id: str,
    quiz: QuizDefinition,
    now: datetime | None = None,
) -> StartResult:
    """
    Policy-gated start: resume the active attempt, or create a new one if
    the access policy allows it.

    Raises:
        PolicyViolationError: already passed, out of attempts, or the quiz
            is not available.
    """

    def operation() -> StartResult:
        current = now or utc_now()
        subject = load_subject(db, subject_id)
        group = get_or_create_group(subject, quiz.id)
        return _start_in_group(db, subject, group, quiz.duration, current, quiz=quiz)

    return run_with_retry(db, operation)


def get_active_attempt(
    db: DBSession, subject_id: str, quiz_id: str
) -> Attempt | None:
    """Get the in-progress attempt, if any. Does not time out stale attempts."""
    subject = load_subject(db, subject_id)
    group = find_group(subject, quiz_id)
    if group is None:
        return None
    return group.active_attempt


def reconcile_expiry(
    db: DBSession,
    subject_id: str,
    quiz_id: str,
    now: datetime | None = None,
) -> Attempt | None:
    """Time out the active attempt if it is past its expected end.

    Returns the attempt that was timed out, or None.
    """

    def operation() -> Attempt | None:
        current = now or utc_now()
        subject = load_subject(db, subject_id)
        group = find_group(subject, quiz_id)
        if group is None:
            return None
        expired = _reconcile_group(group, current)
        if expired is not None:
            touch_subject(subject, current)
            save_subject(db, subject)
        return expired

    return run_with_retry(db, operation)


def _locate_attempt(
    db: DBSession, subject_id: str, quiz_id: str, attempt_number: int
) -> tuple[Subject, QuizAttemptGroup, Attempt]:
    subject = load_subject(db, subject_id)
    group = find_group(subject, quiz_id)
    if group is None:
        raise NotFoundError(f"No attempts for quiz {quiz_id}")
    attempt = group.get_attempt(attempt_number)
    if attempt is None:
        raise NotFoundError(f"Attempt {attempt_number} not found")
    return subject, group, attempt


def complete_attempt(
    db: DBSession,
    subject_id: str,
    quiz_id: str,
    attempt_number: int,
    result: AttemptGrade,
    time_spent: int = 0,
    now: datetime | None = None,
) -> Attempt:
    """
    Finalize an in-progress attempt with its grade.

    Raises:
        NotFoundError: no such group or attempt.
        InvalidStateError: the attempt is not in progress.
    """

    def operation() -> Attempt:
        current = now or utc_now()
        subject, group, attempt = _locate_attempt(
            db, subject_id, quiz_id, attempt_number
        )
        if attempt.is_terminal:
            raise InvalidStateError(
                f"Attempt {attempt_number} is {attempt.status}, not in_progress"
            )

        attempt.score = result.score
        attempt.passed = result.passed
        attempt.total_questions = result.total_questions
        attempt.correct_answers = result.correct_count
        attempt.wrong_answers = result.wrong_count
        attempt.skipped_answers = result.skipped_count
        attempt.total_points = result.total_points
        attempt.time_spent = max(0, int(time_spent or 0))
        attempt.answers = [
            AttemptAnswer(
                position=index,
                question_id=answer.question_id,
                question_type=answer.question_type.value,
                selected_answer=answer.selected_answer,
                correct_answer=answer.correct_answer,
                is_correct=answer.is_correct,
                is_skipped=answer.is_skipped,
                points=answer.points,
            )
            for index, answer in enumerate(result.answers)
        ]
        attempt.status = AttemptStatus.COMPLETED.value
        attempt.completed_at = current

        group.best_score = max(
            [group.best_score] + [a.score for a in group.completed_attempts]
        )
        group.last_attempt_at = current

        touch_subject(subject, current)
        save_subject(db, subject)
        logger.info(
            f"Completed attempt {attempt_number} for subject {subject_id} on quiz "
            f"{quiz_id}: score={result.score} passed={result.passed}"
        )
        return attempt

    return run_with_retry(db, operation)


def abandon_attempt(
    db: DBSession,
    subject_id: str,
    quiz_id: str,
    attempt_number: int,
    now: datetime | None = None,
) -> Attempt:
    """Mark an in-progress attempt as abandoned."""

    def operation() -> Attempt:
        current = now or utc_now()
        subject, _, attempt = _locate_attempt(db, subject_id, quiz_id, attempt_number)
        if attempt.is_terminal:
            raise InvalidStateError(
                f"Attempt {attempt_number} is {attempt.status}, not in_progress"
            )
        attempt.status = AttemptStatus.ABANDONED.value
        attempt.completed_at = current
        touch_subject(subject, current)
        save_subject(db, subject)
        return attempt

    return run_with_retry(db, operation)


def resolve_submission_attempt(
    db: DBSession,
    subject_id: str,
    quiz_id: str,
    now: datetime | None = None,
) -> Attempt:
    """
    Resolve the attempt a submission targets.

    Raises:
        InvalidStateError: no active attempt, or the submission is past the
            grace window (the attempt is timed out first).
    """

    def operation() -> Attempt:
        current = now or utc_now()
        subject = load_subject(db, subject_id)
        group = find_group(subject, quiz_id)
        active = group.active_attempt if group else None
        if active is None:
            raise InvalidStateError("No active attempt found")
        if is_expired(active, current):
            _expire(active, current)
            touch_subject(subject, current)
            save_subject(db, subject)
            raise InvalidStateError(f"Attempt {active.attempt_number} timed out")
        return active

    return run_with_retry(db, operation)


def get_attempt_history(group: QuizAttemptGroup | None) -> list[Attempt]:
    """Completed attempts, newest first."""
    if group is None:
        return []
    return sorted(
        group.completed_attempts,
        key=lambda attempt: attempt.attempt_number,
        reverse=True,
    )
