"""Persistence for the subject aggregate (subject -> attempt groups -> attempts).

Writes are optimistic: ``Subject.version`` is checked on every flush that
touches the subject row, and a lost race surfaces as
``ConcurrentModificationError``.
"""
import logging
from datetime import datetime
from typing import Callable, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession, selectinload
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from elearning.config import MAX_WRITE_RETRIES
from elearning.errors import ConcurrentModificationError, NotFoundError
from elearning.models.db.attempt import Attempt
from elearning.models.db.subject import QuizAttemptGroup, Subject, SubjectKind
from elearning.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_subject(db: DBSession, subject_id: str) -> Subject | None:
    """Get subject with its attempt ledger loaded."""
    stmt = (
        select(Subject)
        .options(
            selectinload(Subject.quiz_attempts)
            .selectinload(QuizAttemptGroup.attempts)
            .selectinload(Attempt.answers)
        )
        .where(Subject.id == subject_id)
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def load_subject(db: DBSession, subject_id: str) -> Subject:
    """Get subject or raise NotFoundError."""
    subject = get_subject(db, subject_id)
    if subject is None:
        raise NotFoundError(f"Subject {subject_id} not found")
    return subject


def get_or_create_subject(
    db: DBSession,
    subject_id: str,
    kind: SubjectKind = SubjectKind.GUEST,
    display_name: str | None = None,
) -> Subject:
    """Get existing subject or create a new one."""
    subject = get_subject(db, subject_id)
    if subject:
        return subject

    subject = Subject(
        id=subject_id,
        kind=kind.value,
        display_name=display_name,
    )
    db.add(subject)
    save_subject(db, subject)
    db.refresh(subject)
    logger.info(f"Created {kind.value} subject {subject_id}")
    return subject


def touch_subject(subject: Subject, now: datetime | None = None) -> None:
    """Mark the aggregate root dirty so the version check covers child changes."""
    subject.last_active_at = now or utc_now()
    flag_modified(subject, "last_active_at")


def save_subject(db: DBSession, subject: Subject) -> None:
    """
    Commit pending changes of a subject aggregate.

    Raises:
        ConcurrentModificationError: the subject changed since it was read,
            or a racing writer inserted the same group or attempt number.
    """
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Version conflict while saving subject {subject.id}: {e}")
        raise ConcurrentModificationError(
            f"Subject {subject.id} was modified concurrently"
        ) from e
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity conflict while saving subject {subject.id}: {e}")
        raise ConcurrentModificationError(
            f"Subject {subject.id} was modified concurrently"
        ) from e


def run_with_retry(
    db: DBSession,
    operation: Callable[[], T],
    retries: int = MAX_WRITE_RETRIES,
) -> T:
    """
    Run a whole read-modify-write, retrying it on write conflicts.

    ``operation`` must re-read everything it depends on; the session is
    expired before each try so nothing stale is reused.
    """
    for attempt_index in range(1, retries + 1):
        db.expire_all()
        try:
            return operation()
        except ConcurrentModificationError:
            if attempt_index >= retries:
                logger.error(f"Giving up after {retries} conflicting writes")
                raise
            logger.warning(
                f"Write conflict, retrying ({attempt_index}/{retries})"
            )
    raise ConcurrentModificationError("No write attempted")


def find_group(subject: Subject, quiz_id: str) -> QuizAttemptGroup | None:
    """Find the attempt group for a quiz."""
    return next(
        (group for group in subject.quiz_attempts if group.quiz_id == quiz_id),
        None,
    )


def load_group(db: DBSession, subject_id: str, quiz_id: str) -> QuizAttemptGroup:
    """Get attempt group or raise NotFoundError."""
    subject = load_subject(db, subject_id)
    group = find_group(subject, quiz_id)
    if group is None:
        raise NotFoundError(f"No attempts for quiz {quiz_id}")
    return group


def get_or_create_group(subject: Subject, quiz_id: str) -> QuizAttemptGroup:
    """Find or append the attempt group for a quiz (not committed)."""
    group = find_group(subject, quiz_id)
    if group:
        return group

    group = QuizAttemptGroup(
        quiz_id=quiz_id,
        best_score=0,
        total_attempts=0,
    )
    subject.quiz_attempts.append(group)
    return group


def delete_subject(db: DBSession, subject_id: str) -> bool:
    """Delete a subject with its whole attempt ledger."""
    subject = get_subject(db, subject_id)
    if not subject:
        return False

    db.delete(subject)
    db.commit()
    logger.info(f"Deleted subject {subject_id}")
    return True
