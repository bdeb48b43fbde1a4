"""Per-attempt question and option ordering.

Orders are generated once per attempt, persisted, and never regenerated, so
reloading the quiz page always shows the same arrangement. Under a write
conflict the permutation persisted by the competing request wins.
"""
import logging
import random
from typing import Sequence, TypeVar

from sqlalchemy.orm import Session as DBSession

from elearning.errors import InvalidStateError, NotFoundError
from elearning.models.db.attempt import Attempt
from elearning.models.db.subject import Subject
from elearning.services.subject_service import run_with_retry, save_subject, touch_subject

logger = logging.getLogger(__name__)

T = TypeVar("T")

_system_random = random.SystemRandom()


def fisher_yates(count: int, rng: random.Random | None = None) -> list[int]:
    """Uniformly random permutation of ``range(count)``."""
    rng = rng or _system_random
    indices = list(range(count))
    for i in range(count - 1, 0, -1):
        j = rng.randint(0, i)
        indices[i], indices[j] = indices[j], indices[i]
    return indices


def is_permutation(order: Sequence[int], count: int) -> bool:
    return sorted(order) == list(range(count))


def apply_order(items: Sequence[T], order: Sequence[int]) -> list[T]:
    """Reorder items by a stored permutation.

    A permutation that no longer fits (content edited mid-attempt) is ignored.
    """
    if not is_permutation(order, len(items)):
        if order:
            logger.warning(
                f"Stored order of length {len(order)} does not fit {len(items)} items"
            )
        return list(items)
    return [items[i] for i in order]


def _find_option_order(attempt: Attempt, question_index: int) -> list[int] | None:
    entry = next(
        (
            item
            for item in attempt.options_order
            if item.get("questionIndex") == question_index
        ),
        None,
    )
    if entry is None:
        return None
    return list(entry.get("optionsIndices", []))


def _reload(db: DBSession, attempt: Attempt, subject_id: str) -> Subject:
    """Reload the subject, then the attempt row; version is read first."""
    subject = db.get(Subject, subject_id, populate_existing=True)
    if subject is None:
        raise NotFoundError(f"Subject {subject_id} not found")
    db.refresh(attempt)
    return subject


def _require_in_progress(attempt: Attempt) -> None:
    if attempt.is_terminal:
        raise InvalidStateError(
            f"Attempt {attempt.attempt_number} is {attempt.status}, not in_progress"
        )


def materialize_question_order(
    db: DBSession,
    attempt: Attempt,
    question_count: int,
    rng: random.Random | None = None,
) -> list[int]:
    """Return the attempt's question order, generating and persisting it once."""
    subject_id = attempt.group.subject_id

    def operation() -> list[int]:
        subject = _reload(db, attempt, subject_id)
        existing = attempt.question_order
        if existing:
            return existing
        if question_count <= 0:
            return []
        _require_in_progress(attempt)

        order = fisher_yates(question_count, rng)
        attempt.question_order = order
        touch_subject(subject)
        save_subject(db, subject)
        logger.debug(f"Materialized question order for attempt {attempt.id}")
        return order

    return run_with_retry(db, operation)


def materialize_option_order(
    db: DBSession,
    attempt: Attempt,
    question_index: int,
    option_count: int,
    rng: random.Random | None = None,
) -> list[int]:
    """Return one question's option order, generating and persisting it once."""
    orders = materialize_option_orders(
        db, attempt, {question_index: option_count}, rng=rng
    )
    return orders.get(question_index, [])


def materialize_option_orders(
    db: DBSession,
    attempt: Attempt,
    option_counts: dict[int, int],
    rng: random.Random | None = None,
) -> dict[int, list[int]]:
    """
    Materialize option orders for several questions in a single write.

    ``option_counts`` maps question index to its number of options; indices
    that already have a stored order keep it.
    """
    subject_id = attempt.group.subject_id

    def operation() -> dict[int, list[int]]:
        subject = _reload(db, attempt, subject_id)
        stored = list(attempt.options_order)
        orders: dict[int, list[int]] = {}
        missing: list[dict[str, object]] = []

        for question_index, option_count in option_counts.items():
            existing = _find_option_order(attempt, question_index)
            if existing is not None:
                orders[question_index] = existing
                continue
            if option_count <= 0:
                orders[question_index] = []
                continue
            order = fisher_yates(option_count, rng)
            orders[question_index] = order
            missing.append({"questionIndex": question_index, "optionsIndices": order})

        if missing:
            _require_in_progress(attempt)
            attempt.options_order = stored + missing
            touch_subject(subject)
            save_subject(db, subject)
            logger.debug(
                f"Materialized option order for {len(missing)} questions "
                f"of attempt {attempt.id}"
            )
        return orders

    return run_with_retry(db, operation)
