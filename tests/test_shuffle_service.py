import random

import pytest

from conftest import T0
from elearning.errors import InvalidStateError
from elearning.services import attempt_service, shuffle_service


class RacingRandom:
    """Runs a competing write right before the first draw."""

    def __init__(self, before_first_draw) -> None:
        self._rng = random.Random(7)
        self._hook = before_first_draw
        self.calls = 0

    def randint(self, a: int, b: int) -> int:
        self.calls += 1
        if self._hook is not None:
            hook, self._hook = self._hook, None
            hook()
        return self._rng.randint(a, b)


def _start(db, subject_id):
    return attempt_service.start_attempt(db, subject_id, "quiz-1", 10, now=T0).attempt


def test_fisher_yates_is_a_permutation() -> None:
    for count in (0, 1, 2, 7, 50):
        order = shuffle_service.fisher_yates(count)
        assert shuffle_service.is_permutation(order, count)


def test_fisher_yates_with_seeded_rng() -> None:
    first = shuffle_service.fisher_yates(10, random.Random(3))
    second = shuffle_service.fisher_yates(10, random.Random(3))
    assert first == second


def test_apply_order() -> None:
    assert shuffle_service.apply_order(["a", "b", "c"], [2, 0, 1]) == ["c", "a", "b"]
    assert shuffle_service.apply_order(["a", "b", "c"], [0, 1]) == ["a", "b", "c"]
    assert shuffle_service.apply_order(["a", "b"], []) == ["a", "b"]


def test_question_order_is_generated_once(db, subject_id) -> None:
    attempt = _start(db, subject_id)
    first = shuffle_service.materialize_question_order(db, attempt, 6, rng=random.Random(1))
    second = shuffle_service.materialize_question_order(db, attempt, 6, rng=random.Random(2))

    assert shuffle_service.is_permutation(first, 6)
    assert second == first
    reloaded = attempt_service.get_active_attempt(db, subject_id, "quiz-1")
    assert reloaded.question_order == first


def test_question_order_for_empty_quiz(db, subject_id) -> None:
    attempt = _start(db, subject_id)
    assert shuffle_service.materialize_question_order(db, attempt, 0) == []
    assert attempt.question_order == []


def test_option_orders_are_generated_once(db, subject_id) -> None:
    attempt = _start(db, subject_id)
    first = shuffle_service.materialize_option_orders(
        db, attempt, {0: 4, 2: 3}, rng=random.Random(1)
    )
    assert shuffle_service.is_permutation(first[0], 4)
    assert shuffle_service.is_permutation(first[2], 3)

    single = shuffle_service.materialize_option_order(db, attempt, 2, 3, rng=random.Random(9))
    assert single == first[2]

    added = shuffle_service.materialize_option_order(db, attempt, 1, 2, rng=random.Random(9))
    assert shuffle_service.is_permutation(added, 2)
    stored = {entry["questionIndex"]: entry["optionsIndices"] for entry in attempt.options_order}
    assert stored == {0: first[0], 2: first[2], 1: added}


def test_materialize_requires_in_progress_attempt(db, subject_id) -> None:
    attempt = _start(db, subject_id)
    attempt_service.abandon_attempt(db, subject_id, "quiz-1", 1, now=T0)
    with pytest.raises(InvalidStateError):
        shuffle_service.materialize_question_order(db, attempt, 3)
    with pytest.raises(InvalidStateError):
        shuffle_service.materialize_option_orders(db, attempt, {0: 3})


def test_stored_order_survives_completion(db, subject_id) -> None:
    attempt = _start(db, subject_id)
    order = shuffle_service.materialize_question_order(db, attempt, 4)
    attempt_service.abandon_attempt(db, subject_id, "quiz-1", 1, now=T0)
    assert shuffle_service.materialize_question_order(db, attempt, 4) == order


def test_concurrent_question_order_keeps_first_writer(db, session_factory, subject_id) -> None:
    attempt = _start(db, subject_id)
    other_db = session_factory()
    try:
        other_attempt = attempt_service.get_active_attempt(other_db, subject_id, "quiz-1")
        winner: list[list[int]] = []

        def competing_write() -> None:
            winner.append(
                shuffle_service.materialize_question_order(
                    other_db, other_attempt, 8, rng=random.Random(11)
                )
            )

        rng = RacingRandom(competing_write)
        result = shuffle_service.materialize_question_order(db, attempt, 8, rng=rng)

        assert rng.calls > 0
        assert result == winner[0]
        reloaded = attempt_service.get_active_attempt(db, subject_id, "quiz-1")
        assert reloaded.question_order == winner[0]
    finally:
        other_db.close()


def test_concurrent_option_orders_keep_first_writer(db, session_factory, subject_id) -> None:
    attempt = _start(db, subject_id)
    other_db = session_factory()
    try:
        other_attempt = attempt_service.get_active_attempt(other_db, subject_id, "quiz-1")
        winner: list[dict[int, list[int]]] = []

        def competing_write() -> None:
            winner.append(
                shuffle_service.materialize_option_orders(
                    other_db, other_attempt, {0: 5}, rng=random.Random(11)
                )
            )

        result = shuffle_service.materialize_option_orders(
            db, attempt, {0: 5}, rng=RacingRandom(competing_write)
        )
        assert result[0] == winner[0][0]
        assert len(attempt.options_order) == 1
    finally:
        other_db.close()
