from datetime import timedelta

import pytest

from conftest import T0
from elearning.config import SUBMISSION_GRACE_SECONDS as GRACE
from elearning.errors import InvalidStateError, NotFoundError, PolicyViolationError
from elearning.models.db.attempt import Attempt, AttemptStatus
from elearning.services import attempt_service, subject_service
from elearning.services.scoring_service import grade_attempt
from elearning.utils.time_utils import ensure_utc

ALL_WRONG = {"q1": "5", "q2": "Rome"}
ALL_RIGHT = {"q1": "4", "q2": "Paris"}


def _finish(db, subject_id, quiz, answers, now=T0):
    started = attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=now)
    return attempt_service.complete_attempt(
        db,
        subject_id,
        quiz.id,
        started.attempt.attempt_number,
        grade_attempt(quiz, answers),
        time_spent=42,
        now=now + timedelta(minutes=1),
    )


def test_start_creates_first_attempt(db, subject_id) -> None:
    result = attempt_service.start_attempt(db, subject_id, "quiz-1", 10, now=T0)
    assert result.is_new_attempt is True
    assert result.attempt.attempt_number == 1
    assert result.attempt.status == AttemptStatus.IN_PROGRESS.value
    assert ensure_utc(result.attempt.expected_end) == T0 + timedelta(minutes=10)

    group = subject_service.load_group(db, subject_id, "quiz-1")
    assert group.total_attempts == 1


def test_start_resumes_active_attempt(db, subject_id) -> None:
    first = attempt_service.start_attempt(db, subject_id, "quiz-1", 10, now=T0)
    second = attempt_service.start_attempt(
        db, subject_id, "quiz-1", 10, now=T0 + timedelta(minutes=5)
    )
    assert second.is_new_attempt is False
    assert second.attempt.id == first.attempt.id


def test_untimed_attempt_has_no_expected_end(db, subject_id) -> None:
    result = attempt_service.start_attempt(db, subject_id, "quiz-1", 0, now=T0)
    assert result.attempt.expected_end is None
    assert attempt_service.remaining_seconds(result.attempt, T0 + timedelta(days=3)) is None
    assert attempt_service.is_expired(result.attempt, T0 + timedelta(days=3)) is False


def test_expired_attempt_is_timed_out_and_replaced(db, subject_id) -> None:
    attempt_service.start_attempt(db, subject_id, "quiz-1", 10, now=T0)

    later = T0 + timedelta(minutes=11)
    result = attempt_service.start_attempt(db, subject_id, "quiz-1", 10, now=later)

    assert result.is_new_attempt is True
    assert result.attempt.attempt_number == 2
    group = subject_service.load_group(db, subject_id, "quiz-1")
    first = group.get_attempt(1)
    assert first.status == AttemptStatus.TIMEOUT.value
    assert ensure_utc(first.completed_at) == later
    assert group.active_attempt.attempt_number == 2


def test_remaining_seconds_floors_and_clamps(db, subject_id) -> None:
    attempt = attempt_service.start_attempt(db, subject_id, "quiz-1", 10, now=T0).attempt
    assert attempt_service.remaining_seconds(attempt, T0) == 600
    assert attempt_service.remaining_seconds(attempt, T0 + timedelta(seconds=0.5)) == 599
    assert attempt_service.remaining_seconds(attempt, T0 + timedelta(hours=1)) == 0


def test_reconcile_expiry(db, subject_id) -> None:
    attempt_service.start_attempt(db, subject_id, "quiz-1", 10, now=T0)
    assert attempt_service.reconcile_expiry(db, subject_id, "quiz-1", now=T0) is None

    inside_grace = T0 + timedelta(minutes=10, seconds=GRACE)
    assert attempt_service.reconcile_expiry(db, subject_id, "quiz-1", now=inside_grace) is None

    expired = attempt_service.reconcile_expiry(
        db, subject_id, "quiz-1", now=inside_grace + timedelta(seconds=1)
    )
    assert expired is not None
    assert expired.status == AttemptStatus.TIMEOUT.value
    assert attempt_service.get_active_attempt(db, subject_id, "quiz-1") is None


def test_complete_attempt_records_grade(db, subject_id, make_quiz) -> None:
    quiz = make_quiz()
    attempt = _finish(db, subject_id, quiz, {"q1": "4", "q2": "Rome"})

    assert attempt.status == AttemptStatus.COMPLETED.value
    assert attempt.score == 50
    assert attempt.passed is True
    assert attempt.correct_answers == 1
    assert attempt.wrong_answers == 1
    assert attempt.time_spent == 42
    assert [answer.question_id for answer in attempt.answers] == ["q1", "q2"]
    assert attempt.answers[1].correct_answer == "Paris"

    group = subject_service.load_group(db, subject_id, quiz.id)
    assert group.best_score == 50


def test_best_score_never_decreases(db, subject_id, make_quiz) -> None:
    quiz = make_quiz(passing_score=100)
    _finish(db, subject_id, quiz, {"q1": "4", "q2": "Rome"})
    _finish(db, subject_id, quiz, ALL_WRONG)

    group = subject_service.load_group(db, subject_id, quiz.id)
    assert group.best_score == 50
    assert [a.attempt_number for a in attempt_service.get_attempt_history(group)] == [2, 1]


def test_complete_twice_is_invalid(db, subject_id, make_quiz) -> None:
    quiz = make_quiz()
    attempt = _finish(db, subject_id, quiz, ALL_WRONG)
    with pytest.raises(InvalidStateError):
        attempt_service.complete_attempt(
            db, subject_id, quiz.id, attempt.attempt_number, grade_attempt(quiz, ALL_RIGHT)
        )


def test_complete_timed_out_attempt_is_invalid(db, subject_id, make_quiz) -> None:
    quiz = make_quiz(duration=10)
    attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=T0)
    attempt_service.reconcile_expiry(db, subject_id, quiz.id, now=T0 + timedelta(hours=1))
    with pytest.raises(InvalidStateError):
        attempt_service.complete_attempt(db, subject_id, quiz.id, 1, grade_attempt(quiz, ALL_RIGHT))


def test_unknown_subject_and_attempt(db, subject_id) -> None:
    with pytest.raises(NotFoundError):
        attempt_service.start_attempt(db, "nobody", "quiz-1", 10, now=T0)
    attempt_service.start_attempt(db, subject_id, "quiz-1", 10, now=T0)
    with pytest.raises(NotFoundError):
        attempt_service.abandon_attempt(db, subject_id, "quiz-1", 7)
    with pytest.raises(NotFoundError):
        attempt_service.abandon_attempt(db, subject_id, "other-quiz", 1)


def test_abandon_then_start_creates_new_attempt(db, subject_id) -> None:
    attempt_service.start_attempt(db, subject_id, "quiz-1", 10, now=T0)
    abandoned = attempt_service.abandon_attempt(db, subject_id, "quiz-1", 1, now=T0)
    assert abandoned.status == AttemptStatus.ABANDONED.value

    result = attempt_service.start_attempt(db, subject_id, "quiz-1", 10, now=T0)
    assert result.attempt.attempt_number == 2

    with pytest.raises(InvalidStateError):
        attempt_service.abandon_attempt(db, subject_id, "quiz-1", 1, now=T0)


def test_begin_quiz_attempt_denied_after_pass(db, subject_id, make_quiz) -> None:
    quiz = make_quiz(max_attempts=3)
    _finish(db, subject_id, quiz, ALL_WRONG)
    _finish(db, subject_id, quiz, ALL_RIGHT)

    with pytest.raises(PolicyViolationError) as exc_info:
        attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=T0)
    assert exc_info.value.reason == "already passed"


def test_completed_attempts_never_exceed_max(db, subject_id, make_quiz) -> None:
    quiz = make_quiz(max_attempts=3)
    for _ in range(3):
        _finish(db, subject_id, quiz, ALL_WRONG)

    with pytest.raises(PolicyViolationError) as exc_info:
        attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=T0)
    assert exc_info.value.reason == "max attempts reached"

    group = subject_service.load_group(db, subject_id, quiz.id)
    assert len(group.completed_attempts) == 3
    assert group.active_attempt is None


def test_denied_start_leaves_no_group(db, subject_id, make_quiz) -> None:
    quiz = make_quiz(status="draft")
    with pytest.raises(PolicyViolationError):
        attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=T0)

    subject = subject_service.load_subject(db, subject_id)
    assert subject_service.find_group(subject, quiz.id) is None


def test_begin_quiz_attempt_resumes_without_policy_check(db, subject_id, make_quiz) -> None:
    quiz = make_quiz()
    first = attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=T0)
    again = attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=T0)
    assert again.is_new_attempt is False
    assert again.attempt.attempt_number == first.attempt.attempt_number


def test_submission_within_grace_window(db, subject_id, make_quiz) -> None:
    quiz = make_quiz(duration=10)
    attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=T0)
    active = attempt_service.resolve_submission_attempt(
        db, subject_id, quiz.id, now=T0 + timedelta(minutes=10, seconds=10)
    )
    assert active.attempt_number == 1


def test_late_submission_times_out(db, subject_id, make_quiz) -> None:
    quiz = make_quiz(duration=10)
    attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=T0)
    with pytest.raises(InvalidStateError):
        attempt_service.resolve_submission_attempt(
            db, subject_id, quiz.id, now=T0 + timedelta(minutes=11)
        )

    group = subject_service.load_group(db, subject_id, quiz.id)
    assert group.get_attempt(1).status == AttemptStatus.TIMEOUT.value


def test_submission_without_active_attempt(db, subject_id) -> None:
    with pytest.raises(InvalidStateError):
        attempt_service.resolve_submission_attempt(db, subject_id, "quiz-1", now=T0)


def test_start_inside_grace_window_resumes(db, subject_id, make_quiz) -> None:
    quiz = make_quiz(duration=10)
    attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=T0)

    inside_grace = T0 + timedelta(minutes=10, seconds=GRACE)
    resumed = attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=inside_grace)
    assert resumed.is_new_attempt is False
    assert resumed.attempt.attempt_number == 1
    assert attempt_service.remaining_seconds(resumed.attempt, inside_grace) == 0


def test_terminal_attempts_reject_completion(db, subject_id, make_quiz) -> None:
    quiz = make_quiz()
    started = attempt_service.begin_quiz_attempt(db, subject_id, quiz, now=T0)
    assert started.attempt.is_terminal is False

    abandoned = attempt_service.abandon_attempt(db, subject_id, quiz.id, 1, now=T0)
    assert abandoned.is_terminal is True
    with pytest.raises(InvalidStateError):
        attempt_service.complete_attempt(db, subject_id, quiz.id, 1, grade_attempt(quiz, ALL_RIGHT))

    for status in AttemptStatus:
        expected = status is not AttemptStatus.IN_PROGRESS
        assert Attempt(attempt_number=1, status=status.value).is_terminal is expected
