"""Quiz-taking flows shared by guest and student endpoints.

Each flow takes an explicit ``subject_id``; nothing here reads request or
session state.
"""
from datetime import datetime
from typing import Mapping

from sqlalchemy.orm import Session as DBSession

from elearning.errors import InvalidStateError, NotFoundError
from elearning.models.attempts import (
    AttemptDecisionResponse,
    AttemptQuestionsResponse,
    AttemptResultsResponse,
    AttemptSummary,
    AttemptTiming,
    PresentedOption,
    PresentedQuestion,
    QuizOverviewResponse,
    ReviewedQuestion,
    StartAttemptResponse,
    SubmissionResponse,
)
from elearning.models.db.attempt import Attempt
from elearning.services import access_service
from elearning.services.attempt_service import (
    begin_quiz_attempt,
    complete_attempt,
    get_active_attempt,
    get_attempt_history,
    is_expired,
    reconcile_expiry,
    remaining_seconds,
    resolve_submission_attempt,
)
from elearning.services.content_service import load_quiz
from elearning.services.scoring_service import correct_answer_text, grade_attempt
from elearning.services.shuffle_service import (
    apply_order,
    materialize_option_orders,
    materialize_question_order,
)
from elearning.services.subject_service import find_group, load_group, load_subject
from elearning.utils.time_utils import utc_now


def attempt_summary(attempt: Attempt) -> AttemptSummary:
    return AttemptSummary.model_validate(attempt)


def get_quiz_overview(
    db: DBSession,
    subject_id: str,
    quiz_id: str,
    now: datetime | None = None,
) -> QuizOverviewResponse:
    """Quiz details for a subject: start decision, history, active timing."""
    now = now or utc_now()
    quiz = load_quiz(db, quiz_id)
    subject = load_subject(db, subject_id)
    group = find_group(subject, quiz_id)

    decision = access_service.can_start_attempt(group, quiz)
    active = group.active_attempt if group else None

    timing = None
    if active is not None:
        timing = AttemptTiming(
            duration_minutes=quiz.duration,
            remaining_seconds=remaining_seconds(active, now),
            is_expired=is_expired(active, now),
            started_at=active.started_at,
            expected_end=active.expected_end,
        )

    return QuizOverviewResponse(
        quiz_id=quiz.id,
        title=quiz.title,
        can_attempt=AttemptDecisionResponse(
            allowed=decision.allowed,
            reason=decision.reason,
            attempts_left=decision.attempts_left,
            has_passed=decision.has_passed,
        ),
        best_score=group.best_score if group else None,
        attempt_history=[attempt_summary(a) for a in get_attempt_history(group)],
        active_attempt=attempt_summary(active) if active else None,
        timing=timing,
        can_view_detailed_results=access_service.can_view_detailed_results(group, quiz),
        has_passed=access_service.has_passed(group),
        attempts_exhausted=access_service.attempts_exhausted(group, quiz),
        remaining_attempts=access_service.remaining_attempts(group, quiz),
        max_attempts=quiz.max_attempts,
        show_results=quiz.show_results,
    )


def start_quiz(
    db: DBSession,
    subject_id: str,
    quiz_id: str,
    now: datetime | None = None,
) -> StartAttemptResponse:
    """Start or resume an attempt if the access policy allows it."""
    now = now or utc_now()
    quiz = load_quiz(db, quiz_id)
    result = begin_quiz_attempt(db, subject_id, quiz, now=now)
    return StartAttemptResponse(
        is_new_attempt=result.is_new_attempt,
        attempt=attempt_summary(result.attempt),
        remaining_seconds=remaining_seconds(result.attempt, now),
    )


def get_attempt_questions(
    db: DBSession,
    subject_id: str,
    quiz_id: str,
    now: datetime | None = None,
) -> AttemptQuestionsResponse:
    """
    Questions of the active attempt without answers, in presentation order.

    Shuffled orders are materialized on first render and reused afterwards.
    Option orders are keyed by the question's index in quiz order.
    """
    now = now or utc_now()
    quiz = load_quiz(db, quiz_id)
    reconcile_expiry(db, subject_id, quiz_id, now=now)
    attempt = get_active_attempt(db, subject_id, quiz_id)
    if attempt is None:
        raise InvalidStateError("No active attempt found")

    selected = quiz.selected_questions
    indices = list(range(len(selected)))

    if quiz.shuffle_questions:
        order = materialize_question_order(db, attempt, len(selected))
        indices = apply_order(indices, order)

    option_orders: dict[int, list[int]] = {}
    if quiz.shuffle_options:
        option_counts = {
            index: len(sq.question.options)
            for index, sq in enumerate(selected)
            if sq.question.options
        }
        if option_counts:
            option_orders = materialize_option_orders(db, attempt, option_counts)

    questions = []
    for index in indices:
        sq = selected[index]
        question = sq.question
        options = question.options
        if index in option_orders:
            options = apply_order(options, option_orders[index])

        questions.append(
            PresentedQuestion(
                id=question.id,
                question_text=question.question_text,
                question_type=question.question_type,
                options=[
                    PresentedOption(text=option.text, image=option.image)
                    for option in options
                ],
                points=sq.points,
                order=sq.order or index + 1,
                question_image=question.question_image,
            )
        )

    return AttemptQuestionsResponse(
        attempt_number=attempt.attempt_number,
        questions=questions,
        total_questions=len(questions),
        remaining_seconds=remaining_seconds(attempt, now),
    )


def submit_quiz(
    db: DBSession,
    subject_id: str,
    quiz_id: str,
    answers: Mapping[str, object],
    time_spent: int = 0,
    now: datetime | None = None,
) -> SubmissionResponse:
    """Grade the submitted answers and complete the active attempt."""
    now = now or utc_now()
    quiz = load_quiz(db, quiz_id)
    active = resolve_submission_attempt(db, subject_id, quiz_id, now=now)
    attempt_number = active.attempt_number

    grade = grade_attempt(quiz, answers)
    complete_attempt(
        db,
        subject_id,
        quiz_id,
        attempt_number,
        grade,
        time_spent=time_spent,
        now=now,
    )

    return SubmissionResponse(
        attempt_number=attempt_number,
        score=grade.score,
        correct_answers=grade.correct_count,
        wrong_answers=grade.wrong_count,
        skipped_answers=grade.skipped_count,
        total_questions=grade.total_questions,
        total_points=grade.total_points,
        max_points=grade.max_points,
        passed=grade.passed,
        passing_score=quiz.passing_score,
        time_spent=max(0, int(time_spent or 0)),
        show_results=quiz.show_results,
    )


def get_attempt_results(
    db: DBSession,
    subject_id: str,
    quiz_id: str,
    attempt_number: int | None = None,
) -> AttemptResultsResponse:
    """
    Results of a completed attempt (the latest one by default).

    Correct answers, explanations and option correctness are only included
    once the subject has passed or used up all attempts, and only if the
    quiz shows correct answers at all.
    """
    quiz = load_quiz(db, quiz_id)
    group = load_group(db, subject_id, quiz_id)

    if attempt_number is not None:
        target = group.get_attempt(attempt_number)
        if target is None:
            raise NotFoundError(f"Attempt {attempt_number} not found")
        if not target.is_completed:
            raise InvalidStateError(f"Attempt {attempt_number} is {target.status}")
    else:
        history = get_attempt_history(group)
        if not history:
            raise NotFoundError("No completed attempts")
        target = history[0]

    can_view = access_service.can_view_detailed_results(group, quiz)
    show_correct = quiz.show_correct_answers and can_view

    questions: list[ReviewedQuestion] = []
    if quiz.show_results:
        answers_by_question = {answer.question_id: answer for answer in target.answers}
        for sq in quiz.selected_questions:
            question = sq.question
            user_answer = answers_by_question.get(question.id)
            is_correct = earned_points = None
            if access_service.reveals_own_correctness(question, can_view):
                is_correct = bool(user_answer and user_answer.is_correct)
                earned_points = user_answer.points if user_answer else 0
            questions.append(
                ReviewedQuestion(
                    id=question.id,
                    question_text=question.question_text,
                    question_type=question.question_type,
                    options=access_service.sanitize_options(question, show_correct),
                    correct_answer=correct_answer_text(question) if show_correct else None,
                    explanation=question.explanation if show_correct else None,
                    question_image=question.question_image,
                    user_answer=user_answer.selected_answer if user_answer else None,
                    is_correct=is_correct,
                    points=sq.points,
                    earned_points=earned_points,
                )
            )

    return AttemptResultsResponse(
        quiz_id=quiz.id,
        attempt=attempt_summary(target),
        questions=questions,
        all_attempts=[attempt_summary(a) for a in get_attempt_history(group)],
        best_score=group.best_score,
        show_results=quiz.show_results,
        show_correct_answers=show_correct,
        can_view_detailed_results=can_view,
        has_passed=access_service.has_passed(group),
        attempts_exhausted=access_service.attempts_exhausted(group, quiz),
        remaining_attempts=access_service.remaining_attempts(group, quiz),
        max_attempts=quiz.max_attempts,
    )
