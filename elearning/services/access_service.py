"""Access policy for quiz attempts and result visibility.

Result details (correct options, explanations) stay hidden until the subject
has either passed the quiz or used up every allowed attempt.
"""
from dataclasses import dataclass

from elearning.models.db.subject import QuizAttemptGroup
from elearning.models.attempts import ReviewedOption
from elearning.models.quizzes import QuestionModel, QuestionType, QuizDefinition

REASON_ALREADY_PASSED = "already passed"
REASON_MAX_ATTEMPTS = "max attempts reached"
REASON_NOT_AVAILABLE = "quiz not available"
REASON_CAN_ATTEMPT = "can attempt"


@dataclass
class AttemptDecision:
    allowed: bool
    reason: str
    attempts_left: int | None = None
    has_passed: bool = False


def completed_count(group: QuizAttemptGroup | None) -> int:
    """Number of completed attempts in a group."""
    if group is None:
        return 0
    return len(group.completed_attempts)


def has_passed(group: QuizAttemptGroup | None) -> bool:
    """Check if any completed attempt passed."""
    if group is None:
        return False
    return any(attempt.passed for attempt in group.completed_attempts)


def attempts_exhausted(group: QuizAttemptGroup | None, quiz: QuizDefinition) -> bool:
    """Check if the quiz's attempt limit is used up (never for unlimited)."""
    if quiz.max_attempts <= 0:
        return False
    return completed_count(group) >= quiz.max_attempts


def remaining_attempts(group: QuizAttemptGroup | None, quiz: QuizDefinition) -> int | None:
    """Attempts left, or None when unlimited."""
    if quiz.max_attempts <= 0:
        return None
    return max(0, quiz.max_attempts - completed_count(group))


def can_start_attempt(
    group: QuizAttemptGroup | None, quiz: QuizDefinition
) -> AttemptDecision:
    """Check if the subject may start a new attempt."""
    if has_passed(group):
        return AttemptDecision(
            allowed=False,
            reason=REASON_ALREADY_PASSED,
            attempts_left=0,
            has_passed=True,
        )

    if attempts_exhausted(group, quiz):
        return AttemptDecision(
            allowed=False,
            reason=REASON_MAX_ATTEMPTS,
            attempts_left=0,
        )

    # Ledger checks take precedence over quiz status
    if not quiz.is_active:
        return AttemptDecision(
            allowed=False,
            reason=REASON_NOT_AVAILABLE,
            attempts_left=remaining_attempts(group, quiz),
        )

    return AttemptDecision(
        allowed=True,
        reason=REASON_CAN_ATTEMPT,
        attempts_left=remaining_attempts(group, quiz),
    )


def can_view_detailed_results(
    group: QuizAttemptGroup | None, quiz: QuizDefinition
) -> bool:
    """Check if correct answers may be revealed to the subject."""
    return has_passed(group) or attempts_exhausted(group, quiz)


def sanitize_options(question: QuestionModel, reveal: bool) -> list[ReviewedOption]:
    """Options for a review screen; correctness flags only when revealed."""
    return [
        ReviewedOption(
            text=option.text,
            image=option.image,
            is_correct=option.is_correct if reveal else None,
        )
        for option in question.options
    ]


def reveals_own_correctness(question: QuestionModel, gate_open: bool) -> bool:
    """
    Check if the review may say whether the subject's own answer was right.

    With two options or fewer a wrong verdict names the correct option. Such
    verdicts stay hidden until the gate opens.
    """
    if gate_open or question.question_type == QuestionType.WRITTEN:
        return True
    if question.question_type == QuestionType.TRUE_FALSE:
        return False
    return len(question.options) > 2
