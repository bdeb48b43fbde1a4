"""Scoring engine shared by guest and student submissions."""
from dataclasses import dataclass, field
from typing import Mapping

from elearning.config import NO_ANSWER_TEXT
from elearning.models.quizzes import QuestionModel, QuestionType, QuizDefinition


@dataclass
class AnswerGrade:
    is_correct: bool
    points: int


@dataclass
class QuestionResult:
    question_id: str
    question_type: QuestionType
    selected_answer: str
    correct_answer: str
    is_correct: bool
    is_skipped: bool
    points: int


@dataclass
class AttemptGrade:
    score: int
    passed: bool
    total_questions: int
    correct_count: int
    wrong_count: int
    skipped_count: int
    total_points: int
    max_points: int
    answers: list[QuestionResult] = field(default_factory=list)


def _normalize(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def is_unanswered(value: object) -> bool:
    """Missing, None and blank answers all count as skipped."""
    return value is None or not str(value).strip()


def _accepted_alternatives(accepted_text: str) -> list[str]:
    """Split one accepted answer into normalized comma-separated alternatives."""
    normalized = _normalize(accepted_text)
    if "," in normalized:
        candidates = [_normalize(part) for part in normalized.split(",")]
    else:
        candidates = [normalized]
    # An empty alternative would be contained in every submission
    return [candidate for candidate in candidates if candidate]


def match_written_answer(question: QuestionModel, submitted: object) -> bool:
    """
    Lenient written-answer matching.

    A submission matches an alternative if it equals it or contains it as a
    substring, after trimming and lowercasing both sides. First match wins.
    """
    answer = _normalize(submitted)
    if not answer:
        return False

    for accepted in question.correct_answers:
        for alternative in _accepted_alternatives(accepted.text):
            if answer == alternative or alternative in answer:
                return True
    return False


def match_choice_answer(question: QuestionModel, submitted: object) -> bool:
    """Match the submitted option text against the question's options."""
    if not question.options or is_unanswered(submitted):
        return False

    user_text = str(submitted).strip()
    selected = next(
        (
            option
            for option in question.options
            if option.text and option.text.strip() == user_text
        ),
        None,
    )
    return bool(selected and selected.is_correct)


def grade_answer(
    question: QuestionModel, submitted_answer: object, points: int = 1
) -> AnswerGrade:
    """Grade one answer. Correct answers earn the question's points."""
    if question.question_type == QuestionType.WRITTEN:
        is_correct = match_written_answer(question, submitted_answer)
    else:
        is_correct = match_choice_answer(question, submitted_answer)

    return AnswerGrade(is_correct=is_correct, points=points if is_correct else 0)


def correct_answer_text(question: QuestionModel) -> str:
    """Display copy of the correct answer."""
    if question.question_type == QuestionType.WRITTEN:
        return ", ".join(answer.text for answer in question.correct_answers)

    correct_option = next(
        (option for option in question.options if option.is_correct), None
    )
    return correct_option.text if correct_option else ""


def percent_score(correct_count: int, total_questions: int) -> int:
    """Percentage of correct answers rounded half-up; 0 for an empty quiz."""
    if total_questions <= 0:
        return 0
    return (correct_count * 200 + total_questions) // (2 * total_questions)


def grade_attempt(
    quiz: QuizDefinition, answer_map: Mapping[str, object]
) -> AttemptGrade:
    """
    Grade an answer set against every selected question, in quiz order.

    ``answer_map`` maps question id to the submitted option text or written
    answer. Unanswered questions are incorrect and counted as skipped.
    """
    results: list[QuestionResult] = []
    correct_count = 0
    wrong_count = 0
    skipped_count = 0
    total_points = 0
    max_points = 0

    for selected in quiz.selected_questions:
        question = selected.question
        submitted = answer_map.get(question.id)
        max_points += selected.points

        if is_unanswered(submitted):
            skipped_count += 1
            grade = AnswerGrade(is_correct=False, points=0)
            display = (
                NO_ANSWER_TEXT
                if question.question_type == QuestionType.WRITTEN
                else ""
            )
        else:
            grade = grade_answer(question, submitted, selected.points)
            display = str(submitted)
            if grade.is_correct:
                correct_count += 1
            else:
                wrong_count += 1

        total_points += grade.points
        results.append(
            QuestionResult(
                question_id=question.id,
                question_type=question.question_type,
                selected_answer=display,
                correct_answer=correct_answer_text(question),
                is_correct=grade.is_correct,
                is_skipped=is_unanswered(submitted),
                points=grade.points,
            )
        )

    total_questions = len(quiz.selected_questions)
    score = percent_score(correct_count, total_questions)

    return AttemptGrade(
        score=score,
        passed=score >= quiz.passing_score,
        total_questions=total_questions,
        correct_count=correct_count,
        wrong_count=wrong_count,
        skipped_count=skipped_count,
        total_points=total_points,
        max_points=max_points,
        answers=results,
    )
