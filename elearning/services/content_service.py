"""Service layer for quiz content (read models for the attempt engine)."""
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session as DBSession, selectinload

from elearning.config import DEFAULT_MAX_ATTEMPTS, DEFAULT_PASSING_SCORE
from elearning.errors import NotFoundError
from elearning.models.db.quiz import Question, Quiz, QuizQuestion
from elearning.models.quizzes import QuestionModel, QuizDefinition, QuizImport

logger = logging.getLogger(__name__)


def get_quiz_record(db: DBSession, quiz_id: str) -> Quiz | None:
    """Get quiz with selected questions loaded."""
    stmt = (
        select(Quiz)
        .options(
            selectinload(Quiz.selected_questions).selectinload(QuizQuestion.question)
        )
        .where(Quiz.id == quiz_id)
    )
    return db.execute(stmt).scalar_one_or_none()


def load_quiz(db: DBSession, quiz_id: str) -> QuizDefinition:
    """Load quiz definition, selected questions sorted by order."""
    quiz = get_quiz_record(db, quiz_id)
    if quiz is None:
        raise NotFoundError(f"Quiz {quiz_id} not found")

    definition = QuizDefinition.model_validate(quiz)
    definition.selected_questions.sort(key=lambda sq: sq.order)
    return definition


def load_question(db: DBSession, question_id: str) -> QuestionModel:
    """Load a single question."""
    question = db.get(Question, question_id)
    if question is None:
        raise NotFoundError(f"Question {question_id} not found")
    return QuestionModel.model_validate(question)


def import_quiz(db: DBSession, payload: QuizImport) -> QuizDefinition:
    """
    Create or replace a quiz and upsert its questions.

    Question order follows the order of ``payload.questions``.
    """
    quiz = get_quiz_record(db, payload.id)
    if quiz is None:
        quiz = Quiz(id=payload.id)
        db.add(quiz)

    quiz.title = payload.title
    quiz.description = payload.description
    quiz.status = payload.status.value
    quiz.duration = payload.duration
    quiz.passing_score = (
        payload.passing_score
        if payload.passing_score is not None
        else DEFAULT_PASSING_SCORE
    )
    quiz.max_attempts = (
        payload.max_attempts
        if payload.max_attempts is not None
        else DEFAULT_MAX_ATTEMPTS
    )
    quiz.shuffle_questions = payload.shuffle_questions
    quiz.shuffle_options = payload.shuffle_options
    quiz.show_correct_answers = payload.show_correct_answers
    quiz.show_results = payload.show_results

    quiz.selected_questions.clear()
    db.flush()

    for index, item in enumerate(payload.questions):
        question = db.get(Question, item.id)
        if question is None:
            question = Question(id=item.id)
            db.add(question)
        question.question_text = item.question_text
        question.question_type = item.question_type.value
        question.options = [option.model_dump() for option in item.options]
        question.correct_answers = [
            answer.model_dump() for answer in item.correct_answers
        ]
        question.explanation = item.explanation
        question.question_image = item.question_image

        quiz.selected_questions.append(
            QuizQuestion(question=question, points=item.points, order=index + 1)
        )

    db.commit()
    logger.info(f"Imported quiz {payload.id} with {len(payload.questions)} questions")
    return load_quiz(db, payload.id)
