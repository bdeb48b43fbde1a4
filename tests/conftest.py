from datetime import datetime, timezone
from pathlib import Path

import pytest

from elearning.database import build_engine, build_session_factory, init_db
from elearning.models import QuizDefinition, QuizImport
from elearning.models.db.subject import SubjectKind
from elearning.services import content_service, subject_service

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def engine(tmp_path: Path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def subject_id(db) -> str:
    subject_service.get_or_create_subject(db, "guest-1", kind=SubjectKind.GUEST)
    return "guest-1"


def mcq(question_id: str, correct: str, wrong: str, points: int = 1) -> dict[str, object]:
    return {
        "id": question_id,
        "question_text": f"Question {question_id}",
        "question_type": "MCQ",
        "options": [
            {"text": correct, "is_correct": True},
            {"text": wrong, "is_correct": False},
        ],
        "explanation": f"Because {correct}",
        "points": points,
    }


def written(question_id: str, accepted: str, points: int = 1) -> dict[str, object]:
    return {
        "id": question_id,
        "question_text": f"Solve {question_id}",
        "question_type": "Written",
        "correct_answers": [{"text": accepted}],
        "points": points,
    }


def quiz_payload(quiz_id: str = "quiz-1", questions=None, **settings) -> QuizImport:
    data = {
        "id": quiz_id,
        "title": f"Quiz {quiz_id}",
        "passing_score": 50,
        "max_attempts": 3,
        "questions": questions
        if questions is not None
        else [mcq("q1", "4", "5"), mcq("q2", "Paris", "Rome")],
    }
    data.update(settings)
    return QuizImport.model_validate(data)


@pytest.fixture()
def make_quiz(db):
    def factory(quiz_id: str = "quiz-1", questions=None, **settings) -> QuizDefinition:
        return content_service.import_quiz(
            db, quiz_payload(quiz_id, questions, **settings)
        )

    return factory
