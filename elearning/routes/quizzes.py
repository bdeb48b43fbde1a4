"""Quiz-taking endpoints for a subject."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as DbSession

from elearning.database import get_db
from elearning.models import (
    AttemptQuestionsResponse,
    AttemptResultsResponse,
    QuizOverviewResponse,
    StartAttemptResponse,
    SubmissionResponse,
    SubmitAnswersRequest,
)
from elearning.services import quiz_session_service
from elearning.utils import utc_now, validate_id

router = APIRouter(
    prefix="/api/subjects/{subject_id}/quizzes/{quiz_id}", tags=["quizzes"]
)


def _ids(subject_id: str, quiz_id: str) -> tuple[str, str]:
    return validate_id("subjectId", subject_id), validate_id("quizId", quiz_id)


@router.get("", response_model=QuizOverviewResponse)
def get_quiz_overview(
    subject_id: str,
    quiz_id: str,
    db: DbSession = Depends(get_db),
) -> QuizOverviewResponse:
    """Quiz details with attempt eligibility and history."""
    subject_id, quiz_id = _ids(subject_id, quiz_id)
    return quiz_session_service.get_quiz_overview(
        db, subject_id, quiz_id, now=utc_now()
    )


@router.post("/attempts", response_model=StartAttemptResponse)
def start_attempt(
    subject_id: str,
    quiz_id: str,
    db: DbSession = Depends(get_db),
) -> StartAttemptResponse:
    """Start a new attempt or resume the active one."""
    subject_id, quiz_id = _ids(subject_id, quiz_id)
    return quiz_session_service.start_quiz(db, subject_id, quiz_id, now=utc_now())


@router.get("/questions", response_model=AttemptQuestionsResponse)
def get_questions(
    subject_id: str,
    quiz_id: str,
    db: DbSession = Depends(get_db),
) -> AttemptQuestionsResponse:
    """Questions of the active attempt, without answers."""
    subject_id, quiz_id = _ids(subject_id, quiz_id)
    return quiz_session_service.get_attempt_questions(
        db, subject_id, quiz_id, now=utc_now()
    )


@router.post("/submit", response_model=SubmissionResponse)
def submit_answers(
    subject_id: str,
    quiz_id: str,
    payload: SubmitAnswersRequest,
    db: DbSession = Depends(get_db),
) -> SubmissionResponse:
    """Grade the answers and complete the active attempt."""
    subject_id, quiz_id = _ids(subject_id, quiz_id)
    return quiz_session_service.submit_quiz(
        db,
        subject_id,
        quiz_id,
        payload.answers,
        time_spent=payload.time_spent,
        now=utc_now(),
    )


@router.get("/results", response_model=AttemptResultsResponse)
def get_results(
    subject_id: str,
    quiz_id: str,
    attempt: int | None = Query(None, ge=1),
    db: DbSession = Depends(get_db),
) -> AttemptResultsResponse:
    """Results of a completed attempt; the latest one if none is given."""
    subject_id, quiz_id = _ids(subject_id, quiz_id)
    return quiz_session_service.get_attempt_results(
        db, subject_id, quiz_id, attempt_number=attempt
    )
