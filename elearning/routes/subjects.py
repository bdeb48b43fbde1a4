"""Subject (student or guest) endpoints."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session as DbSession

from elearning.database import get_db
from elearning.models import SubjectCreate, SubjectResponse
from elearning.models.db.subject import SubjectKind
from elearning.services import subject_service
from elearning.utils import validate_id

router = APIRouter(prefix="/api/subjects", tags=["subjects"])


@router.post("", response_model=SubjectResponse)
def create_subject(
    payload: SubjectCreate,
    db: DbSession = Depends(get_db),
) -> SubjectResponse:
    """Register a subject, or return the existing one with this id."""
    subject_id = validate_id("subjectId", payload.id)
    subject = subject_service.get_or_create_subject(
        db,
        subject_id,
        kind=SubjectKind(payload.kind),
        display_name=payload.display_name,
    )
    return SubjectResponse.model_validate(subject)


@router.get("/{subject_id}", response_model=SubjectResponse)
def get_subject(
    subject_id: str,
    db: DbSession = Depends(get_db),
) -> SubjectResponse:
    """Get a subject with aggregate attempt counters."""
    subject_id = validate_id("subjectId", subject_id)
    subject = subject_service.load_subject(db, subject_id)
    return SubjectResponse.model_validate(subject)


@router.delete("/{subject_id}")
def delete_subject(
    subject_id: str,
    db: DbSession = Depends(get_db),
) -> dict[str, object]:
    """Delete a subject and its whole attempt history."""
    subject_id = validate_id("subjectId", subject_id)
    if not subject_service.delete_subject(db, subject_id):
        raise HTTPException(status_code=404, detail="Subject not found")
    return {"status": "deleted", "subjectId": subject_id}
