"""Validation of identifiers taken from request paths and payloads."""
import re

from fastapi import HTTPException

MAX_ID_LENGTH = 64

# Letters, digits and the separators found in guest tokens and emails
_ID_PATTERN = re.compile(r"^[\w.@:-]+$")


def validate_id(name: str, value: object, max_length: int = MAX_ID_LENGTH) -> str:
    """Validate a subject, quiz or question id and return it stripped."""
    if not isinstance(value, str) or not value.strip():
        raise HTTPException(status_code=400, detail=f"{name} is required")
    cleaned = value.strip()
    if len(cleaned) > max_length:
        raise HTTPException(status_code=400, detail=f"{name} is too long")
    if cleaned in {".", ".."} or not _ID_PATTERN.match(cleaned):
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
    return cleaned
