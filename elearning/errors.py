"""Errors raised by the quiz attempt engine.

All of them propagate to the caller; only ``ConcurrentModificationError`` is
retried inside the engine (see ``subject_service.run_with_retry``).
"""


class QuizEngineError(Exception):
    """Base class for quiz engine errors."""

    status_code = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(QuizEngineError):
    """Subject, quiz, question or attempt does not exist."""

    status_code = 404


class InvalidStateError(QuizEngineError):
    """Operation attempted against an attempt in the wrong status."""

    status_code = 409


class PolicyViolationError(QuizEngineError):
    """Attempt start denied by the access policy."""

    status_code = 403

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConcurrentModificationError(QuizEngineError):
    """Subject document changed between read and write."""

    status_code = 409
