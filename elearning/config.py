"""Application configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'elearning.db'}"
)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Optimistic concurrency: how many times a whole read-modify-write is retried
MAX_WRITE_RETRIES = max(1, _parse_int_env("MAX_WRITE_RETRIES", 3))

# Late submissions past expected_end are accepted within this window
SUBMISSION_GRACE_SECONDS = max(0, _parse_int_env("SUBMISSION_GRACE_SECONDS", 30))

# Defaults for imported quizzes that omit these fields
DEFAULT_PASSING_SCORE = _parse_int_env("DEFAULT_PASSING_SCORE", 60)
DEFAULT_MAX_ATTEMPTS = _parse_int_env("DEFAULT_MAX_ATTEMPTS", 3)

# Display value stored for unanswered written questions
NO_ANSWER_TEXT = "No answer provided"
