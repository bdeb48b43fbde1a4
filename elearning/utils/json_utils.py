"""JSON helpers for quiz import files and JSON-in-text columns."""
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def json_dump(payload: object) -> str:
    """Serialize object to pretty JSON string."""
    return json.dumps(payload, ensure_ascii=False, indent=2, default=str)


def compact_json_dump(payload: object) -> str:
    """Serialize object to compact JSON string (for DB columns)."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def json_load(data: str) -> object:
    """Deserialize JSON string to object."""
    return json.loads(data)


def load_json_list(raw: str | None) -> list[Any]:
    """Decode a JSON list column. Empty or unreadable values read as ``[]``."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning(f"Unreadable JSON column value: {raw[:80]!r}")
        return []
    return value if isinstance(value, list) else []


def dump_json_list(value: list[Any] | None) -> str | None:
    """Encode a list for a JSON column; empty lists are stored as NULL."""
    return compact_json_dump(value) if value else None


def read_json_file(path: Path, default: object) -> object:
    """Read and parse JSON file, return default if not exists."""
    if not path.exists():
        return default
    return json_load(path.read_text(encoding="utf-8"))
