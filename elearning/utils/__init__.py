"""Utility modules."""
from elearning.utils.json_utils import (
    compact_json_dump,
    dump_json_list,
    json_dump,
    json_load,
    load_json_list,
    read_json_file,
)
from elearning.utils.time_utils import ensure_utc, isoformat, utc_now
from elearning.utils.validation import validate_id

__all__ = [
    "compact_json_dump",
    "dump_json_list",
    "json_dump",
    "json_load",
    "load_json_list",
    "read_json_file",
    "ensure_utc",
    "isoformat",
    "utc_now",
    "validate_id",
]
