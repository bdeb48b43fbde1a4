from __future__ import annotations
import logging

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

# Chatty library loggers kept at WARNING unless the app runs at DEBUG
_LIBRARY_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "httpx")


def resolve_level(level: int | str) -> int:
    """Turn ``"info"``/``"DEBUG"``/``20`` into a logging level, INFO if unknown."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_console_logging(level: int | str = logging.INFO) -> None:
    """
    Call once at app or CLI start. Re-invocation only adjusts levels.
    """
    level = resolve_level(level)
    root = logging.getLogger()
    root.setLevel(level)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    if any(getattr(h, "_quiz_engine_console", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    handler._quiz_engine_console = True
    root.addHandler(handler)
