"""Main FastAPI application with modularized routes."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from elearning.config import LOG_LEVEL
from elearning.database import init_db
from elearning.errors import QuizEngineError
from elearning.logging_setup import setup_console_logging
from elearning.routes import quizzes, subjects

setup_console_logging(LOG_LEVEL)

logger = logging.getLogger(__name__)

app = FastAPI(title="Quiz Attempt Engine API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Initialize database on startup."""
    init_db()


@app.exception_handler(QuizEngineError)
async def quiz_engine_error_handler(
    request: Request, exc: QuizEngineError
) -> JSONResponse:
    """Map engine errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(
            f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}"
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Include routers
app.include_router(subjects.router)
app.include_router(quizzes.router)
