import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from elearning.config import LOG_LEVEL
from elearning.database import SessionLocal, init_db
from elearning.errors import QuizEngineError
from elearning.logging_setup import setup_console_logging
from elearning.models import AttemptSummary, QuizImport
from elearning.models.db.subject import SubjectKind
from elearning.services import content_service, subject_service
from elearning.services.attempt_service import get_attempt_history
from elearning.utils import json_dump, read_json_file

setup_console_logging(LOG_LEVEL)

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Quiz attempt engine maintenance")
    commands = parser.add_subparsers(dest="command", required=True)

    import_cmd = commands.add_parser("import-quiz", help="Import a quiz from JSON")
    import_cmd.add_argument("file", type=Path, help="Path to quiz .json file")

    subject_cmd = commands.add_parser("create-subject", help="Register a subject")
    subject_cmd.add_argument("id", type=str, help="Subject id")
    subject_cmd.add_argument(
        "--kind",
        choices=[kind.value for kind in SubjectKind],
        default=SubjectKind.GUEST.value,
        help="Student or guest",
    )
    subject_cmd.add_argument("--name", type=str, default=None, help="Display name")

    history_cmd = commands.add_parser(
        "history", help="Print completed attempts of a subject on a quiz"
    )
    history_cmd.add_argument("subject", type=str, help="Subject id")
    history_cmd.add_argument("quiz", type=str, help="Quiz id")

    return parser.parse_args(argv)


def import_quiz_file(db, path: Path) -> None:
    payload = QuizImport.model_validate(read_json_file(path, None))
    quiz = content_service.import_quiz(db, payload)
    print(f"Imported quiz {quiz.id} ({len(quiz.selected_questions)} questions)")


def create_subject(db, subject_id: str, kind: str, name: str | None) -> None:
    subject = subject_service.get_or_create_subject(
        db, subject_id, kind=SubjectKind(kind), display_name=name
    )
    print(f"Subject {subject.id} ({subject.kind})")


def print_history(db, subject_id: str, quiz_id: str) -> None:
    subject = subject_service.load_subject(db, subject_id)
    group = subject_service.find_group(subject, quiz_id)
    attempts = [
        AttemptSummary.model_validate(attempt).model_dump(mode="json")
        for attempt in get_attempt_history(group)
    ]
    print(json_dump(attempts))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    init_db()
    db = SessionLocal()
    try:
        if args.command == "import-quiz":
            if not args.file.exists():
                logger.error(f"File not found: {args.file}")
                return 1
            import_quiz_file(db, args.file)
        elif args.command == "create-subject":
            create_subject(db, args.id, args.kind, args.name)
        elif args.command == "history":
            print_history(db, args.subject, args.quiz)
    except QuizEngineError as e:
        logger.error(e.message)
        return 1
    except ValidationError as e:
        logger.error(f"Invalid quiz file {args.file}: {e}")
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
