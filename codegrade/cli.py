"""CLI interface for codegrade."""

from __future__ import annotations

import argparse
import json
import sys

from codegrade.config import Config
from codegrade.errors import AllProvidersExhausted
from codegrade.languages import resolve_language
from codegrade.models import CodingTest, SubmissionStatus
from codegrade.orchestrator import Orchestrator
from codegrade.store import Store, connect, init_schema


def load_test(path: str) -> tuple[dict, CodingTest]:
    """Load a coding test document from a JSON file."""
    with open(path) as f:
        document = json.load(f)
    return document, CodingTest.from_dict(document)


def _grade(args, config: Config) -> int:
    _, test = load_test(args.test)
    with open(args.source) as f:
        source_code = f.read()

    orchestrator = Orchestrator(config)
    if not test.is_multi_question:
        submission = orchestrator.grader.grade_single(test, source_code, "cli", language=args.language)
        print(json.dumps(submission.to_dict(reveal_hidden=True), indent=2))
        return 0 if submission.status is SubmissionStatus.ACCEPTED else 2

    question_id = args.question or test.questions[0].id
    question = test.find_question(question_id)
    if question is None:
        print(f"Error: question {question_id!r} not found in {test.id}", file=sys.stderr)
        return 1
    language = resolve_language(args.language or test.language or "python")
    result = orchestrator.grader.grade_question(question, source_code, language)
    print(json.dumps(result.to_dict(reveal_hidden=True), indent=2))
    return 0 if result.verdict.all_passed else 2


def _import_test(args, config: Config) -> int:
    document, test = load_test(args.test)
    conn = connect(config.db_path)
    try:
        init_schema(conn)
        Store(conn).save_test(document)
    finally:
        conn.close()
    print(f"Imported test {test.id} ({test.title}) into {config.db_path}", file=sys.stderr)
    return 0


def _status(args, config: Config) -> int:
    orchestrator = Orchestrator(config)
    try:
        about = orchestrator.dispatcher.about()
    except AllProvidersExhausted as e:
        print(f"All providers unavailable: {e.last_error}", file=sys.stderr)
        return 1
    print(json.dumps(about, indent=2))
    return 0


def _serve(args, config: Config) -> int:
    from codegrade.web.app import create_app

    create_app(config).run(host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="codegrade",
        description="codegrade: coding test execution and grading",
    )
    parser.add_argument("--db", type=str, default=None, help="SQLite database path")
    parser.add_argument("--log-level", type=str, default=None)
    subparsers = parser.add_subparsers(dest="command")

    grade_parser = subparsers.add_parser("grade", help="Grade a source file against a test")
    grade_parser.add_argument("test", help="Path to test JSON file")
    grade_parser.add_argument("source", help="Path to the source file")
    grade_parser.add_argument("--question", type=str, default=None, help="Question id (multi-question tests)")
    grade_parser.add_argument("--language", type=str, default=None, help="Language name or Judge0 id")

    import_parser = subparsers.add_parser("import-test", help="Store a test document")
    import_parser.add_argument("test", help="Path to test JSON file")

    subparsers.add_parser("status", help="Check the execution providers")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", type=str, default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=5000)

    args = parser.parse_args(argv)

    handlers = {"grade": _grade, "import-test": _import_test, "status": _status, "serve": _serve}
    if args.command not in handlers:
        parser.print_help()
        sys.exit(1)

    overrides = {}
    if args.db is not None:
        overrides["db_path"] = args.db
    if args.log_level is not None:
        overrides["log_level"] = args.log_level

    try:
        config = Config.from_env(**overrides)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    config.configure_logging()
    try:
        code = handlers[args.command](args, config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)
