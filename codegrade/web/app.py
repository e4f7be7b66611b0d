"""Flask web application exposing the coding-test grading endpoints."""

from __future__ import annotations

from flask import Blueprint, Flask, current_app, jsonify, request

from codegrade.config import Config
from codegrade.errors import QuestionNotFoundError
from codegrade.grader import QuestionAnswer
from codegrade.languages import language_for_test
from codegrade.models import CaseSetVerdict, CodingQuestion, CodingTest, TestCase
from codegrade.orchestrator import Orchestrator
from codegrade.web.auth import get_current_student_id, student_required
from codegrade.web.db import close_db, get_db, get_store, init_db
from codegrade.web.errors import register_error_handlers

# Number of hidden cases a practice run may borrow when a question has no visible ones.
PRACTICE_HIDDEN_LIMIT = 3

MONITORING_FIELDS = ("violations", "totalViolations", "monitoringImages", "cameraMonitoring", "proctoringSettings")

bp = Blueprint("coding_test", __name__, url_prefix="/coding-test")


def create_app(config: Config | None = None, orchestrator: Orchestrator | None = None) -> Flask:
    config = config or Config.from_env()
    config.configure_logging()
    app = Flask(__name__)
    app.config["DATABASE"] = config.db_path
    app.extensions["codegrade"] = orchestrator or Orchestrator(config)
    app.teardown_appcontext(close_db)
    register_error_handlers(app)
    app.register_blueprint(bp)

    with app.app_context():
        init_db()
    return app


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _orchestrator() -> Orchestrator:
    return current_app.extensions["codegrade"]


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _visible_cases(cases: list[TestCase]) -> list[dict]:
    return [
        {"input": tc.input, "expectedOutput": tc.expected_output, "explanation": tc.explanation, "points": tc.points}
        for tc in cases
        if not tc.hidden
    ]


def _question_payload(question: CodingQuestion) -> dict:
    return {
        "id": question.id,
        "title": question.title,
        "description": question.description,
        "marks": question.marks,
        "testCases": _visible_cases(question.test_cases),
        "totalTestCases": len(question.test_cases),
    }


def _test_payload(test: CodingTest) -> dict:
    payload = {
        "_id": test.id,
        "title": test.title,
        "description": test.description,
        "duration": test.duration_minutes,
        "totalMarks": test.total_marks,
        "type": "coding",
        "language": language_for_test(None, test.language, test.board).value,
    }
    if test.is_multi_question:
        payload["coding"] = {"enabled": True, "questions": [_question_payload(q) for q in test.questions]}
    else:
        payload["problem"] = _question_payload(test.problem)
    return payload


def _summary(verdict: CaseSetVerdict) -> dict:
    return {
        "passedTests": verdict.passed_cases,
        "totalTests": verdict.total_cases,
        "totalScore": verdict.total_score,
        "maxScore": verdict.max_score,
        "percentage": verdict.percentage,
    }


def _require_question(test: CodingTest, question_id) -> CodingQuestion:
    if not test.is_multi_question and not question_id:
        return test.problem
    question = test.find_question(str(question_id or ""))
    if question is None:
        raise QuestionNotFoundError("Question not found")
    return question


# ---------------------------------------------------------------------------
# Provider metadata
# ---------------------------------------------------------------------------

@bp.route("/languages")
def languages():
    return jsonify({"success": True, "languages": _orchestrator().dispatcher.languages()})


@bp.route("/service-status")
def service_status():
    dispatcher = _orchestrator().dispatcher
    about = dispatcher.about()
    return jsonify({"success": True, "service": about, "fallback": dispatcher.fallback_health()})


# ---------------------------------------------------------------------------
# Test lifecycle
# ---------------------------------------------------------------------------

@bp.route("/<test_id>")
@student_required
def get_coding_test(test_id: str):
    test = get_store().get_test(test_id)
    check = _orchestrator().sessions(get_db()).check_resume(get_current_student_id(), test)
    if check.reason:
        return jsonify({"success": False, "message": check.reason, "autoSubmitted": check.auto_submitted}), 400

    return jsonify(
        {
            "success": True,
            "test": _test_payload(test),
            "canResume": check.can_resume,
            "existingResult": check.session.snapshot() if check.can_resume else None,
        }
    )


@bp.route("/<test_id>/start", methods=["POST"])
@student_required
def start_coding_test(test_id: str):
    test = get_store().get_test(test_id)
    session = _orchestrator().sessions(get_db()).start(get_current_student_id(), test)
    deadline = session.deadline(test)
    return jsonify(
        {"success": True, "session": session.snapshot(), "endsAt": deadline.isoformat() if deadline else None}
    ), 201


@bp.route("/<test_id>/run", methods=["POST"])
@student_required
def run_code(test_id: str):
    """Practice run against visible test cases; nothing is persisted."""
    data = _body()
    test = get_store().get_test(test_id)
    question = _require_question(test, data.get("questionId"))
    language = language_for_test(data.get("languageId"), test.language, test.board)
    source_code = data.get("sourceCode") or ""

    cases = question.visible_test_cases or question.test_cases[:PRACTICE_HIDDEN_LIMIT]
    if not cases:
        return jsonify({"success": True, "message": "No visible test cases available", "results": []})

    if source_code.strip():
        verdict = _orchestrator().runner.run_test_cases(source_code, language, cases)
    else:
        verdict = CaseSetVerdict.empty(cases)
    return jsonify(
        {"success": True, "results": [o.to_dict() for o in verdict.outcomes], "summary": _summary(verdict)}
    )


@bp.route("/<test_id>/submit-question", methods=["POST"])
@student_required
def submit_question(test_id: str):
    data = _body()
    store = get_store()
    test = store.get_test(test_id)
    _orchestrator().sessions(get_db()).ensure_submittable(get_current_student_id(), test.id)

    question = _require_question(test, data.get("questionId"))
    language = language_for_test(data.get("languageId"), test.language, test.board)
    marks = question.marks if test.is_multi_question else test.total_marks
    result = _orchestrator().grader.grade_question(question, data.get("sourceCode"), language, marks=marks)
    return jsonify(
        {
            "success": True,
            "questionId": result.question_id,
            "score": result.score,
            "maxScore": result.max_score,
            "results": [o.to_dict() for o in result.verdict.outcomes],
            "summary": _summary(result.verdict),
            "codeQuality": result.to_dict()["codeQuality"],
            "error": result.error,
        }
    )


@bp.route("/<test_id>/submit", methods=["POST"])
@student_required
def submit_code(test_id: str):
    """Final submission of a legacy single-question test."""
    data = _body()
    student_id = get_current_student_id()
    test = get_store().get_test(test_id)
    if test.is_multi_question:
        raise ValueError("Use submit-multi for multi-question tests")

    sessions = _orchestrator().sessions(get_db())
    sessions.ensure_submittable(student_id, test.id)
    submission = _orchestrator().grader.grade_single(
        test,
        data.get("sourceCode") or "",
        student_id,
        language=data.get("languageId"),
        time_taken=int(data.get("timeTaken") or 0),
    )
    session = sessions.complete(student_id, test, submission)
    return jsonify(
        {"success": True, "message": "Code submitted successfully!", "resultId": session.id, "result": submission.to_dict()}
    )


@bp.route("/<test_id>/submit-multi", methods=["POST"])
@student_required
def submit_multi(test_id: str):
    data = _body()
    student_id = get_current_student_id()
    test = get_store().get_test(test_id)
    if not test.is_multi_question:
        raise ValueError("This test does not have coding questions")

    sessions = _orchestrator().sessions(get_db())
    sessions.ensure_submittable(student_id, test.id)
    answers = [
        QuestionAnswer(question_id=str(q.get("questionId", "")), source_code=q.get("sourceCode") or q.get("code") or "")
        for q in data.get("questions") or []
    ]
    submission = _orchestrator().grader.grade_multi(
        test,
        language_for_test(data.get("languageId") or data.get("language"), test.language, test.board),
        answers,
        student_id,
        time_taken=int(data.get("timeTaken") or 0),
        monitoring={key: data[key] for key in MONITORING_FIELDS if key in data},
    )
    session = sessions.complete(student_id, test, submission)
    return jsonify(
        {
            "success": True,
            "message": "Multi-question coding test submitted successfully!",
            "resultId": session.id,
            "result": submission.to_dict(),
        }
    )
