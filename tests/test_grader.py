"""Tests for scoring and submission classification."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from codegrade.grader import QuestionAnswer, SubmissionGrader, classify, code_quality, round_half_up, scaled_score
from codegrade.languages import Language
from codegrade.models import (
    CaseSetVerdict,
    CodingQuestion,
    CodingTest,
    ExecutionResult,
    StatusCode,
    SubmissionStatus,
    TestCase,
    TestCaseOutcome,
)
from codegrade.runner import TestCaseRunner


class EchoExecutor:
    """Fake executor: prints stdin back unless the source says otherwise."""

    def __init__(self):
        self.calls = []

    def execute(self, request):
        self.calls.append(request)
        if "compile_error" in request.source_code:
            return ExecutionResult(stdout="", stderr="SyntaxError", status=StatusCode.COMPILE_ERROR)
        if "wrong" in request.source_code:
            return ExecutionResult(stdout="nope", stderr="", status=StatusCode.ACCEPTED)
        return ExecutionResult(stdout=request.stdin, stderr="", status=StatusCode.ACCEPTED, wall_time_ms=5)


def _grader(executor=None):
    executor = executor or EchoExecutor()
    return SubmissionGrader(TestCaseRunner(executor, case_delay=0, sleep=MagicMock())), executor


def _question(qid: str, marks: float, n_cases: int) -> CodingQuestion:
    return CodingQuestion(
        id=qid, title=qid.upper(), marks=marks, test_cases=[TestCase(str(i), str(i)) for i in range(n_cases)]
    )


def _outcome(status: StatusCode, passed: bool) -> TestCaseOutcome:
    return TestCaseOutcome(1, TestCase("", ""), ExecutionResult("", "", status), passed, 1 if passed else 0)


def _verdict(*outcomes: TestCaseOutcome) -> CaseSetVerdict:
    passed = sum(1 for o in outcomes if o.passed)
    return CaseSetVerdict(len(outcomes), passed, passed, len(outcomes), 0.0, tuple(outcomes))


MULTI_TEST = CodingTest(
    id="t1",
    title="Loops",
    duration_minutes=60,
    total_marks=20,
    language="python",
    questions=[_question("q1", 10, 3), _question("q2", 10, 2)],
)


class TestScoring:
    @pytest.mark.parametrize(
        "value, expected",
        [(2.5, 3), (3.5, 4), (6.666, 7), (3.333, 3), (0.0, 0), (0.5, 1)],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_scaled_score(self):
        assert scaled_score(2, 3, 10) == 7
        assert scaled_score(1, 4, 10) == 3  # 2.5 rounds up
        assert scaled_score(0, 0, 10) == 0


class TestCodeQuality:
    def test_short_uncommented(self):
        quality = code_quality("x = 1\n\nprint(x)\n")
        assert quality.lines_of_code == 2
        assert quality.complexity == "low"
        assert not quality.has_comments

    @pytest.mark.parametrize("marker", ["# note", "// note", "/* note */"])
    def test_comment_markers(self, marker):
        assert code_quality(f"x = 1 {marker}").has_comments

    def test_complexity_buckets(self):
        assert code_quality("a\n" * 21).complexity == "medium"
        assert code_quality("a\n" * 51).complexity == "high"
        assert code_quality("a\n" * 20).complexity == "low"


class TestClassify:
    def test_no_cases(self):
        assert classify([_verdict()]) == (SubmissionStatus.NO_CASES, "No Test Cases")

    def test_all_passed(self):
        status, detailed = classify([_verdict(_outcome(StatusCode.ACCEPTED, True))])
        assert status is SubmissionStatus.ACCEPTED
        assert detailed == "Accepted"

    def test_plain_wrong_answer(self):
        status, detailed = classify([_verdict(_outcome(StatusCode.ACCEPTED, False))])
        assert status is SubmissionStatus.WRONG_ANSWER
        assert detailed == "Wrong Answer"

    def test_detailed_status_picks_most_severe(self):
        verdicts = [
            _verdict(_outcome(StatusCode.TIME_LIMIT_EXCEEDED, False), _outcome(StatusCode.ACCEPTED, True)),
            _verdict(_outcome(StatusCode.RUNTIME_ERROR, False), _outcome(StatusCode.SERVICE_ERROR, False)),
        ]
        status, detailed = classify(verdicts)
        assert status is SubmissionStatus.WRONG_ANSWER
        assert detailed == "Runtime Error"


class TestGradeQuestion:
    def test_partial_credit(self):
        grader, _ = _grader()
        question = CodingQuestion(
            id="q", title="Q", marks=10, test_cases=[TestCase("1", "1"), TestCase("2", "2"), TestCase("3", "x")]
        )
        result = grader.grade_question(question, "echo", Language.PYTHON)
        assert result.score == 7
        assert result.max_score == 10
        assert result.percentage == pytest.approx(200 / 3)
        assert result.execution_time_ms == 15

    def test_blank_code_is_not_executed(self):
        grader, executor = _grader()
        result = grader.grade_question(_question("q", 10, 3), "   \n", Language.PYTHON)
        assert executor.calls == []
        assert result.score == 0
        assert result.max_score == 10
        assert result.error == "No code submitted"
        assert result.verdict.total_cases == 3

    def test_marks_override(self):
        grader, _ = _grader()
        result = grader.grade_question(_question("q", 10, 2), "echo", Language.PYTHON, marks=50)
        assert result.score == 50


class TestGradeMulti:
    def test_sums_question_scores(self):
        grader, _ = _grader()
        answers = [QuestionAnswer("q1", "echo"), QuestionAnswer("q2", "wrong")]
        submission = grader.grade_multi(MULTI_TEST, "python", answers, "s1")
        assert submission.aggregate_score == 10
        assert submission.max_score == 20
        assert submission.aggregate_percentage == pytest.approx(50.0)
        assert submission.status is SubmissionStatus.WRONG_ANSWER
        assert submission.questions_attempted == 2
        assert submission.questions_completed == 1
        assert submission.submission_type == "multi_question_coding"

    def test_missing_answer_graded_blank(self):
        grader, executor = _grader()
        submission = grader.grade_multi(MULTI_TEST, Language.PYTHON, [QuestionAnswer("q1", "echo")], "s1")
        assert len(submission.question_results) == 2
        assert submission.question_results[1].score == 0
        assert submission.question_results[1].error == "No code submitted"
        assert len(executor.calls) == 3
        assert submission.questions_attempted == 1

    def test_unknown_question_ignored(self):
        grader, executor = _grader()
        answers = [QuestionAnswer("q1", "echo"), QuestionAnswer("q2", "echo"), QuestionAnswer("zz", "echo")]
        submission = grader.grade_multi(MULTI_TEST, 71, answers, "s1")
        assert [r.question_id for r in submission.question_results] == ["q1", "q2"]
        assert submission.aggregate_score == 20
        assert submission.status is SubmissionStatus.ACCEPTED
        assert len(executor.calls) == 5

    def test_all_blank_with_cases_is_wrong_answer(self):
        grader, _ = _grader()
        submission = grader.grade_multi(MULTI_TEST, "python", [], "s1")
        assert submission.aggregate_score == 0
        assert submission.status is SubmissionStatus.WRONG_ANSWER
        assert submission.overall_performance.efficiency == "poor"

    def test_detailed_status_reports_compile_error(self):
        grader, _ = _grader()
        answers = [QuestionAnswer("q1", "compile_error"), QuestionAnswer("q2", "echo")]
        submission = grader.grade_multi(MULTI_TEST, "python", answers, "s1")
        assert submission.status is SubmissionStatus.WRONG_ANSWER
        assert submission.detailed_status == "Compilation Error"

    def test_to_dict_hides_hidden_cases(self):
        hidden_test = CodingTest(
            id="t2",
            title="Hidden",
            duration_minutes=10,
            questions=[CodingQuestion("q1", "Q1", 5, [TestCase("secret", "secret", hidden=True)])],
        )
        grader, _ = _grader()
        when = datetime(2026, 3, 1, tzinfo=timezone.utc)
        submission = grader.grade_multi(hidden_test, "python", [QuestionAnswer("q1", "echo")], "s1", submitted_at=when)
        public = submission.to_dict()
        case = public["questionResults"][0]["verdict"]["results"][0]
        assert "input" not in case
        assert public["submittedAt"] == when.isoformat()
        assert public["totalMarks"] == 5


class TestGradeSingle:
    def _legacy(self, **overrides) -> CodingTest:
        fields = dict(
            id="legacy",
            title="Sum",
            duration_minutes=30,
            total_marks=10,
            board="ICSE",
            problem=_question("problem", 10, 4),
        )
        fields.update(overrides)
        return CodingTest(**fields)

    def test_scales_to_total_marks(self):
        grader, executor = _grader()
        submission = grader.grade_single(self._legacy(), "echo", "s1")
        assert submission.aggregate_score == 10
        assert submission.status is SubmissionStatus.ACCEPTED
        assert submission.submission_type == "coding_submission"
        # Language comes from the board when nothing else is given.
        assert executor.calls[0].language is Language.JAVA

    def test_explicit_language_wins(self):
        grader, executor = _grader()
        grader.grade_single(self._legacy(), "echo", "s1", language="c")
        assert executor.calls[0].language is Language.C

    def test_rejects_multi_question_test(self):
        grader, _ = _grader()
        with pytest.raises(ValueError):
            grader.grade_single(MULTI_TEST, "echo", "s1")
