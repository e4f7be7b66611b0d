"""Data models for codegrade."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from codegrade.languages import Language


class StatusCode(enum.Enum):
    ACCEPTED = "Accepted"
    WRONG_ANSWER = "Wrong Answer"
    RUNTIME_ERROR = "Runtime Error"
    COMPILE_ERROR = "Compilation Error"
    TIME_LIMIT_EXCEEDED = "Time Limit Exceeded"
    SERVICE_ERROR = "Service Error"


class SubmissionStatus(enum.Enum):
    NO_CASES = "No Test Cases"
    ACCEPTED = "Accepted"
    WRONG_ANSWER = "Wrong Answer"


class SessionState(enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    EXPIRED_AUTO_SUBMITTED = "expired_auto_submitted"


ACTIVE_STATES = (SessionState.PENDING, SessionState.IN_PROGRESS)
TERMINAL_STATES = (SessionState.COMPLETED, SessionState.EXPIRED_AUTO_SUBMITTED)


def _as_number(value, what: str) -> float:
    """Authored numbers may arrive as strings ("2"); anything else non-numeric is rejected."""
    if isinstance(value, bool):
        raise ValueError(f"{what} must be a number, got {value!r}")
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{what} must be a number, got {value!r}") from e


@dataclass(frozen=True)
class ExecutionRequest:
    source_code: str
    language: Language
    stdin: str = ""
    expected_output: str = ""  # forwarded to Judge0 as a comparison hint


@dataclass
class ExecutionResult:
    stdout: str
    stderr: str
    status: StatusCode = StatusCode.SERVICE_ERROR
    wall_time_ms: float = 0.0
    memory_kb: int = 0
    provider: str = ""  # empty for synthetic results


@dataclass
class TestCase:
    __test__ = False

    input: str
    expected_output: str
    points: float = 1
    hidden: bool = False
    explanation: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> TestCase:
        points = data.get("points")
        if points is None:
            points = 1
        points = _as_number(points, "Test case points")
        if points < 0:
            raise ValueError("Test case points must be >= 0")
        return cls(
            input=str(data.get("input", "")),
            expected_output=str(data.get("expectedOutput", data.get("expected_output", ""))),
            points=points,
            hidden=bool(data.get("isHidden", data.get("hidden", False))),
            explanation=data.get("explanation", "") or "",
        )


@dataclass
class TestCaseOutcome:
    __test__ = False

    test_case_number: int  # 1-based
    test_case: TestCase
    result: ExecutionResult
    passed: bool
    points_awarded: float

    def to_dict(self, reveal_hidden: bool = False) -> dict:
        data = {
            "testCaseNumber": self.test_case_number,
            "passed": self.passed,
            "points": self.points_awarded,
            "status": self.result.status.value,
            "executionTime": self.result.wall_time_ms,
            "memory": self.result.memory_kb,
            "hidden": self.test_case.hidden,
        }
        if reveal_hidden or not self.test_case.hidden:
            data.update(
                input=self.test_case.input,
                expectedOutput=self.test_case.expected_output,
                actualOutput=self.result.stdout,
                stderr=self.result.stderr,
            )
        return data


@dataclass(frozen=True)
class CaseSetVerdict:
    total_cases: int
    passed_cases: int
    total_score: float
    max_score: float
    percentage: float
    outcomes: tuple[TestCaseOutcome, ...] = ()

    @classmethod
    def empty(cls, test_cases: list[TestCase]) -> CaseSetVerdict:
        """Zero verdict for input that is never executed."""
        return cls(
            total_cases=len(test_cases),
            passed_cases=0,
            total_score=0,
            max_score=sum(tc.points for tc in test_cases),
            percentage=0.0,
        )

    @property
    def all_passed(self) -> bool:
        return self.total_cases > 0 and self.passed_cases == self.total_cases

    def to_dict(self, reveal_hidden: bool = False) -> dict:
        return {
            "totalTestCases": self.total_cases,
            "passedTestCases": self.passed_cases,
            "totalScore": self.total_score,
            "maxScore": self.max_score,
            "percentage": self.percentage,
            "results": [o.to_dict(reveal_hidden) for o in self.outcomes],
        }


@dataclass
class CodingQuestion:
    id: str
    title: str
    marks: float
    test_cases: list[TestCase]
    description: str = ""

    @property
    def visible_test_cases(self) -> list[TestCase]:
        return [tc for tc in self.test_cases if not tc.hidden]

    @classmethod
    def from_dict(cls, data: dict) -> CodingQuestion:
        question_id = str(data.get("id", "")).strip()
        if not question_id:
            raise ValueError("Coding question is missing an 'id'")
        return cls(
            id=question_id,
            title=data.get("title") or f"Question {question_id}",
            marks=_as_number(data.get("marks") or 0, f"Marks of question {question_id}"),
            test_cases=[TestCase.from_dict(tc) for tc in data.get("testCases", [])],
            description=data.get("description", "") or "",
        )


@dataclass
class CodingTest:
    id: str
    title: str
    duration_minutes: int
    total_marks: float = 0
    board: str = ""
    language: str = ""
    questions: list[CodingQuestion] = field(default_factory=list)
    problem: CodingQuestion | None = None  # legacy single-question tests
    description: str = ""

    @property
    def is_multi_question(self) -> bool:
        return bool(self.questions)

    def find_question(self, question_id: str) -> CodingQuestion | None:
        if not self.is_multi_question:
            return self.problem if self.problem and self.problem.id == question_id else None
        return next((q for q in self.questions if q.id == question_id), None)

    @classmethod
    def from_dict(cls, data: dict) -> CodingTest:
        test_id = str(data.get("_id", data.get("id", ""))).strip()
        if not test_id:
            raise ValueError("Coding test is missing an 'id'")
        coding = data.get("coding") or {}
        questions = [CodingQuestion.from_dict(q) for q in coding.get("questions") or []]
        problem = None
        raw_problem = data.get("codingProblem")
        if raw_problem and not questions:
            problem = CodingQuestion.from_dict(
                {"id": raw_problem.get("id", "problem"), "marks": data.get("totalMarks", 0), **raw_problem}
            )
        if not questions and problem is None:
            raise ValueError(f"Test {test_id} has no coding questions")
        duration = data.get("duration")
        if duration is None or int(_as_number(duration, "duration")) <= 0:
            raise ValueError(f"Test {test_id} needs a positive 'duration' in minutes")
        total_marks = data.get("totalMarks")
        if total_marks is None:
            total_marks = sum(q.marks for q in questions)
        else:
            total_marks = _as_number(total_marks, "totalMarks")
        return cls(
            id=test_id,
            title=data.get("title", ""),
            duration_minutes=int(_as_number(duration, "duration")),
            total_marks=total_marks,
            board=data.get("board", "") or "",
            language=data.get("language", "") or "",
            questions=questions,
            problem=problem,
            description=data.get("description", "") or "",
        )


@dataclass
class CodeQuality:
    lines_of_code: int = 0
    complexity: str = "low"
    has_comments: bool = False


@dataclass
class QuestionResult:
    question_id: str
    title: str
    code: str
    language: Language
    verdict: CaseSetVerdict
    score: float
    max_score: float
    percentage: float
    execution_time_ms: float = 0.0
    code_quality: CodeQuality = field(default_factory=CodeQuality)
    error: str = ""

    @property
    def attempted(self) -> bool:
        return bool(self.code.strip())

    def to_dict(self, reveal_hidden: bool = False) -> dict:
        return {
            "questionId": self.question_id,
            "questionTitle": self.title,
            "code": self.code,
            "language": self.language.value,
            "score": self.score,
            "maxScore": self.max_score,
            "percentage": self.percentage,
            "passedTestCases": self.verdict.passed_cases,
            "totalTestCases": self.verdict.total_cases,
            "executionTime": self.execution_time_ms,
            "verdict": self.verdict.to_dict(reveal_hidden),
            "codeQuality": {
                "linesOfCode": self.code_quality.lines_of_code,
                "complexity": self.code_quality.complexity,
                "hasComments": self.code_quality.has_comments,
            },
            "error": self.error,
        }


@dataclass
class OverallPerformance:
    accuracy: float
    efficiency: str


@dataclass
class Submission:
    student_id: str
    test_id: str
    test_title: str
    submission_type: str  # "coding_submission" or "multi_question_coding"
    question_results: list[QuestionResult]
    aggregate_score: float
    max_score: float
    aggregate_percentage: float
    status: SubmissionStatus
    detailed_status: str
    submitted_at: datetime
    time_taken: int = 0  # seconds, as reported by the client
    monitoring: dict = field(default_factory=dict)

    @property
    def total_test_cases(self) -> int:
        return sum(qr.verdict.total_cases for qr in self.question_results)

    @property
    def passed_test_cases(self) -> int:
        return sum(qr.verdict.passed_cases for qr in self.question_results)

    @property
    def questions_attempted(self) -> int:
        return sum(1 for qr in self.question_results if qr.attempted)

    @property
    def questions_completed(self) -> int:
        return sum(1 for qr in self.question_results if qr.verdict.passed_cases > 0)

    @property
    def overall_performance(self) -> OverallPerformance:
        total = self.total_test_cases
        ratio = self.passed_test_cases / total if total else 0.0
        if ratio > 0.8:
            efficiency = "excellent"
        elif ratio > 0.6:
            efficiency = "good"
        elif ratio > 0.4:
            efficiency = "average"
        else:
            efficiency = "poor"
        return OverallPerformance(accuracy=ratio * 100, efficiency=efficiency)

    def to_dict(self, reveal_hidden: bool = False) -> dict:
        performance = self.overall_performance
        return {
            "studentId": self.student_id,
            "testId": self.test_id,
            "testTitle": self.test_title,
            "submissionType": self.submission_type,
            "score": self.aggregate_score,
            "totalMarks": self.max_score,
            "percentage": self.aggregate_percentage,
            "status": self.status.value,
            "detailedStatus": self.detailed_status,
            "submittedAt": self.submitted_at.isoformat(),
            "timeTaken": self.time_taken,
            "questionsAttempted": self.questions_attempted,
            "questionsCompleted": self.questions_completed,
            "totalQuestions": len(self.question_results),
            "passedTests": self.passed_test_cases,
            "totalTests": self.total_test_cases,
            "overallPerformance": {
                "accuracy": performance.accuracy,
                "efficiency": performance.efficiency,
            },
            "questionResults": [qr.to_dict(reveal_hidden) for qr in self.question_results],
            "monitoring": self.monitoring,
        }


@dataclass
class CodingSession:
    student_id: str
    test_id: str
    state: SessionState = SessionState.PENDING
    started_at: datetime | None = None
    submitted_at: datetime | None = None
    admin_comments: str = ""
    submission: dict | None = None  # stored Submission document
    id: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES or self.submitted_at is not None

    def deadline(self, test: CodingTest) -> datetime | None:
        if self.started_at is None:
            return None
        return self.started_at + timedelta(minutes=test.duration_minutes)

    def snapshot(self) -> dict:
        return {
            "_id": self.id,
            "status": self.state.value,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "submittedAt": self.submitted_at.isoformat() if self.submitted_at else None,
        }
