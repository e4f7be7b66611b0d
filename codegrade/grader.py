"""Scores submissions: single-question, per-question and multi-question."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from codegrade.languages import Language, language_for_test, resolve_language
from codegrade.models import (
    CaseSetVerdict,
    CodeQuality,
    CodingQuestion,
    CodingTest,
    QuestionResult,
    StatusCode,
    Submission,
    SubmissionStatus,
)
from codegrade.runner import TestCaseRunner

logger = logging.getLogger(__name__)

_COMMENT_RE = re.compile(r"//|/\*|#")

# Most severe first; used for the detailed status only.
_SEVERITY = (
    StatusCode.COMPILE_ERROR,
    StatusCode.RUNTIME_ERROR,
    StatusCode.TIME_LIMIT_EXCEEDED,
    StatusCode.SERVICE_ERROR,
)


@dataclass
class QuestionAnswer:
    question_id: str
    source_code: str


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def scaled_score(passed: int, total: int, marks: float) -> int:
    if total <= 0:
        return 0
    return round_half_up(passed / total * marks)


def code_quality(source_code: str) -> CodeQuality:
    """Local heuristics; never executes anything."""
    lines = [line for line in source_code.split("\n") if line.strip()]
    loc = len(lines)
    if loc > 50:
        complexity = "high"
    elif loc > 20:
        complexity = "medium"
    else:
        complexity = "low"
    return CodeQuality(
        lines_of_code=loc,
        complexity=complexity,
        has_comments=bool(_COMMENT_RE.search(source_code)),
    )


def classify(verdicts: list[CaseSetVerdict]) -> tuple[SubmissionStatus, str]:
    """Return the submission status and the detailed status string."""
    total = sum(v.total_cases for v in verdicts)
    passed = sum(v.passed_cases for v in verdicts)
    if total == 0:
        status = SubmissionStatus.NO_CASES
    elif passed == total:
        status = SubmissionStatus.ACCEPTED
    else:
        status = SubmissionStatus.WRONG_ANSWER

    seen = {o.result.status for v in verdicts for o in v.outcomes if not o.passed}
    for code in _SEVERITY:
        if code in seen:
            return status, code.value
    return status, status.value


class SubmissionGrader:
    def __init__(self, runner: TestCaseRunner) -> None:
        self.runner = runner

    def grade_question(
        self,
        question: CodingQuestion,
        source_code: str | None,
        language: Language,
        marks: float | None = None,
    ) -> QuestionResult:
        """Grade one answer; *marks* overrides the question's own marks."""
        marks = question.marks if marks is None else marks
        code = source_code or ""

        if not code.strip():
            logger.info("Question %s has no code, scoring zero without execution", question.id)
            return QuestionResult(
                question_id=question.id,
                title=question.title,
                code=code,
                language=language,
                verdict=CaseSetVerdict.empty(question.test_cases),
                score=0,
                max_score=marks,
                percentage=0.0,
                error="No code submitted",
            )

        verdict = self.runner.run_test_cases(code, language, question.test_cases)
        score = scaled_score(verdict.passed_cases, verdict.total_cases, marks)
        return QuestionResult(
            question_id=question.id,
            title=question.title,
            code=code,
            language=language,
            verdict=verdict,
            score=score,
            max_score=marks,
            percentage=(verdict.passed_cases / verdict.total_cases) * 100 if verdict.total_cases else 0.0,
            execution_time_ms=sum(o.result.wall_time_ms for o in verdict.outcomes),
            code_quality=code_quality(code),
        )

    def grade_single(
        self,
        test: CodingTest,
        source_code: str,
        student_id: str,
        language: Language | str | int | None = None,
        time_taken: int = 0,
        submitted_at: datetime | None = None,
    ) -> Submission:
        """Legacy single-question test: score scales passed/total to the test's total marks."""
        if test.problem is None:
            raise ValueError(f"Test {test.id} is not a single-question coding test")
        language = language_for_test(language, test.language, test.board)
        result = self.grade_question(test.problem, source_code, language, marks=test.total_marks)
        status, detailed = classify([result.verdict])
        return Submission(
            student_id=student_id,
            test_id=test.id,
            test_title=test.title,
            submission_type="coding_submission",
            question_results=[result],
            aggregate_score=result.score,
            max_score=test.total_marks,
            aggregate_percentage=(result.score / test.total_marks) * 100 if test.total_marks else 0.0,
            status=status,
            detailed_status=detailed,
            submitted_at=submitted_at or datetime.now(timezone.utc),
            time_taken=time_taken,
        )

    def grade_multi(
        self,
        test: CodingTest,
        language: Language | str | int,
        answers: list[QuestionAnswer],
        student_id: str,
        time_taken: int = 0,
        monitoring: dict | None = None,
        submitted_at: datetime | None = None,
    ) -> Submission:
        """Grade every question of a multi-question test.

        Questions without an answer are graded as blank; answers for question
        ids the test does not contain are ignored.
        """
        language = resolve_language(language)
        by_id: dict[str, str] = {}
        for answer in answers:
            if test.find_question(answer.question_id) is None:
                logger.warning("Ignoring answer for unknown question %s on test %s", answer.question_id, test.id)
                continue
            by_id[answer.question_id] = answer.source_code

        results = [self.grade_question(q, by_id.get(q.id), language) for q in test.questions]
        total_score = sum(r.score for r in results)
        max_score = sum(q.marks for q in test.questions)
        status, detailed = classify([r.verdict for r in results])
        logger.info(
            "Graded test %s for student %s: %s/%s (%s)", test.id, student_id, total_score, max_score, status.value
        )
        return Submission(
            student_id=student_id,
            test_id=test.id,
            test_title=test.title,
            submission_type="multi_question_coding",
            question_results=results,
            aggregate_score=total_score,
            max_score=max_score,
            aggregate_percentage=(total_score / max_score) * 100 if max_score > 0 else 0.0,
            status=status,
            detailed_status=detailed,
            submitted_at=submitted_at or datetime.now(timezone.utc),
            time_taken=time_taken,
            monitoring=monitoring or {},
        )
