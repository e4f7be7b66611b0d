"""Runs one source submission through an ordered list of test cases."""

from __future__ import annotations

import logging
import time
from typing import Callable

from codegrade.executor_base import CodeExecutor
from codegrade.languages import Language
from codegrade.models import CaseSetVerdict, ExecutionRequest, StatusCode, TestCase, TestCaseOutcome

logger = logging.getLogger(__name__)


def outputs_match(expected: str, actual: str) -> bool:
    """Exact comparison after trimming the outer whitespace."""
    return expected.strip() == actual.strip()


class TestCaseRunner:
    __test__ = False

    def __init__(
        self,
        executor: CodeExecutor,
        case_delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.executor = executor
        self.case_delay = case_delay  # pause between cases to stay under provider rate limits
        self._sleep = sleep

    def run_test_cases(
        self,
        source_code: str,
        language: Language,
        test_cases: list[TestCase],
    ) -> CaseSetVerdict:
        logger.info("Running %d test case(s) for %s (%d chars)", len(test_cases), language.value, len(source_code))

        outcomes: list[TestCaseOutcome] = []
        for i, test_case in enumerate(test_cases):
            if i > 0 and self.case_delay > 0:
                self._sleep(self.case_delay)

            request = ExecutionRequest(
                source_code=source_code,
                language=language,
                stdin=test_case.input,
                expected_output=test_case.expected_output,
            )
            result = self.executor.execute(request)
            passed = result.status is StatusCode.ACCEPTED and outputs_match(
                test_case.expected_output, result.stdout
            )
            outcomes.append(
                TestCaseOutcome(
                    test_case_number=i + 1,
                    test_case=test_case,
                    result=result,
                    passed=passed,
                    points_awarded=test_case.points if passed else 0,
                )
            )
            logger.info(
                "Test case %d/%d: %s (%s)",
                i + 1,
                len(test_cases),
                "passed" if passed else "failed",
                result.status.value,
            )

        total_score = sum(o.points_awarded for o in outcomes)
        max_score = sum(tc.points for tc in test_cases)
        return CaseSetVerdict(
            total_cases=len(test_cases),
            passed_cases=sum(1 for o in outcomes if o.passed),
            total_score=total_score,
            max_score=max_score,
            percentage=(total_score / max_score) * 100 if max_score > 0 else 0.0,
            outcomes=tuple(outcomes),
        )
