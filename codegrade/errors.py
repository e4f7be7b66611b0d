"""Exception hierarchy for codegrade."""

from __future__ import annotations


class CodeGradeError(Exception):
    """Base exception for the grading core."""


class ProviderError(CodeGradeError):
    """A single execution provider call failed."""

    def __init__(self, message: str, provider: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderTransientError(ProviderError):
    """Network failure, timeout, rate limit (429) or server error (5xx)."""


class ProviderStructuralError(ProviderError):
    """Provider answered, but the body is not a usable execution result."""


class ProviderRequestError(ProviderError):
    """Provider rejected the request itself (4xx other than 408/429)."""


class AllProvidersExhausted(CodeGradeError):
    """Every provider in the pool failed for one logical call."""

    def __init__(self, message: str, last_error: Exception | None = None) -> None:
        super().__init__(message)
        self.last_error = last_error


class SessionStateError(CodeGradeError):
    """A session transition is not allowed from the current state."""

    ALREADY_COMPLETED = "You have already completed this coding test"
    ALREADY_IN_PROGRESS = "This coding test is already in progress"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TestNotFoundError(CodeGradeError):
    __test__ = False  # keep pytest from collecting this class


class QuestionNotFoundError(CodeGradeError):
    pass


class UnsupportedLanguageError(CodeGradeError, ValueError):
    pass
