"""Failover across the provider pool, then the secondary fallback service."""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from codegrade.errors import AllProvidersExhausted, ProviderError, ProviderRequestError
from codegrade.executor_base import FallbackBackend, PrimaryBackend
from codegrade.models import ExecutionRequest, ExecutionResult, StatusCode
from codegrade.normalizer import normalize
from codegrade.provider_pool import ProviderConfig, ProviderPool

logger = logging.getLogger(__name__)

T = TypeVar("T")


def service_error_result(message: str) -> ExecutionResult:
    return ExecutionResult(stdout="", stderr=message, status=StatusCode.SERVICE_ERROR)


class FailoverDispatcher:
    """Executes one request, trying each pool provider in turn.

    ``execute`` never raises for provider failure: every path ends in an
    ExecutionResult, a Service Error one when nothing could run the code.
    """

    def __init__(
        self,
        pool: ProviderPool,
        primary: PrimaryBackend,
        fallback: FallbackBackend | None = None,
        failover_on_request_error: bool = True,
    ) -> None:
        self.pool = pool
        self.primary = primary
        self.fallback = fallback
        self.failover_on_request_error = failover_on_request_error

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        try:
            raw = self._with_failover(lambda provider: self.primary.submit(provider, request))
            return normalize(raw)
        except AllProvidersExhausted as e:
            logger.warning("All %s providers failed (%s)", self.primary.family, e.last_error)
            return self._run_fallback(request)

    def about(self) -> dict:
        return self._with_failover(self.primary.about)

    def languages(self) -> list:
        return self._with_failover(self.primary.languages)

    def fallback_health(self) -> dict | None:
        if self.fallback is None:
            return None
        return self.fallback.health()

    def _with_failover(self, call: Callable[[ProviderConfig], T]) -> T:
        attempts = len(self.pool)
        last_error: ProviderError | None = None

        for attempt in range(attempts):
            provider = self.pool.current()
            logger.info("Attempt %d/%d using %s provider", attempt + 1, attempts, provider.name)
            try:
                return call(provider)
            except ProviderError as e:
                last_error = e
                logger.warning("%s provider failed: %s", provider.name, e)
                self.pool.advance(failed=provider)
                if isinstance(e, ProviderRequestError) and not self.failover_on_request_error:
                    break

        raise AllProvidersExhausted(
            f"All {self.primary.family} providers are unavailable", last_error=last_error
        )

    def _run_fallback(self, request: ExecutionRequest) -> ExecutionResult:
        if self.fallback is None:
            return service_error_result("Code execution service temporarily unavailable")

        logger.info("Trying %s fallback for %s", self.fallback.name, request.language.value)
        try:
            return normalize(self.fallback.run(request))
        except ProviderError as e:
            logger.error("%s fallback failed: %s", self.fallback.name, e)
            return service_error_result(f"{self.fallback.name} service temporarily unavailable: {e}")
