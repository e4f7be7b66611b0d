"""Piston (emkc.org) client, used as the secondary fallback service."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from codegrade.errors import ProviderRequestError, ProviderStructuralError, ProviderTransientError
from codegrade.models import ExecutionRequest
from codegrade.normalizer import PistonResponse

DEFAULT_PISTON_URL = "https://emkc.org/api/v2/piston"
HEALTH_TIMEOUT = 5.0

logger = logging.getLogger(__name__)


class PistonExecutor:
    """Runs code through Piston's ``/execute`` endpoint."""

    family = "piston"
    name = "piston"

    def __init__(self, base_url: str = DEFAULT_PISTON_URL, timeout: float = 20.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def run(self, request: ExecutionRequest) -> PistonResponse:
        runtime, version = request.language.piston_runtime
        payload = {
            "language": runtime,
            "version": version,
            "files": [{"name": f"main.{request.language.extension}", "content": request.source_code}],
            "stdin": request.stdin,
            "compile_timeout": 10000,
            "run_timeout": 5000,
            "compile_memory_limit": 128_000_000,
            "run_memory_limit": 128_000_000,
        }
        try:
            resp = httpx.post(
                f"{self.base_url}/execute",
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderTransientError("Piston timed out", provider=self.name) from e
        except httpx.HTTPError as e:
            raise ProviderTransientError(f"Piston unreachable: {e}", provider=self.name) from e

        if resp.status_code == 429 or resp.status_code >= 500:
            raise ProviderTransientError(
                f"Piston answered HTTP {resp.status_code}", provider=self.name, status_code=resp.status_code
            )
        if resp.status_code >= 400:
            raise ProviderRequestError(
                f"Piston rejected the request with HTTP {resp.status_code}",
                provider=self.name,
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderStructuralError("Piston returned a non-JSON body", provider=self.name) from e
        # A failed compile stage comes back without a run stage.
        if not isinstance(data, dict) or not any(isinstance(data.get(stage), dict) for stage in ("run", "compile")):
            raise ProviderStructuralError("Piston response has no compile or run stage", provider=self.name)
        return PistonResponse(payload=data, provider=self.name)

    def health(self) -> dict:
        """Report whether Piston answers ``/runtimes``; never raises."""
        checked_at = datetime.now(timezone.utc).isoformat()
        try:
            resp = httpx.get(f"{self.base_url}/runtimes", timeout=HEALTH_TIMEOUT)
            resp.raise_for_status()
            runtimes = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Piston health check failed: %s", e)
            return {"status": "unhealthy", "error": str(e), "timestamp": checked_at}
        if not isinstance(runtimes, list):
            logger.warning("Piston /runtimes returned %s instead of a list", type(runtimes).__name__)
            return {"status": "unhealthy", "error": "unexpected /runtimes body", "timestamp": checked_at}
        return {"status": "healthy", "availableLanguages": len(runtimes), "timestamp": checked_at}
