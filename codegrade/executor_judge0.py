"""Judge0 REST API client: one call against one provider of the pool."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx

from codegrade.errors import ProviderRequestError, ProviderStructuralError, ProviderTransientError
from codegrade.models import ExecutionRequest
from codegrade.normalizer import JUDGE0_PENDING_STATUSES, Judge0Response, has_execution_fields, judge0_status_id
from codegrade.provider_pool import ProviderConfig

logger = logging.getLogger(__name__)

# Statuses worth retrying on another provider.
_RETRYABLE_HTTP = (408, 429)


@dataclass
class Judge0Config:
    timeout: float = 15.0
    poll_interval: float = 0.5
    max_poll_attempts: int = 60


def _headers(provider: ProviderConfig) -> dict[str, str]:
    headers: dict[str, str] = {"Content-Type": "application/json"}
    if provider.rapidapi_host:
        headers["x-rapidapi-key"] = provider.api_key
        headers["x-rapidapi-host"] = provider.rapidapi_host
    elif provider.api_key:
        headers["X-Auth-Token"] = provider.api_key
    return headers


def _check_response(resp: httpx.Response, provider: ProviderConfig):
    """Raise the matching ProviderError for a failed HTTP response, else return JSON."""
    status = resp.status_code
    if status in _RETRYABLE_HTTP or status >= 500:
        raise ProviderTransientError(
            f"{provider.name} answered HTTP {status}", provider=provider.name, status_code=status
        )
    if status >= 400:
        raise ProviderRequestError(
            f"{provider.name} rejected the request with HTTP {status}",
            provider=provider.name,
            status_code=status,
        )
    try:
        return resp.json()
    except ValueError as e:
        raise ProviderStructuralError(
            f"{provider.name} returned a non-JSON body", provider=provider.name, status_code=status
        ) from e


class Judge0Executor:
    """Submits code to a Judge0 deployment and returns its raw response."""

    family = "judge0"

    def __init__(self, config: Judge0Config | None = None) -> None:
        self._config = config or Judge0Config()

    def submit(self, provider: ProviderConfig, request: ExecutionRequest) -> Judge0Response:
        payload: dict = {
            "source_code": request.source_code,
            "language_id": request.language.judge0_id,
            "stdin": request.stdin,
        }
        if request.expected_output:
            payload["expected_output"] = request.expected_output

        headers = _headers(provider)
        data = self._request(
            "POST",
            f"{provider.base_url}/submissions?base64_encoded=false&wait=true",
            provider,
            headers,
            json=payload,
        )

        # The server may hand back a token without waiting for the run.
        if isinstance(data, dict) and judge0_status_id(data) in (None, *JUDGE0_PENDING_STATUSES):
            token = data.get("token", "")
            if token:
                data = self._poll(provider, token, headers)

        if not has_execution_fields(data):
            raise ProviderStructuralError(
                f"{provider.name} returned a response without stdout/stderr/status",
                provider=provider.name,
            )
        return Judge0Response(payload=data, provider=provider.name)

    def about(self, provider: ProviderConfig) -> dict:
        return self._request("GET", f"{provider.base_url}/about", provider, _headers(provider))

    def languages(self, provider: ProviderConfig) -> list:
        data = self._request("GET", f"{provider.base_url}/languages", provider, _headers(provider))
        if not isinstance(data, list):
            raise ProviderStructuralError(
                f"{provider.name} returned a malformed language list", provider=provider.name
            )
        return data

    def _poll(self, provider: ProviderConfig, token: str, headers: dict[str, str]) -> dict:
        logger.debug("Polling %s for submission %s", provider.name, token)
        for _ in range(self._config.max_poll_attempts):
            time.sleep(self._config.poll_interval)
            data = self._request(
                "GET",
                f"{provider.base_url}/submissions/{token}?base64_encoded=false",
                provider,
                headers,
            )
            if not isinstance(data, dict):
                raise ProviderStructuralError(
                    f"{provider.name} returned a non-object body while polling {token}", provider=provider.name
                )
            if judge0_status_id(data) not in JUDGE0_PENDING_STATUSES:
                return data
        raise ProviderStructuralError(
            f"{provider.name} did not finish submission {token} while polling", provider=provider.name
        )

    def _request(self, method: str, url: str, provider: ProviderConfig, headers: dict[str, str], json=None):
        try:
            if method == "POST":
                resp = httpx.post(url, json=json, headers=headers, timeout=self._config.timeout)
            else:
                resp = httpx.get(url, headers=headers, timeout=self._config.timeout)
        except httpx.TimeoutException as e:
            raise ProviderTransientError(f"{provider.name} timed out", provider=provider.name) from e
        except httpx.HTTPError as e:
            raise ProviderTransientError(f"{provider.name} unreachable: {e}", provider=provider.name) from e
        return _check_response(resp, provider)
