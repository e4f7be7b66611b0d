"""Tests for the Judge0 client (mocked, no real server needed)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from codegrade.errors import ProviderRequestError, ProviderStructuralError, ProviderTransientError
from codegrade.executor_judge0 import Judge0Config, Judge0Executor
from codegrade.languages import Language
from codegrade.models import ExecutionRequest
from codegrade.provider_pool import ProviderConfig

PROVIDER = ProviderConfig(name="primary", base_url="http://fake:2358")
REQUEST = ExecutionRequest(source_code="print('hello')", language=Language.PYTHON, stdin="", expected_output="hello")


def _make_response(status_id: int | None = 3, stdout: str = "", stderr: str = "", http_status: int = 200):
    """Build a mock Judge0 API response."""
    resp = MagicMock()
    resp.status_code = http_status
    body = {"stdout": stdout, "stderr": stderr, "compile_output": "", "token": "abc123", "time": "0.01", "memory": 3000}
    if status_id is not None:
        body["status"] = {"id": status_id, "description": ""}
    resp.json.return_value = body
    return resp


class TestJudge0Submit:
    @patch("codegrade.executor_judge0.httpx.post")
    def test_successful_submission(self, mock_post):
        mock_post.return_value = _make_response(3, stdout="hello\n")
        raw = Judge0Executor().submit(PROVIDER, REQUEST)
        assert raw.provider == "primary"
        assert raw.payload["stdout"] == "hello\n"

    @patch("codegrade.executor_judge0.httpx.post")
    def test_payload_fields(self, mock_post):
        mock_post.return_value = _make_response(3)
        request = ExecutionRequest(source_code="print(1)", language=Language.JAVA, stdin="42\n", expected_output="1")
        Judge0Executor(Judge0Config(timeout=7)).submit(PROVIDER, request)
        call_kwargs = mock_post.call_args
        payload = call_kwargs.kwargs["json"]
        assert payload["source_code"] == "print(1)"
        assert payload["language_id"] == 62
        assert payload["stdin"] == "42\n"
        assert payload["expected_output"] == "1"
        assert call_kwargs.kwargs["timeout"] == 7
        assert "wait=true" in call_kwargs.args[0]

    @patch("codegrade.executor_judge0.httpx.post")
    def test_auth_token_header(self, mock_post):
        mock_post.return_value = _make_response(3)
        provider = ProviderConfig(name="self-hosted", base_url="http://fake:2358", api_key="secret")
        Judge0Executor().submit(provider, REQUEST)
        headers = mock_post.call_args.kwargs["headers"]
        assert headers["X-Auth-Token"] == "secret"
        assert "x-rapidapi-key" not in headers

    @patch("codegrade.executor_judge0.httpx.post")
    def test_rapidapi_headers(self, mock_post):
        mock_post.return_value = _make_response(3)
        provider = ProviderConfig(
            name="rapid", base_url="https://judge0-ce.p.rapidapi.com", api_key="k", rapidapi_host="judge0-ce.p.rapidapi.com"
        )
        Judge0Executor().submit(provider, REQUEST)
        headers = mock_post.call_args.kwargs["headers"]
        assert headers["x-rapidapi-key"] == "k"
        assert headers["x-rapidapi-host"] == "judge0-ce.p.rapidapi.com"


class TestJudge0ErrorClassification:
    @pytest.mark.parametrize("http_status", [429, 500, 502, 503, 408])
    @patch("codegrade.executor_judge0.httpx.post")
    def test_retryable_statuses_are_transient(self, mock_post, http_status):
        mock_post.return_value = _make_response(http_status=http_status)
        with pytest.raises(ProviderTransientError) as exc:
            Judge0Executor().submit(PROVIDER, REQUEST)
        assert exc.value.status_code == http_status
        assert exc.value.provider == "primary"

    @patch("codegrade.executor_judge0.httpx.post")
    def test_client_error_is_request_error(self, mock_post):
        mock_post.return_value = _make_response(http_status=422)
        with pytest.raises(ProviderRequestError):
            Judge0Executor().submit(PROVIDER, REQUEST)

    @patch("codegrade.executor_judge0.httpx.post")
    def test_network_failure_is_transient(self, mock_post):
        mock_post.side_effect = httpx.ConnectError("refused")
        with pytest.raises(ProviderTransientError):
            Judge0Executor().submit(PROVIDER, REQUEST)

    @patch("codegrade.executor_judge0.httpx.post")
    def test_timeout_is_transient(self, mock_post):
        mock_post.side_effect = httpx.ReadTimeout("slow")
        with pytest.raises(ProviderTransientError, match="timed out"):
            Judge0Executor().submit(PROVIDER, REQUEST)

    @patch("codegrade.executor_judge0.httpx.post")
    def test_non_json_body_is_structural(self, mock_post):
        resp = MagicMock()
        resp.status_code = 200
        resp.json.side_effect = ValueError("not json")
        mock_post.return_value = resp
        with pytest.raises(ProviderStructuralError):
            Judge0Executor().submit(PROVIDER, REQUEST)

    @patch("codegrade.executor_judge0.httpx.post")
    def test_empty_body_is_structural(self, mock_post):
        resp = MagicMock()
        resp.status_code = 200
        resp.json.return_value = {}
        mock_post.return_value = resp
        with pytest.raises(ProviderStructuralError):
            Judge0Executor().submit(PROVIDER, REQUEST)


class TestJudge0PollFallback:
    @patch("codegrade.executor_judge0.httpx.get")
    @patch("codegrade.executor_judge0.httpx.post")
    def test_poll_when_not_ready(self, mock_post, mock_get):
        initial = MagicMock()
        initial.status_code = 201
        initial.json.return_value = {"token": "tok123", "status": {"id": 2, "description": "Processing"}}
        mock_post.return_value = initial
        mock_get.return_value = _make_response(3, stdout="done\n")

        executor = Judge0Executor(Judge0Config(poll_interval=0.0, max_poll_attempts=3))
        raw = executor.submit(PROVIDER, REQUEST)
        assert raw.payload["stdout"] == "done\n"
        mock_get.assert_called_once()
        assert "/submissions/tok123" in mock_get.call_args.args[0]

    @patch("codegrade.executor_judge0.httpx.get")
    @patch("codegrade.executor_judge0.httpx.post")
    def test_poll_gives_up(self, mock_post, mock_get):
        queued = MagicMock()
        queued.status_code = 201
        queued.json.return_value = {"token": "tok123", "status": {"id": 1, "description": "In Queue"}}
        mock_post.return_value = queued
        mock_get.return_value = queued

        executor = Judge0Executor(Judge0Config(poll_interval=0.0, max_poll_attempts=2))
        with pytest.raises(ProviderStructuralError):
            executor.submit(PROVIDER, REQUEST)
        assert mock_get.call_count == 2

    @pytest.mark.parametrize("body", [None, ["queued"], "busy"])
    @patch("codegrade.executor_judge0.httpx.get")
    @patch("codegrade.executor_judge0.httpx.post")
    def test_poll_non_object_body_is_structural(self, mock_post, mock_get, body):
        queued = MagicMock()
        queued.status_code = 201
        queued.json.return_value = {"token": "abc"}
        mock_post.return_value = queued
        polled = MagicMock()
        polled.status_code = 200
        polled.json.return_value = body
        mock_get.return_value = polled

        executor = Judge0Executor(Judge0Config(poll_interval=0.0, max_poll_attempts=3))
        with pytest.raises(ProviderStructuralError):
            executor.submit(PROVIDER, REQUEST)
        mock_get.assert_called_once()


class TestJudge0Metadata:
    @patch("codegrade.executor_judge0.httpx.get")
    def test_about(self, mock_get):
        resp = MagicMock()
        resp.status_code = 200
        resp.json.return_value = {"version": "1.13.0"}
        mock_get.return_value = resp
        assert Judge0Executor().about(PROVIDER) == {"version": "1.13.0"}
        assert mock_get.call_args.args[0] == "http://fake:2358/about"

    @patch("codegrade.executor_judge0.httpx.get")
    def test_languages_must_be_a_list(self, mock_get):
        resp = MagicMock()
        resp.status_code = 200
        resp.json.return_value = {"oops": True}
        mock_get.return_value = resp
        with pytest.raises(ProviderStructuralError):
            Judge0Executor().languages(PROVIDER)
