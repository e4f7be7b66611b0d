"""Map provider-native responses onto the canonical ExecutionResult.

Each provider family has its own raw response wrapper and its own pure
normalizer. ``normalize`` dispatches on the wrapper type, never on the shape
of the payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Union

from codegrade.models import ExecutionResult, StatusCode

# Judge0 status ids
_JUDGE0_IN_QUEUE = 1
_JUDGE0_PROCESSING = 2
_JUDGE0_ACCEPTED = 3
_JUDGE0_WRONG_ANSWER = 4
_JUDGE0_TLE = 5
_JUDGE0_COMPILATION_ERROR = 6
_JUDGE0_RUNTIME_ERRORS = range(7, 13)  # SIGSEGV, SIGXFSZ, SIGFPE, SIGABRT, NZEC, other

JUDGE0_PENDING_STATUSES = (_JUDGE0_IN_QUEUE, _JUDGE0_PROCESSING)

# Exit code used by `timeout(1)`, which Piston runtimes report on a time limit kill.
_PISTON_TIMEOUT_EXIT = 124


@dataclass(frozen=True)
class Judge0Response:
    payload: dict = field(default_factory=dict)
    provider: str = ""


@dataclass(frozen=True)
class PistonResponse:
    payload: dict = field(default_factory=dict)
    provider: str = "piston"


RawProviderResponse = Union[Judge0Response, PistonResponse]


def _text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _number(value, scale: float = 1.0) -> float:
    try:
        return float(value) * scale
    except (TypeError, ValueError):
        return 0.0


def has_execution_fields(payload) -> bool:
    """A usable response carries at least one of stdout, stderr or status."""
    return isinstance(payload, dict) and any(key in payload for key in ("stdout", "stderr", "status"))


def judge0_status_id(payload) -> int | None:
    if not isinstance(payload, dict):
        return None
    status = payload.get("status")
    if not isinstance(status, dict):
        return None
    try:
        return int(status.get("id"))
    except (TypeError, ValueError):
        return None


def normalize_judge0(raw: Judge0Response) -> ExecutionResult:
    data = raw.payload if isinstance(raw.payload, dict) else {}
    status_id = judge0_status_id(data)
    stdout = _text(data.get("stdout"))
    stderr = _text(data.get("stderr"))

    if status_id == _JUDGE0_ACCEPTED:
        status = StatusCode.ACCEPTED
    elif status_id == _JUDGE0_WRONG_ANSWER:
        status = StatusCode.WRONG_ANSWER
    elif status_id == _JUDGE0_TLE:
        status = StatusCode.TIME_LIMIT_EXCEEDED
    elif status_id == _JUDGE0_COMPILATION_ERROR:
        status = StatusCode.COMPILE_ERROR
        stderr = stderr or _text(data.get("compile_output"))
    elif status_id in _JUDGE0_RUNTIME_ERRORS:
        status = StatusCode.RUNTIME_ERROR
    else:
        status = StatusCode.SERVICE_ERROR

    if status is not StatusCode.ACCEPTED and not stderr:
        description = data.get("status", {}).get("description") if isinstance(data.get("status"), dict) else None
        stderr = _text(data.get("message")) or _text(description)

    return ExecutionResult(
        stdout=stdout,
        stderr=stderr,
        status=status,
        wall_time_ms=_number(data.get("time"), 1000.0),
        memory_kb=int(_number(data.get("memory"))),
        provider=raw.provider,
    )


def normalize_piston(raw: PistonResponse) -> ExecutionResult:
    data = raw.payload if isinstance(raw.payload, dict) else {}
    run = data.get("run") if isinstance(data.get("run"), dict) else None
    compile_stage = data.get("compile") if isinstance(data.get("compile"), dict) else None

    if compile_stage is not None and compile_stage.get("code") not in (0, None):
        return ExecutionResult(
            stdout="",
            stderr=_text(compile_stage.get("stderr")) or _text(compile_stage.get("output")),
            status=StatusCode.COMPILE_ERROR,
            provider=raw.provider,
        )

    if run is None:
        return ExecutionResult(
            stdout="",
            stderr=_text(data.get("message")),
            status=StatusCode.SERVICE_ERROR,
            provider=raw.provider,
        )

    code = run.get("code")
    if run.get("signal") == "SIGKILL" or code == _PISTON_TIMEOUT_EXIT:
        status = StatusCode.TIME_LIMIT_EXCEEDED
    elif code == 0:
        status = StatusCode.ACCEPTED
    else:
        status = StatusCode.RUNTIME_ERROR

    if run.get("wall_time") is not None:
        wall_time_ms = _number(run.get("wall_time"))
    else:
        wall_time_ms = _number(run.get("time"), 1000.0)

    return ExecutionResult(
        stdout=_text(run.get("stdout")),
        stderr=_text(run.get("stderr")),
        status=status,
        wall_time_ms=wall_time_ms,
        memory_kb=int(_number(run.get("memory")) / 1024),
        provider=raw.provider,
    )


_NORMALIZERS: dict[type, Callable[..., ExecutionResult]] = {
    Judge0Response: normalize_judge0,
    PistonResponse: normalize_piston,
}


def normalize(raw: RawProviderResponse) -> ExecutionResult:
    try:
        normalizer = _NORMALIZERS[type(raw)]
    except KeyError:
        raise TypeError(f"No normalizer registered for {type(raw).__name__}") from None
    return normalizer(raw)
