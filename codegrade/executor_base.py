"""Interfaces between the runner, the dispatcher and the provider clients."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from codegrade.models import ExecutionRequest, ExecutionResult
from codegrade.normalizer import Judge0Response, PistonResponse
from codegrade.provider_pool import ProviderConfig


@runtime_checkable
class CodeExecutor(Protocol):
    def execute(self, request: ExecutionRequest) -> ExecutionResult: ...


class PrimaryBackend(Protocol):
    """A provider family addressed through the pool (one config per call)."""

    family: str

    def submit(self, provider: ProviderConfig, request: ExecutionRequest) -> Judge0Response: ...

    def about(self, provider: ProviderConfig) -> dict: ...

    def languages(self, provider: ProviderConfig) -> list: ...


class FallbackBackend(Protocol):
    """A single, structurally different service tried after the pool."""

    family: str
    name: str

    def run(self, request: ExecutionRequest) -> PistonResponse: ...

    def health(self) -> dict: ...
