"""Factory for building the failover dispatcher from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from codegrade.dispatcher import FailoverDispatcher
from codegrade.executor_judge0 import Judge0Config, Judge0Executor
from codegrade.executor_piston import PistonExecutor
from codegrade.provider_pool import ProviderPool

if TYPE_CHECKING:
    from codegrade.config import Config


def create_dispatcher(config: Config) -> FailoverDispatcher:
    """Create the Judge0 pool dispatcher, with Piston behind it unless disabled."""
    primary = Judge0Executor(
        Judge0Config(
            timeout=config.request_timeout,
            poll_interval=config.poll_interval,
            max_poll_attempts=config.max_poll_attempts,
        )
    )
    fallback = None
    if config.piston_url:
        fallback = PistonExecutor(base_url=config.piston_url, timeout=config.fallback_timeout)
    return FailoverDispatcher(
        pool=ProviderPool(config.providers),
        primary=primary,
        fallback=fallback,
        failover_on_request_error=config.failover_on_request_error,
    )
