"""Composition root: one pool, dispatcher, runner and grader per process."""

from __future__ import annotations

import sqlite3
from typing import Callable

from codegrade.config import Config
from codegrade.dispatcher import FailoverDispatcher
from codegrade.executor_factory import create_dispatcher
from codegrade.grader import SubmissionGrader
from codegrade.runner import TestCaseRunner
from codegrade.sessions import SessionManager, utcnow
from codegrade.store import Store


class Orchestrator:
    def __init__(
        self,
        config: Config,
        dispatcher: FailoverDispatcher | None = None,
        sleep: Callable[[float], None] | None = None,
        clock=utcnow,
    ) -> None:
        self.config = config
        self.dispatcher = dispatcher or create_dispatcher(config)
        runner_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.runner = TestCaseRunner(self.dispatcher, case_delay=config.case_delay, **runner_kwargs)
        self.grader = SubmissionGrader(self.runner)
        self._clock = clock

    def sessions(self, conn: sqlite3.Connection) -> SessionManager:
        return SessionManager(Store(conn), clock=self._clock)
