"""Lifecycle of a student's attempt at one coding test.

pending -> in_progress -> completed
                       -> expired_auto_submitted

Terminal states are final. At most one session exists per (student, test),
so at most one is ever active; the store's unique index is the authority.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from codegrade.errors import SessionStateError
from codegrade.models import CodingSession, CodingTest, SessionState, Submission
from codegrade.store import Store

logger = logging.getLogger(__name__)

AUTO_SUBMIT_COMMENT = "\n[Auto-submitted due to time expiry on resume attempt]"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ResumeCheck:
    can_resume: bool
    session: CodingSession | None = None
    auto_submitted: bool = False
    reason: str = ""


class SessionManager:
    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self._clock = clock

    def get(self, student_id: str, test_id: str) -> CodingSession | None:
        return self.store.latest_session(student_id, test_id)

    def start(self, student_id: str, test: CodingTest) -> CodingSession:
        existing = self.store.latest_session(student_id, test.id)
        if existing is not None:
            if existing.is_terminal or self._expire_if_elapsed(existing, test):
                raise SessionStateError(SessionStateError.ALREADY_COMPLETED)
            raise SessionStateError(SessionStateError.ALREADY_IN_PROGRESS)

        session = self.store.insert_session(
            CodingSession(
                student_id=student_id,
                test_id=test.id,
                state=SessionState.IN_PROGRESS,
                started_at=self._clock(),
            )
        )
        logger.info("Started session %s for student %s on test %s", session.id, student_id, test.id)
        return session

    def check_resume(self, student_id: str, test: CodingTest) -> ResumeCheck:
        session = self.store.latest_session(student_id, test.id)
        if session is None:
            return ResumeCheck(can_resume=False)
        if session.is_terminal:
            return ResumeCheck(can_resume=False, session=session, reason=SessionStateError.ALREADY_COMPLETED)
        if self._expire_if_elapsed(session, test):
            return ResumeCheck(
                can_resume=False,
                session=self.store.latest_session(student_id, test.id),
                auto_submitted=True,
                reason=SessionStateError.ALREADY_COMPLETED,
            )
        return ResumeCheck(can_resume=True, session=session)

    def ensure_submittable(self, student_id: str, test_id: str) -> None:
        session = self.store.latest_session(student_id, test_id)
        if session is not None and session.is_terminal:
            raise SessionStateError(SessionStateError.ALREADY_COMPLETED)

    def complete(self, student_id: str, test: CodingTest, submission: Submission) -> CodingSession:
        """Persist a graded submission and close the session."""
        now = self._clock()
        document = submission.to_dict(reveal_hidden=True)
        session = self.store.latest_session(student_id, test.id)

        if session is None:
            session = self.store.insert_session(
                CodingSession(
                    student_id=student_id,
                    test_id=test.id,
                    state=SessionState.COMPLETED,
                    started_at=now,
                    submitted_at=now,
                    submission=document,
                )
            )
            logger.info("Recorded submission for student %s on test %s without a started session", student_id, test.id)
            return session

        if session.is_terminal or not self.store.finish_session(
            session.id, SessionState.COMPLETED, now, submission=document
        ):
            raise SessionStateError(SessionStateError.ALREADY_COMPLETED)

        logger.info("Completed session %s for student %s on test %s", session.id, student_id, test.id)
        return self.store.latest_session(student_id, test.id)

    def _expire_if_elapsed(self, session: CodingSession, test: CodingTest) -> bool:
        """Auto-submit an active session whose timer ran out.

        The write happens before the caller rejects the request, so a second
        check sees a terminal session and never repeats it.
        """
        deadline = session.deadline(test)
        if deadline is None or self._clock() < deadline:
            return False
        finished = self.store.finish_session(
            session.id,
            SessionState.EXPIRED_AUTO_SUBMITTED,
            self._clock(),
            comment=AUTO_SUBMIT_COMMENT,
        )
        if finished:
            logger.info("Auto-submitted session %s (timer expired at %s)", session.id, deadline.isoformat())
        return True
