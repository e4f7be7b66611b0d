"""SQLite-backed persistence for coding tests and sessions."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path

from codegrade.errors import SessionStateError, TestNotFoundError
from codegrade.models import ACTIVE_STATES, CodingSession, CodingTest, SessionState

SCHEMA = """
CREATE TABLE IF NOT EXISTS coding_tests (
    id TEXT PRIMARY KEY,
    document_json TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    student_id TEXT NOT NULL,
    test_id TEXT NOT NULL,
    state TEXT NOT NULL,
    started_at TEXT,
    submitted_at TEXT,
    admin_comments TEXT NOT NULL DEFAULT '',
    submission_json TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- One attempt per (student, test), whatever its state.
CREATE UNIQUE INDEX IF NOT EXISTS sessions_one_attempt
    ON sessions (student_id, test_id);

CREATE INDEX IF NOT EXISTS sessions_by_student_test
    ON sessions (student_id, test_id, id);
"""

_ACTIVE_SQL = ", ".join(f"'{s.value}'" for s in ACTIVE_STATES)


def connect(path: str | Path) -> sqlite3.Connection:
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA)
    conn.commit()


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _session_from_row(row: sqlite3.Row) -> CodingSession:
    return CodingSession(
        id=row["id"],
        student_id=row["student_id"],
        test_id=row["test_id"],
        state=SessionState(row["state"]),
        started_at=_parse(row["started_at"]),
        submitted_at=_parse(row["submitted_at"]),
        admin_comments=row["admin_comments"] or "",
        submission=json.loads(row["submission_json"]) if row["submission_json"] else None,
    )


class Store:
    """Persistence collaborator: tests are documents, sessions are rows."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # -- tests ---------------------------------------------------------------

    def save_test(self, document: dict) -> CodingTest:
        test = CodingTest.from_dict(document)
        self.conn.execute(
            "INSERT OR REPLACE INTO coding_tests (id, document_json) VALUES (?, ?)",
            (test.id, json.dumps(document)),
        )
        self.conn.commit()
        return test

    def get_test(self, test_id: str) -> CodingTest:
        row = self.conn.execute("SELECT document_json FROM coding_tests WHERE id = ?", (test_id,)).fetchone()
        if row is None:
            raise TestNotFoundError(f"Test {test_id} not found")
        return CodingTest.from_dict(json.loads(row["document_json"]))

    # -- sessions ------------------------------------------------------------

    def latest_session(self, student_id: str, test_id: str) -> CodingSession | None:
        row = self.conn.execute(
            "SELECT * FROM sessions WHERE student_id = ? AND test_id = ? ORDER BY id DESC LIMIT 1",
            (student_id, test_id),
        ).fetchone()
        return _session_from_row(row) if row else None

    def insert_session(self, session: CodingSession) -> CodingSession:
        """Insert a session; a second one for the same (student, test) is rejected."""
        try:
            cursor = self.conn.execute(
                """INSERT INTO sessions
                   (student_id, test_id, state, started_at, submitted_at, admin_comments, submission_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    session.student_id,
                    session.test_id,
                    session.state.value,
                    _iso(session.started_at),
                    _iso(session.submitted_at),
                    session.admin_comments,
                    json.dumps(session.submission) if session.submission is not None else None,
                ),
            )
            self.conn.commit()
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            existing = self.latest_session(session.student_id, session.test_id)
            if existing is not None and existing.is_terminal:
                raise SessionStateError(SessionStateError.ALREADY_COMPLETED) from e
            raise SessionStateError(SessionStateError.ALREADY_IN_PROGRESS) from e
        session.id = cursor.lastrowid
        return session

    def finish_session(
        self,
        session_id: int,
        state: SessionState,
        submitted_at: datetime,
        comment: str = "",
        submission: dict | None = None,
    ) -> bool:
        """Move an active session to a terminal state.

        Returns False when the session was no longer active, which means
        another request already finished it.
        """
        cursor = self.conn.execute(
            f"""UPDATE sessions
                SET state = ?,
                    submitted_at = ?,
                    admin_comments = admin_comments || ?,
                    submission_json = COALESCE(?, submission_json)
                WHERE id = ? AND state IN ({_ACTIVE_SQL}) AND submitted_at IS NULL""",
            (
                state.value,
                _iso(submitted_at),
                comment,
                json.dumps(submission) if submission is not None else None,
                session_id,
            ),
        )
        self.conn.commit()
        return cursor.rowcount == 1
