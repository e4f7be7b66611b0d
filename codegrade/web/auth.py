"""Identity helpers: the student id arrives already validated from the auth layer."""

from __future__ import annotations

from functools import wraps

from flask import g, jsonify, request

STUDENT_HEADER = "X-Student-Id"


def get_current_student_id() -> str | None:
    """Return the authenticated student's ID, or None."""
    return g.get("student_id")


def student_required(f):
    """Decorator that rejects requests without a resolved student identity."""

    @wraps(f)
    def decorated(*args, **kwargs):
        student_id = request.headers.get(STUDENT_HEADER, "").strip()
        if not student_id:
            return jsonify({"success": False, "message": "Authentication required"}), 401
        g.student_id = student_id
        return f(*args, **kwargs)

    return decorated
