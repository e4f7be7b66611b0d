"""Central mapping from codegrade exceptions to JSON error responses."""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from codegrade.errors import AllProvidersExhausted, QuestionNotFoundError, SessionStateError, TestNotFoundError

logger = logging.getLogger(__name__)


def _error(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(SessionStateError)
    def session_state(e: SessionStateError):
        return _error(e.reason, 409)

    @app.errorhandler(TestNotFoundError)
    @app.errorhandler(QuestionNotFoundError)
    def not_found(e):
        return _error(str(e), 404)

    @app.errorhandler(AllProvidersExhausted)
    def providers_down(e: AllProvidersExhausted):
        logger.error("Execution providers unavailable: %s", e.last_error)
        return _error("Code execution service unavailable", 503)

    @app.errorhandler(ValueError)
    def bad_request(e: ValueError):
        return _error(str(e), 400)

    @app.errorhandler(Exception)
    def unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return _error(e.description or e.name, e.code or 500)
        logger.exception("Unexpected error")
        return _error("Server error", 500)
