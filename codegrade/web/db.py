"""Per-request SQLite connection helpers for the codegrade web app."""

from __future__ import annotations

import sqlite3

from flask import current_app, g

from codegrade.store import Store, connect, init_schema


def get_db() -> sqlite3.Connection:
    """Return a per-request database connection stored on Flask *g*."""
    if "db" not in g:
        g.db = connect(current_app.config["DATABASE"])
    return g.db


def get_store() -> Store:
    return Store(get_db())


def close_db(exc=None):
    """Close the database connection at the end of a request."""
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db():
    """Create tables and indexes if they don't exist."""
    init_schema(get_db())
