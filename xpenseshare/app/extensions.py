"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy and marshmallow as module-level objects so they can be
imported anywhere without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` or `ma` from here wherever needed.

Do not pass the app object directly to SQLAlchemy() or Marshmallow() at
import time — that would prevent running tests with a separate app instance.
"""

from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Marshmallow instance, available for model serialization helpers.
#
# Validation Schema classes in app/schemas/ inherit from marshmallow.Schema
# directly, NOT from ma.Schema: ma.Schema needs an active application
# context and the unit tests run without one.
ma = Marshmallow()


def ledger_store():
    """LedgerStore over the request's scoped session. Call inside a request."""
    from xpenseshare.app.store import LedgerStore
    return LedgerStore(db.session)
