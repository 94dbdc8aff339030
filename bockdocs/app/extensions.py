"""
extensions.py — Process-scoped collaborators.

Creates SQLAlchemy, marshmallow, the email dispatcher and the Google identity
verifier as module-level objects so they can be imported anywhere without
creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Routes import `db` from here. The mailer and identity verifier register
       themselves on app.extensions during init_app, and routes fetch them
       from current_app.extensions so tests can swap in fakes. Either way
       they reach services as plain arguments; services never import this
       module.

Do not pass the app object directly to any of these at import time — that
would prevent running tests with a separate test app instance.
"""

from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

from bockdocs.app.services.email_service import EmailDispatcher
from bockdocs.app.services.identity_service import IdentityVerifier

db = SQLAlchemy()

# Marshmallow instance — available for SQLAlchemy model serialization helpers.
#
# IMPORTANT — schema inheritance rule:
#   All validation Schema classes (in app/schemas/) must inherit from
#   marshmallow.Schema directly, NOT from ma.Schema.
#
#   Reason: ma.Schema requires an active Flask application context. Unit tests
#   in tests/unit/ run without a Flask app.
ma = Marshmallow()

# SMTP delivery for password-reset and share notifications.
mailer = EmailDispatcher()

# Google ID-token / access-token verification.
identity_verifier = IdentityVerifier()
