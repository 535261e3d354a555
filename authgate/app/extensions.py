"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy and marshmallow as module-level objects so they can be
imported anywhere without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` or `ma` from here wherever needed.

    from authgate.app.extensions import db, ma

Do not pass the app object directly to SQLAlchemy() or Marshmallow() at import
time — that would prevent running tests with a separate test app instance.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_marshmallow import Marshmallow

db = SQLAlchemy()

# Marshmallow instance: used for response serialisation only
# (see schemas/user_schema.py).
#
# IMPORTANT: schema inheritance rule:
#   Request validation schemas (schemas/auth_schema.py) inherit from
#   marshmallow.Schema directly, NOT from ma.Schema, so unit tests can load
#   them without a Flask application context.
ma = Marshmallow()

# Key under which the per-process auth runtime (settings, signer, CSRF guard,
# mailer) is stored in app.extensions.
AUTH_EXTENSION_KEY = "authgate"
