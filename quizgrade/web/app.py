"""
Flask application factory for the QuizGrade web API.

Identity comes from the external sign-in provider, which places
``logged_in``, ``user_id`` and ``role`` in the Flask session; this app only
reads them (see ``blueprints.helpers``).
"""

import logging
import os
import secrets

from flask import Flask, g
from flask_wtf.csrf import CSRFProtect

from quizgrade.config import configure_logging, load_config
from quizgrade.database import get_engine, init_db
from quizgrade.web.blueprints import register_blueprints

logger = logging.getLogger(__name__)

csrf = CSRFProtect()


def _secret_key(config):
    """SECRET_KEY from the environment or web.secret_key; never a static default."""
    key = os.environ.get("SECRET_KEY") or (config.get("web") or {}).get("secret_key")
    if key:
        return key
    logger.warning("create_app: SECRET_KEY not set, sessions will not survive a restart")
    return secrets.token_hex(32)


def _create_engine(config):
    """One engine for the app lifetime. DATABASE_URL wins over the SQLite path."""
    if os.environ.get("DATABASE_PATH"):
        config.setdefault("paths", {})["database_file"] = os.environ["DATABASE_PATH"]
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        engine = get_engine(url=database_url)
    else:
        engine = get_engine(config.get("paths", {}).get("database_file", "quizgrade.db"))
    init_db(engine)
    return engine


def create_app(config=None):
    """
    Create and configure the Flask application.

    Args:
        config: Application config dict (paths, grading defaults, logging).
                If None, loads from config.yaml.

    Returns:
        Configured Flask app instance
    """
    if config is None:
        config = load_config("config.yaml")
    configure_logging(config)

    app = Flask(__name__)
    app.config.update(
        APP_CONFIG=config,
        SECRET_KEY=_secret_key(config),
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=bool(os.environ.get("FLASK_HTTPS")),
    )

    # Test fixtures switch this off with WTF_CSRF_ENABLED = False
    csrf.init_app(app)

    app.config["DB_ENGINE"] = _create_engine(config)

    @app.teardown_appcontext
    def release_request_session(exception):
        session = g.pop("db_session", None)
        if session is not None:
            session.close()

    register_blueprints(app)
    logger.info("create_app: QuizGrade API ready")
    return app
