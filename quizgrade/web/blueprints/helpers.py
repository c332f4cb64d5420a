"""Shared utilities for QuizGrade blueprint modules."""

import functools
import logging

from flask import current_app, g, jsonify
from flask import session as flask_session

from quizgrade.classroom import is_class_owner
from quizgrade.database import get_session

logger = logging.getLogger(__name__)

TEACHER = "teacher"
STUDENT = "student"


def _get_session():
    """Get a database session from the shared app engine."""
    if "db_session" not in g:
        engine = current_app.config["DB_ENGINE"]
        g.db_session = get_session(engine)
    return g.db_session


def json_server_error(task_label, exception):
    """Log the full exception and return a generic JSON 500.

    Keeps SQL and file paths out of the response body.
    """
    logger.exception("%s failed: %s", task_label, exception)
    return jsonify({"error": f"{task_label} failed. Please try again."}), 500


def class_owner_error(class_obj):
    """403 response unless the signed-in teacher owns ``class_obj``, else None."""
    if is_class_owner(class_obj, g.current_user["id"]):
        return None
    logger.warning(
        "class_owner_error: teacher %s refused access to class %s", g.current_user["id"], class_obj.id
    )
    return jsonify({"error": "You do not teach this class"}), 403


def login_required(f):
    """Decorator to require an authenticated user.

    Sign-in happens with the external identity provider, which stores
    ``logged_in``, ``user_id`` and ``role`` in the Flask session.
    """

    @functools.wraps(f)
    def decorated_function(*args, **kwargs):
        if not flask_session.get("logged_in"):
            return jsonify({"error": "Authentication required"}), 401
        g.current_user = {
            "id": flask_session.get("user_id"),
            "role": flask_session.get("role", STUDENT),
        }
        return f(*args, **kwargs)

    return decorated_function


def teacher_required(f):
    """Decorator to restrict a route to teachers (implies login_required)."""

    @functools.wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if g.current_user["role"] != TEACHER:
            return jsonify({"error": "Teacher access required"}), 403
        return f(*args, **kwargs)

    return decorated_function
