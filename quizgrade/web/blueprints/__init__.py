"""Flask blueprints for the QuizGrade web API."""

from quizgrade.web.blueprints.classes import classes_bp
from quizgrade.web.blueprints.grading import grading_bp


def register_blueprints(app):
    """Register all blueprint modules on the Flask app."""
    app.register_blueprint(classes_bp)
    app.register_blueprint(grading_bp)
