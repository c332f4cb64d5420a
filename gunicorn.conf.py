"""Gunicorn configuration for the QuizGrade web API.

Run with: gunicorn "quizgrade.web.app:create_app()"
"""

bind = "0.0.0.0:8000"
workers = 2  # Keep low for SQLite (avoids write contention)
timeout = 60
accesslog = "-"
errorlog = "-"
loglevel = "info"
