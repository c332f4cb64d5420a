"""
Shared pytest fixtures for QuizGrade tests.

Fixture summary
---------------
Database:
    db_path              -- temp .db file path with cleanup
    db_session           -- (session, db_path) tuple with tables created

Config:
    mock_config          -- config dict pointing at the temp database

Data builders:
    mc_question          -- dict for a 1-point multiple-choice question
    free_text_question   -- dict for a 1-point free-text question
    seeded_class         -- factory: class + enrolled students + one quiz

Flask:
    flask_app            -- Flask app on a seeded temp database
    teacher_client       -- test client for the teacher who owns the seeded class
    other_teacher_client -- test client for a teacher who owns no classes
    student_client       -- factory for test clients with a student identity
    anon_client          -- unauthenticated test client
"""

import os
import tempfile
from datetime import datetime

import pytest

from quizgrade.classroom import create_class, create_student, join_class
from quizgrade.database import get_engine, get_session, init_db
from quizgrade.quizzes import create_quiz

TEACHER_ID = 1000
OTHER_TEACHER_ID = 2000

# ---------------------------------------------------------------------------
# Core database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path():
    """Provide a temporary database file path with cleanup."""
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    yield tmp.name
    try:
        if os.path.exists(tmp.name):
            os.remove(tmp.name)
    except OSError:
        pass  # Windows may still hold the lock


@pytest.fixture
def db_session(db_path):
    """Provide an initialized SQLAlchemy session bound to a temp DB.

    Yields a ``(session, db_path)`` tuple.
    """
    engine = get_engine(db_path)
    init_db(engine)
    session = get_session(engine)
    yield session, db_path
    session.close()
    engine.dispose()


@pytest.fixture
def mock_config(db_session):
    """Config dict suitable for CLI handlers and create_app()."""
    _, path = db_session
    return {
        "paths": {"database_file": path},
        "grading": {"default_scale": "traditional", "passing_grade": 70},
        "logging": {"level": "WARNING"},
    }


# ---------------------------------------------------------------------------
# Data builder fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mc_question():
    return {
        "type": "multiple-choice",
        "text": "Which planet is closest to the sun?",
        "options": ["Venus", "Mercury", "Mars"],
        "correct_index": 1,
        "points": 1,
    }


@pytest.fixture
def free_text_question():
    return {
        "type": "free-text",
        "text": "What is the capital of France?",
        "correct_answer": "Paris",
        "points": 1,
    }


@pytest.fixture
def seeded_class(mc_question, free_text_question):
    """Factory fixture: a class with enrolled students and one quiz.

    Returns a callable
    ``create(session, student_names=(...), teacher_id=None, **quiz_overrides)``
    that returns a dict with ``class``, ``students`` and ``quiz``.  The quiz
    has a 1-point multiple-choice question and a 3-point free-text question.

    Usage::

        def test_example(db_session, seeded_class):
            session, _ = db_session
            data = seeded_class(session)
            assert len(data["students"]) == 2
    """

    def _create(session, student_names=("Ada Lovelace", "Grace Hopper"), teacher_id=None, **quiz_overrides):
        cls = create_class(session, "Period 1 Science", subject="Science", teacher_id=teacher_id)
        students = []
        for i, name in enumerate(student_names):
            student = create_student(session, name, email=f"student{cls.id}_{i}@example.com")
            join_class(session, cls.join_code, student.id)
            students.append(student)

        quiz_args = {
            "title": "Unit 1 Check",
            "questions": [mc_question, dict(free_text_question, points=3)],
            "deadline": None,
            "grading_scale": "traditional",
            "passing_grade": 70,
        }
        quiz_args.update(quiz_overrides)
        quiz = create_quiz(session, cls.id, **quiz_args)
        return {"class": cls, "students": students, "quiz": quiz}

    return _create


# ---------------------------------------------------------------------------
# Flask fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def flask_app(db_session, mock_config, seeded_class):
    """Flask app over a seeded temp database (CSRF disabled)."""
    from quizgrade.web.app import create_app

    session, _ = db_session
    seeded = seeded_class(session, teacher_id=TEACHER_ID, deadline=datetime(2999, 1, 1))
    app = create_app(mock_config)
    app.config["TESTING"] = True
    app.config["WTF_CSRF_ENABLED"] = False
    app.config["SEEDED"] = {
        "class_id": seeded["class"].id,
        "teacher_id": TEACHER_ID,
        "quiz_id": seeded["quiz"].id,
        "student_ids": [s.id for s in seeded["students"]],
    }
    yield app
    app.config["DB_ENGINE"].dispose()


@pytest.fixture
def teacher_client(flask_app):
    c = flask_app.test_client()
    with c.session_transaction() as sess:
        sess["logged_in"] = True
        sess["user_id"] = TEACHER_ID
        sess["role"] = "teacher"
    return c


@pytest.fixture
def other_teacher_client(flask_app):
    c = flask_app.test_client()
    with c.session_transaction() as sess:
        sess["logged_in"] = True
        sess["user_id"] = OTHER_TEACHER_ID
        sess["role"] = "teacher"
    return c


@pytest.fixture
def student_client(flask_app):
    """Factory: ``student_client(student_id)`` returns a logged-in client."""

    def _make(student_id):
        c = flask_app.test_client()
        with c.session_transaction() as sess:
            sess["logged_in"] = True
            sess["user_id"] = student_id
            sess["role"] = "student"
        return c

    return _make


@pytest.fixture
def anon_client(flask_app):
    return flask_app.test_client()
