"""
Tests for quizgrade/lessons.py -- posting, listing and deleting lessons.
"""

import pytest

from quizgrade.classroom import create_class, list_classes
from quizgrade.lessons import (
    MAX_TITLE_LENGTH,
    clean_links,
    create_lesson,
    delete_lesson,
    get_lesson,
    lesson_to_dict,
    list_lessons,
)


class TestCreateLesson:
    def test_create_and_convert(self, db_session):
        session, _ = db_session
        cls = create_class(session, "Biology")
        lesson = create_lesson(
            session,
            cls.id,
            "  Cell Structure ",
            content="Organelles and membranes.",
            links=["https://example.com/cells"],
            created_by=1000,
        )

        data = lesson_to_dict(lesson)
        assert data["title"] == "Cell Structure"
        assert data["content"] == "Organelles and membranes."
        assert data["links"] == ["https://example.com/cells"]
        assert data["class_id"] == cls.id
        assert data["created_at"]
        assert lesson.created_by == "1000"

    def test_title_required(self, db_session):
        session, _ = db_session
        cls = create_class(session, "Biology")
        with pytest.raises(ValueError, match="title is required"):
            create_lesson(session, cls.id, "   ")

    def test_title_too_long(self, db_session):
        session, _ = db_session
        cls = create_class(session, "Biology")
        with pytest.raises(ValueError, match="at most"):
            create_lesson(session, cls.id, "x" * (MAX_TITLE_LENGTH + 1))

    def test_unknown_class(self, db_session):
        session, _ = db_session
        with pytest.raises(ValueError, match="not found"):
            create_lesson(session, 404, "Orphan")

    def test_counted_per_class(self, db_session):
        session, _ = db_session
        cls = create_class(session, "Biology")
        create_lesson(session, cls.id, "One")
        create_lesson(session, cls.id, "Two")
        assert list_classes(session)[0]["lesson_count"] == 2


class TestCleanLinks:
    def test_keeps_http_and_https(self):
        assert clean_links([" http://a.example/x ", "HTTPS://b.example"]) == [
            "http://a.example/x",
            "HTTPS://b.example",
        ]

    @pytest.mark.parametrize("link", ["", "   ", "javascript:alert(1)", "data:text/html,hi", "ftp://x.example", "https://"])
    def test_drops_other_schemes_and_blanks(self, link):
        assert clean_links([link]) == []

    def test_none(self):
        assert clean_links(None) == []


class TestListAndDelete:
    def test_list_oldest_first_and_scoped(self, db_session):
        session, _ = db_session
        bio = create_class(session, "Biology")
        chem = create_class(session, "Chemistry")
        first = create_lesson(session, bio.id, "First")
        second = create_lesson(session, bio.id, "Second")
        create_lesson(session, chem.id, "Elsewhere")

        assert [lesson.id for lesson in list_lessons(session, bio.id)] == [first.id, second.id]

    def test_delete(self, db_session):
        session, _ = db_session
        cls = create_class(session, "Biology")
        lesson = create_lesson(session, cls.id, "Gone soon")
        assert delete_lesson(session, lesson.id) is True
        assert get_lesson(session, lesson.id) is None
        assert delete_lesson(session, lesson.id) is False
