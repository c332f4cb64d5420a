"""
Lesson posting for QuizGrade classes.

Teachers post lessons (a title, free-form content and reference links) to a
class; enrolled students read them alongside the class's quizzes. Lessons go
away with their class.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from quizgrade.database import Class, Lesson

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 10000


def clean_links(links: Optional[List[str]]) -> List[str]:
    """Trimmed http(s) links; blanks and other schemes are dropped."""
    cleaned = []
    for link in links or []:
        if not isinstance(link, str):
            continue
        link = link.strip()
        parsed = urlparse(link)
        if parsed.scheme.lower() in ("http", "https") and parsed.netloc:
            cleaned.append(link)
    return cleaned


def create_lesson(
    session: Session,
    class_id: int,
    title: str,
    content: str = "",
    links: Optional[List[str]] = None,
    created_by: Optional[str] = None,
) -> Lesson:
    """
    Post a lesson to a class.

    Args:
        session: SQLAlchemy session
        class_id: Class to post to
        title: Lesson title (required)
        content: Lesson body text
        links: Reference URLs; only http(s) links are kept
        created_by: user_id of the posting teacher

    Returns:
        The created Lesson

    Raises:
        ValueError: If the class is unknown, the title is blank, or a field
            is too long
    """
    if session.query(Class).filter_by(id=class_id).first() is None:
        raise ValueError(f"Class with id {class_id} not found.")
    title = (title or "").strip()
    if not title:
        raise ValueError("Lesson title is required.")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValueError(f"Lesson title must be at most {MAX_TITLE_LENGTH} characters.")
    content = (content or "").strip()
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValueError(f"Lesson content must be at most {MAX_CONTENT_LENGTH} characters.")

    lesson = Lesson(
        class_id=class_id,
        title=title,
        content=content,
        links=clean_links(links),
        created_by=str(created_by) if created_by is not None else None,
    )
    session.add(lesson)
    session.commit()
    logger.info("create_lesson: lesson %s posted to class %s", lesson.id, class_id)
    return lesson


def get_lesson(session: Session, lesson_id: int) -> Optional[Lesson]:
    return session.query(Lesson).filter_by(id=lesson_id).first()


def list_lessons(session: Session, class_id: int) -> List[Lesson]:
    """Lessons for a class, oldest first."""
    return (
        session.query(Lesson)
        .filter(Lesson.class_id == class_id)
        .order_by(Lesson.created_at, Lesson.id)
        .all()
    )


def delete_lesson(session: Session, lesson_id: int) -> bool:
    """
    Delete a single lesson by ID.

    Returns:
        True if the lesson was found and deleted, False otherwise
    """
    lesson = get_lesson(session, lesson_id)
    if lesson is None:
        return False
    session.delete(lesson)
    session.commit()
    return True


def lesson_to_dict(lesson: Lesson) -> Dict[str, Any]:
    return {
        "id": lesson.id,
        "class_id": lesson.class_id,
        "title": lesson.title,
        "content": lesson.content or "",
        "links": list(lesson.links or []),
        "created_at": lesson.created_at.isoformat() if lesson.created_at else None,
    }
