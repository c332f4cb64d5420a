"""
Class roster module for QuizGrade.

Provides CRUD operations for classes and students, join-code enrollment,
and active class switching.
"""

import logging
import secrets
import string
from typing import List, Optional

import yaml
from sqlalchemy.orm import Session

from quizgrade.config import save_config
from quizgrade.database import Class, Enrollment, Quiz, QuizResult, Student

logger = logging.getLogger(__name__)

JOIN_CODE_LENGTH = 6
JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_join_code(session: Session) -> str:
    """Generate a join code not used by any existing class."""
    while True:
        code = "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))
        if session.query(Class).filter_by(join_code=code).first() is None:
            return code


def create_class(
    session: Session,
    name: str,
    subject: Optional[str] = None,
    teacher_id: Optional[str] = None,
) -> Class:
    """
    Create a new Class record with a fresh join code.

    Args:
        session: SQLAlchemy session
        name: Class name (required)
        subject: Subject area (e.g., "Science")
        teacher_id: Identity-provider user_id of the owning teacher

    Returns:
        The created Class object with its assigned ID

    Raises:
        ValueError: If the name is empty
    """
    if not name or not name.strip():
        raise ValueError("Class name is required.")
    new_class = Class(
        name=name.strip(),
        subject=subject,
        teacher_id=str(teacher_id) if teacher_id is not None else None,
        join_code=generate_join_code(session),
    )
    session.add(new_class)
    session.commit()
    return new_class


def get_class(session: Session, class_id: int) -> Optional[Class]:
    """Fetch a single class by ID, or None if not found."""
    return session.query(Class).filter_by(id=class_id).first()


def is_class_owner(class_obj: Class, teacher_id) -> bool:
    """True when the class belongs to this teacher; unowned classes belong to nobody."""
    return class_obj.teacher_id is not None and class_obj.teacher_id == str(teacher_id)


def list_classes(session: Session, teacher_id: Optional[str] = None) -> List[dict]:
    """
    Query classes with student, quiz and lesson counts.

    Args:
        session: SQLAlchemy session
        teacher_id: If given, only classes owned by this teacher

    Returns:
        List of dicts with class info plus student_count, quiz_count and
        lesson_count
    """
    query = session.query(Class)
    if teacher_id is not None:
        query = query.filter(Class.teacher_id == str(teacher_id))
    classes = query.order_by(Class.id).all()
    result = []
    for cls in classes:
        student_count = session.query(Enrollment).filter_by(class_id=cls.id).count()
        quiz_count = session.query(Quiz).filter_by(class_id=cls.id).count()
        result.append(
            {
                "id": cls.id,
                "name": cls.name,
                "subject": cls.subject,
                "join_code": cls.join_code,
                "teacher_id": cls.teacher_id,
                "student_count": student_count,
                "quiz_count": quiz_count,
                "lesson_count": len(cls.lessons),
                "created_at": cls.created_at,
            }
        )
    return result


def update_class(
    session: Session,
    class_id: int,
    name: Optional[str] = None,
    subject: Optional[str] = None,
) -> Optional[Class]:
    """
    Rename a class or change its subject; None leaves a field as is.

    The join code never changes, so students already holding it can still
    join.

    Returns:
        The Class, or None if no class has that ID

    Raises:
        ValueError: If the new name is blank
    """
    target = get_class(session, class_id)
    if target is None:
        return None
    if name is not None:
        if not name.strip():
            raise ValueError("Class name is required.")
        target.name = name.strip()
    if subject is not None:
        target.subject = subject or None
    session.commit()
    return target


def delete_class(session: Session, class_id: int) -> bool:
    """Remove a class; enrollments, quizzes, questions and results go with it."""
    target = get_class(session, class_id)
    if target is None:
        return False
    session.delete(target)
    session.commit()
    logger.info("delete_class: class %s deleted", class_id)
    return True


# ---------------------------------------------------------------------------
# Students and enrollment
# ---------------------------------------------------------------------------


def create_student(session: Session, full_name: str, email: Optional[str] = None) -> Student:
    """Create a student record.

    Raises:
        ValueError: If the name is empty or the email is already registered
    """
    if not full_name or not full_name.strip():
        raise ValueError("Student name is required.")
    if email and session.query(Student).filter_by(email=email).first() is not None:
        raise ValueError(f"A student with email {email} already exists.")
    student = Student(full_name=full_name.strip(), email=email or None)
    session.add(student)
    session.commit()
    return student


def get_student(session: Session, student_id: int) -> Optional[Student]:
    """Fetch a single student by ID, or None if not found."""
    return session.query(Student).filter_by(id=student_id).first()


def join_class(session: Session, join_code: str, student_id: int) -> Class:
    """
    Enroll a student in the class identified by a join code.

    Joining a class the student is already in is a no-op.

    Raises:
        ValueError: If the code or the student is unknown
    """
    code = (join_code or "").strip().upper()
    class_obj = session.query(Class).filter_by(join_code=code).first()
    if class_obj is None:
        raise ValueError(f"No class found for join code '{code}'.")
    if get_student(session, student_id) is None:
        raise ValueError(f"Student with id {student_id} not found.")

    existing = session.query(Enrollment).filter_by(class_id=class_obj.id, student_id=student_id).first()
    if existing is None:
        session.add(Enrollment(class_id=class_obj.id, student_id=student_id))
        session.commit()
        logger.info("join_class: student %s joined class %s", student_id, class_obj.id)
    return class_obj


def remove_student(session: Session, class_id: int, student_id: int) -> bool:
    """
    Remove a student from a class along with their results in it.

    Returns:
        True if the student was enrolled and has been removed
    """
    enrollment = session.query(Enrollment).filter_by(class_id=class_id, student_id=student_id).first()
    if enrollment is None:
        return False
    session.query(QuizResult).filter_by(class_id=class_id, student_id=student_id).delete()
    session.delete(enrollment)
    session.commit()
    return True


def list_students(session: Session, class_id: int) -> List[Student]:
    """Students currently enrolled in a class, ordered by name."""
    return (
        session.query(Student)
        .join(Enrollment, Enrollment.student_id == Student.id)
        .filter(Enrollment.class_id == class_id)
        .order_by(Student.full_name, Student.id)
        .all()
    )


def get_enrolled_student_ids(session: Session, class_id: int) -> List[int]:
    """IDs of the students currently enrolled in a class."""
    rows = session.query(Enrollment.student_id).filter_by(class_id=class_id).all()
    return [row[0] for row in rows]


def is_enrolled(session: Session, class_id: int, student_id: int) -> bool:
    return (
        session.query(Enrollment).filter_by(class_id=class_id, student_id=student_id).first()
        is not None
    )


def get_active_class(session: Session, config: dict) -> Optional[Class]:
    """The class named by ``active_class_id`` in config, if it still exists."""
    active_id = config.get("active_class_id")
    return None if active_id is None else get_class(session, int(active_id))


def set_active_class(config_path: str, class_id: int) -> bool:
    """
    Point ``active_class_id`` in the config file at another class.

    Only that key is touched; the rest of the file is written back as read.

    Returns:
        False if the file is missing, unreadable or not writable
    """
    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        raw["active_class_id"] = class_id
        save_config(raw, config_path)
    except (OSError, yaml.YAMLError) as e:
        logger.error("set_active_class: %s not updated: %s", config_path, e)
        return False
    logger.info("set_active_class: active class is now %s", class_id)
    return True
