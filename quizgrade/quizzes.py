"""
Quiz authoring module for QuizGrade.

Creates and edits quizzes, validates questions at authoring time, and
converts ORM rows into the plain dicts the grading engine works on.

Authoring is strict (invalid questions raise ValueError); scoring stays
lenient so older stored records still grade.
"""

import logging
import numbers
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from quizgrade.database import Class, Question, Quiz, QuizResult, Student, to_naive_utc
from quizgrade.grading import DEFAULT_PASSING_GRADE
from quizgrade.grading_scales import get_grading_scale, normalize_grading_scale, validate_grading_scale
from quizgrade.scoring import FREE_TEXT, MULTIPLE_CHOICE, calculate_total_points, normalize_question

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_question(question: Any, index: int = 0) -> List[str]:
    """Check one authored question.

    Args:
        question: Question dict (type, text, points, options, correct_index
            or correct_answer).
        index: Zero-based position, used in messages.

    Returns:
        List of error strings; empty when the question is valid.
    """
    label = f"Question {index + 1}"
    if not isinstance(question, dict):
        return [f"{label}: must be an object"]

    errors = []
    q_type = question.get("type")
    if q_type not in (MULTIPLE_CHOICE, FREE_TEXT):
        errors.append(f"{label}: type must be '{MULTIPLE_CHOICE}' or '{FREE_TEXT}'")
    if not str(question.get("text") or "").strip():
        errors.append(f"{label}: missing 'text'")

    points = question.get("points", 1)
    if isinstance(points, bool) or not isinstance(points, numbers.Integral) or points < 1:
        errors.append(f"{label}: points must be a positive integer")

    if q_type == MULTIPLE_CHOICE:
        options = question.get("options")
        if not isinstance(options, list) or len(options) < 2:
            errors.append(f"{label}: multiple-choice needs at least 2 options")
        else:
            correct = question.get("correct_index")
            if (
                isinstance(correct, bool)
                or not isinstance(correct, int)
                or not 0 <= correct < len(options)
            ):
                errors.append(f"{label}: correct_index must point at one of the options")
    elif q_type == FREE_TEXT:
        if not str(question.get("correct_answer") or "").strip():
            errors.append(f"{label}: free-text needs a non-empty correct_answer")
    return errors


def _validate_quiz_fields(questions: List[Dict[str, Any]], grading_scale: Any, passing_grade: Any) -> List[str]:
    errors = []
    if not isinstance(questions, list) or not questions:
        errors.append("Quiz must contain at least one question")
    else:
        for i, q in enumerate(questions):
            errors.extend(validate_question(q, i))

    if isinstance(grading_scale, str):
        try:
            get_grading_scale(grading_scale)
        except ValueError as e:
            errors.append(str(e))
    elif grading_scale is not None:
        errors.extend(validate_grading_scale(normalize_grading_scale(grading_scale)))

    if (
        isinstance(passing_grade, bool)
        or not isinstance(passing_grade, numbers.Real)
        or not 0 <= passing_grade <= 100
    ):
        errors.append("passing_grade must be a number between 0 and 100")
    return errors


def _build_question(q: Dict[str, Any], quiz_id: int, sort_order: int) -> Question:
    if q["type"] == MULTIPLE_CHOICE:
        data = {"type": MULTIPLE_CHOICE, "options": list(q["options"]), "correct_index": q["correct_index"]}
    else:
        data = {"type": FREE_TEXT, "correct_answer": q["correct_answer"]}
    return Question(
        quiz_id=quiz_id,
        sort_order=sort_order,
        question_type=q["type"],
        text=q["text"].strip(),
        points=q.get("points", 1),
        data=data,
    )


# ---------------------------------------------------------------------------
# CRUD Functions
# ---------------------------------------------------------------------------


def create_quiz(
    session: Session,
    class_id: int,
    title: str,
    questions: List[Dict[str, Any]],
    deadline: Optional[datetime] = None,
    grading_scale: Any = None,
    passing_grade: float = DEFAULT_PASSING_GRADE,
) -> Quiz:
    """Create a quiz with its questions.

    Args:
        session: SQLAlchemy session.
        class_id: Class the quiz is posted to.
        title: Quiz title.
        questions: Authored question dicts, in order.
        deadline: Optional deadline after which submissions close. Aware
            datetimes are converted to UTC; naive ones are taken as UTC.
        grading_scale: Registry key, custom scale dict, or None for default.
        passing_grade: Minimum percentage to pass.

    Returns:
        The created Quiz object.

    Raises:
        ValueError: If the class does not exist or any field is invalid.
    """
    if not title or not title.strip():
        raise ValueError("Title is required.")
    if session.query(Class).filter_by(id=class_id).first() is None:
        raise ValueError(f"Class with id {class_id} not found.")
    errors = _validate_quiz_fields(questions, grading_scale, passing_grade)
    if errors:
        raise ValueError("Invalid quiz: " + "; ".join(errors))

    quiz = Quiz(
        class_id=class_id,
        title=title.strip(),
        deadline=to_naive_utc(deadline),
        grading_scale=grading_scale,
        passing_grade=passing_grade,
    )
    session.add(quiz)
    session.flush()

    for i, q in enumerate(questions):
        session.add(_build_question(q, quiz.id, i))

    session.commit()
    logger.info("create_quiz: quiz %s created in class %s with %d questions", quiz.id, class_id, len(questions))
    return quiz


def get_quiz(session: Session, quiz_id: int) -> Optional[Quiz]:
    """Fetch a quiz by ID, or None if not found."""
    return session.query(Quiz).filter_by(id=quiz_id).first()


def list_quizzes(session: Session, class_id: Optional[int] = None) -> List[Quiz]:
    """Quizzes ordered by creation, optionally limited to one class."""
    query = session.query(Quiz)
    if class_id is not None:
        query = query.filter(Quiz.class_id == class_id)
    return query.order_by(Quiz.created_at, Quiz.id).all()


def update_quiz_questions(session: Session, quiz_id: int, questions: List[Dict[str, Any]]) -> Quiz:
    """Replace a quiz's questions.

    Existing results keep the quiz snapshot taken when they were submitted;
    a warning is logged because live percentages are no longer comparable.

    Raises:
        ValueError: If the quiz does not exist or a question is invalid.
    """
    quiz = get_quiz(session, quiz_id)
    if quiz is None:
        raise ValueError(f"Quiz with id {quiz_id} not found.")
    errors = _validate_quiz_fields(questions, quiz.grading_scale, quiz.passing_grade)
    if errors:
        raise ValueError("Invalid quiz: " + "; ".join(errors))

    result_count = session.query(QuizResult).filter_by(quiz_id=quiz_id).count()
    if result_count:
        logger.warning(
            "update_quiz_questions: quiz %s edited after %d submission(s); stored results keep their snapshot",
            quiz_id,
            result_count,
        )

    quiz.questions.clear()
    session.flush()
    for i, q in enumerate(questions):
        quiz.questions.append(_build_question(q, quiz.id, i))
    session.commit()
    return quiz


def delete_quiz(session: Session, quiz_id: int) -> bool:
    """Delete a quiz with its questions and results."""
    quiz = get_quiz(session, quiz_id)
    if quiz is None:
        return False
    session.delete(quiz)
    session.commit()
    return True


# ---------------------------------------------------------------------------
# Conversion to plain dicts
# ---------------------------------------------------------------------------


def question_to_dict(question: Question) -> Dict[str, Any]:
    """Scoring-shape dict for a stored question."""
    data = dict(question.data or {})
    data.setdefault("type", question.question_type)
    data["text"] = question.text
    data["points"] = question.points
    normalized = normalize_question(data)
    return {
        "id": question.id,
        "type": normalized["type"],
        "text": normalized["text"],
        "points": normalized["points"],
        "options": normalized["options"],
        "correct_index": normalized["correct_index"],
        "correct_answer": normalized["correct_answer"],
    }


def quiz_to_dict(quiz: Quiz) -> Dict[str, Any]:
    """Full quiz dict including answer keys and the derived total points."""
    questions = [question_to_dict(q) for q in quiz.questions]
    return {
        "id": quiz.id,
        "class_id": quiz.class_id,
        "title": quiz.title,
        "deadline": quiz.deadline,
        "grading_scale": quiz.grading_scale,
        "passing_grade": quiz.passing_grade if quiz.passing_grade is not None else DEFAULT_PASSING_GRADE,
        "created_at": quiz.created_at,
        "questions": questions,
        "total_points": calculate_total_points(questions),
    }


def questions_for_student(quiz: Quiz) -> Dict[str, Any]:
    """Quiz dict with the answer keys removed, safe to send to a student."""
    full = quiz_to_dict(quiz)
    questions = []
    for q in full["questions"]:
        item = {"type": q["type"], "text": q["text"], "points": q["points"]}
        if q["type"] == MULTIPLE_CHOICE:
            item["options"] = q["options"]
        questions.append(item)
    return {
        "id": full["id"],
        "class_id": full["class_id"],
        "title": full["title"],
        "deadline": full["deadline"].isoformat() if full["deadline"] else None,
        "total_points": full["total_points"],
        "questions": questions,
    }


def result_to_dict(result: QuizResult) -> Dict[str, Any]:
    return {
        "id": result.id,
        "quiz_id": result.quiz_id,
        "class_id": result.class_id,
        "student_id": result.student_id,
        "answers": result.answers or {},
        "points_earned": result.points_earned or 0,
        "total_points": result.total_points or 0,
        "correct_count": result.correct_count or 0,
        "total_questions": result.total_questions or 0,
        "percentage": result.percentage or 0,
        "submitted_at": result.submitted_at,
    }


def student_to_dict(student: Student) -> Dict[str, Any]:
    return {"id": student.id, "full_name": student.full_name, "email": student.email}
