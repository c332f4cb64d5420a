"""
Quiz submission boundary for QuizGrade.

Every submission is re-scored here against the stored quiz before it is
saved; scores reported by a client are never trusted.  The checks run in a
fixed order (arguments, quiz, class membership of the quiz, deadline,
class, enrollment, prior submission) and each failure raises a
``SubmissionError`` carrying a machine-readable code.

The (student, quiz) unique constraint on ``quiz_results`` backs up the
prior-submission check, so two racing submissions cannot both be stored.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quizgrade.classroom import get_class, is_enrolled
from quizgrade.database import QuizResult, utcnow
from quizgrade.quizzes import get_quiz, quiz_to_dict, result_to_dict
from quizgrade.scoring import normalize_answers, score_quiz

logger = logging.getLogger(__name__)

INVALID_ARGUMENT = "invalid-argument"
NOT_FOUND = "not-found"
PERMISSION_DENIED = "permission-denied"
FAILED_PRECONDITION = "failed-precondition"
ALREADY_EXISTS = "already-exists"


class SubmissionError(ValueError):
    """A submission was rejected; ``code`` says why."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def has_submitted(session: Session, quiz_id: int, student_id: int) -> bool:
    """True when the student already has a stored result for the quiz."""
    return (
        session.query(QuizResult).filter_by(quiz_id=quiz_id, student_id=student_id).first()
        is not None
    )


def submit_quiz(
    session: Session,
    quiz_id: int,
    class_id: int,
    student_id: int,
    answers: Any,
    now: Optional[datetime] = None,
) -> QuizResult:
    """Validate, score and store one student's submission.

    Args:
        session: SQLAlchemy session.
        quiz_id: Quiz being submitted.
        class_id: Class the student is submitting from.
        student_id: Authenticated student.
        answers: Mapping of question index to answer (or a list).
        now: Naive-UTC submission time; defaults to the current time.

    Returns:
        The stored QuizResult.

    Raises:
        SubmissionError: If any check fails.
    """
    if not quiz_id or not class_id or not student_id or answers is None:
        raise SubmissionError(INVALID_ARGUMENT, "Missing required fields: quiz_id, class_id, student_id or answers.")

    quiz = get_quiz(session, quiz_id)
    if quiz is None:
        raise SubmissionError(NOT_FOUND, "Quiz not found.")
    if quiz.class_id != class_id:
        raise SubmissionError(PERMISSION_DENIED, "Quiz does not belong to the specified class.")

    now = now or utcnow()
    if quiz.deadline is not None and now > quiz.deadline:
        raise SubmissionError(FAILED_PRECONDITION, "Quiz deadline has passed.")

    if get_class(session, class_id) is None:
        raise SubmissionError(NOT_FOUND, "Class not found.")
    if not is_enrolled(session, class_id, student_id):
        raise SubmissionError(PERMISSION_DENIED, "Student is not enrolled in this class.")
    if has_submitted(session, quiz_id, student_id):
        raise SubmissionError(ALREADY_EXISTS, "You have already submitted this quiz.")

    quiz_data = quiz_to_dict(quiz)
    answer_map = normalize_answers(answers)
    score = score_quiz(quiz_data["questions"], answer_map)

    result = QuizResult(
        quiz_id=quiz_id,
        class_id=class_id,
        student_id=student_id,
        answers={str(k): v for k, v in answer_map.items()},
        points_earned=score["points_earned"],
        total_points=score["total_points"],
        correct_count=score["correct_count"],
        total_questions=score["total_questions"],
        percentage=score["percentage"],
        quiz_snapshot={
            "title": quiz_data["title"],
            "questions": quiz_data["questions"],
            "grading_scale": quiz_data["grading_scale"],
            "passing_grade": quiz_data["passing_grade"],
            "total_points": quiz_data["total_points"],
        },
        submitted_at=now,
    )
    session.add(result)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise SubmissionError(ALREADY_EXISTS, "You have already submitted this quiz.")

    logger.info(
        "submit_quiz: student %s scored %s%% on quiz %s (%s/%s points)",
        student_id,
        score["percentage"],
        quiz_id,
        score["points_earned"],
        score["total_points"],
    )
    return result


def submission_summary(result: QuizResult) -> Dict[str, Any]:
    """What a student sees after submitting (no answer key)."""
    return {
        "success": True,
        "score": result.percentage,
        "points_earned": result.points_earned,
        "total_points": result.total_points,
        "correct_answers": result.correct_count,
        "total_questions": result.total_questions,
        "message": "Quiz submitted successfully!",
    }


def get_student_results(
    session: Session, student_id: int, class_id: Optional[int] = None
) -> List[Dict[str, Any]]:
    """A student's results ordered by submission time."""
    query = session.query(QuizResult).filter(QuizResult.student_id == student_id)
    if class_id is not None:
        query = query.filter(QuizResult.class_id == class_id)
    rows = query.order_by(QuizResult.submitted_at, QuizResult.id).all()
    return [result_to_dict(r) for r in rows]
