"""
Performance analytics views for QuizGrade.

Fetches classes, quizzes and results from the database and hands plain
dicts to the pure grading engine (class_stats, grading, gradebook_export).
Only students currently enrolled in a class are counted; results left
behind by removed students are ignored.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from quizgrade.class_stats import (
    calculate_class_stats,
    detect_trend,
    filter_enrolled,
    latest_submissions,
)
from quizgrade.classroom import get_class, get_enrolled_student_ids, get_student, list_students
from quizgrade.database import QuizResult
from quizgrade.gradebook_export import export_gradebook, filter_quizzes, gradebook_filename
from quizgrade.grading import DEFAULT_PASSING_GRADE, classify_grade
from quizgrade.grading_scales import normalize_grading_scale
from quizgrade.quizzes import get_quiz, list_quizzes, quiz_to_dict, result_to_dict, student_to_dict
from quizgrade.scoring import round_half_up

logger = logging.getLogger(__name__)

TOP_PERFORMER_COUNT = 5
NEEDS_HELP_COUNT = 5
RECENT_ACTIVITY_COUNT = 5


def _class_results(session: Session, class_id: int) -> List[Dict[str, Any]]:
    """Current results of enrolled students, latest per (student, quiz)."""
    rows = session.query(QuizResult).filter(QuizResult.class_id == class_id).all()
    results = filter_enrolled([result_to_dict(r) for r in rows], get_enrolled_student_ids(session, class_id))
    return latest_submissions(results)


def _mean(values: List[float]) -> int:
    return round_half_up(sum(values) / len(values)) if values else 0


def get_quiz_statistics(session: Session, quiz_id: int) -> Optional[Dict[str, Any]]:
    """Statistics for one quiz under its own grading scale and passing grade.

    Returns:
        Dict with quiz info plus the class statistics, or None if the quiz
        does not exist.
    """
    quiz = get_quiz(session, quiz_id)
    if quiz is None:
        logger.warning("get_quiz_statistics: quiz_id=%s not found", quiz_id)
        return None

    quiz_data = quiz_to_dict(quiz)
    results = [r for r in _class_results(session, quiz.class_id) if r["quiz_id"] == quiz_id]
    stats = calculate_class_stats(results, quiz_data["grading_scale"], quiz_data["passing_grade"])
    return {
        "quiz_id": quiz.id,
        "title": quiz.title,
        "total_points": quiz_data["total_points"],
        "passing_grade": quiz_data["passing_grade"],
        "grading_scale": normalize_grading_scale(quiz_data["grading_scale"])["name"],
        "enrolled_students": len(get_enrolled_student_ids(session, quiz.class_id)),
        **stats,
    }


def get_class_analytics(
    session: Session,
    class_id: int,
    scale: Any = None,
    passing_grade: float = DEFAULT_PASSING_GRADE,
) -> Optional[Dict[str, Any]]:
    """Class-wide analytics: overall statistics, per-quiz and per-student views.

    Args:
        session: SQLAlchemy session.
        class_id: Class to analyze.
        scale: Scale for the class-level grade distribution.
        passing_grade: Threshold for pass rate and the needs-help list.

    Returns:
        Dict with stats, completion_rate, quiz_averages, student_progress,
        top_performers and needs_help; None if the class does not exist.
    """
    class_obj = get_class(session, class_id)
    if class_obj is None:
        logger.warning("get_class_analytics: class_id=%s not found", class_id)
        return None

    students = list_students(session, class_id)
    quizzes = list_quizzes(session, class_id)
    results = _class_results(session, class_id)

    stats = calculate_class_stats(results, scale, passing_grade)

    possible = len(students) * len(quizzes)
    completion_rate = round_half_up(len(results) / possible * 100) if possible else 0

    quiz_averages = []
    for quiz in quizzes:
        quiz_results = [r for r in results if r["quiz_id"] == quiz.id]
        quiz_stats = calculate_class_stats(quiz_results, quiz.grading_scale, quiz.passing_grade)
        quiz_averages.append(
            {
                "quiz_id": quiz.id,
                "title": quiz.title,
                "average": quiz_stats["average_percentage"],
                "pass_rate": quiz_stats["pass_rate"],
                "submissions": len(quiz_results),
            }
        )

    student_progress = []
    for student in students:
        own = sorted(
            (r for r in results if r["student_id"] == student.id),
            key=lambda r: (r["submitted_at"] is not None, r["submitted_at"] or 0),
        )
        scores = [r["percentage"] for r in own]
        student_progress.append(
            {
                "student_id": student.id,
                "name": student.full_name,
                "average": _mean(scores),
                "quizzes_taken": len(own),
                "trend": detect_trend(scores),
            }
        )
    student_progress.sort(key=lambda s: s["average"], reverse=True)

    needs_help = [s for s in student_progress if s["average"] < passing_grade and s["quizzes_taken"] > 0]
    needs_help = list(reversed(needs_help[-NEEDS_HELP_COUNT:]))

    return {
        "class_id": class_obj.id,
        "class_name": class_obj.name,
        "total_students": len(students),
        "total_quizzes": len(quizzes),
        "completion_rate": completion_rate,
        "stats": stats,
        "quiz_averages": quiz_averages,
        "student_progress": student_progress,
        "top_performers": student_progress[:TOP_PERFORMER_COUNT],
        "needs_help": needs_help,
    }


def get_student_profile(session: Session, class_id: int, student_id: int) -> Optional[Dict[str, Any]]:
    """One student's progress within a class.

    Returns:
        Dict with average, quizzes_taken, quizzes_available,
        completion_rate, highest/lowest score, trend, progress series,
        per-quiz scores and recent activity; None if the class or student
        does not exist.
    """
    class_obj = get_class(session, class_id)
    student = get_student(session, student_id)
    if class_obj is None or student is None:
        logger.warning("get_student_profile: class_id=%s student_id=%s not found", class_id, student_id)
        return None

    quizzes = list_quizzes(session, class_id)
    titles = {q.id: q.title for q in quizzes}
    scales = {q.id: q.grading_scale for q in quizzes}
    rows = (
        session.query(QuizResult)
        .filter(QuizResult.class_id == class_id, QuizResult.student_id == student_id)
        .all()
    )
    results = latest_submissions([result_to_dict(r) for r in rows])
    results.sort(key=lambda r: (r["submitted_at"] is not None, r["submitted_at"] or 0))
    scores = [r["percentage"] for r in results]

    progress = [
        {
            "name": f"Quiz {i}",
            "quiz_id": r["quiz_id"],
            "quiz_title": titles.get(r["quiz_id"], "Unknown Quiz"),
            "score": r["percentage"],
            "grade": classify_grade(r["percentage"], scales.get(r["quiz_id"]))["label"],
            "date": r["submitted_at"].date().isoformat() if r["submitted_at"] else None,
        }
        for i, r in enumerate(results, 1)
    ]

    by_quiz = {r["quiz_id"]: r for r in results}
    quiz_scores = [
        {
            "quiz_id": q.id,
            "title": q.title,
            "score": by_quiz[q.id]["percentage"] if q.id in by_quiz else None,
            "taken": q.id in by_quiz,
        }
        for q in quizzes
    ]

    recent_activity = [
        {
            "quiz_title": titles.get(r["quiz_id"], "Unknown Quiz"),
            "score": r["percentage"],
            "correct_answers": r["correct_count"],
            "total_questions": r["total_questions"],
            "submitted_at": r["submitted_at"].isoformat() if r["submitted_at"] else None,
        }
        for r in reversed(results[-RECENT_ACTIVITY_COUNT:])
    ]

    available = len(quizzes)
    return {
        "student": student_to_dict(student),
        "class_id": class_obj.id,
        "average": _mean(scores),
        "quizzes_taken": len(results),
        "quizzes_available": available,
        "completion_rate": round_half_up(len(results) / available * 100) if available else 0,
        "highest_score": max(scores) if scores else 0,
        "lowest_score": min(scores) if scores else 0,
        "trend": detect_trend(scores),
        "progress": progress,
        "quiz_scores": quiz_scores,
        "recent_activity": recent_activity,
    }


def build_class_gradebook(
    session: Session,
    class_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    quiz_id: Optional[int] = None,
    export_date: Optional[date] = None,
) -> Tuple[str, str]:
    """Export a class gradebook for all quizzes, a date range, or one quiz.

    Returns:
        ``(filename, csv_text)``.

    Raises:
        ValueError: If the class is missing, has no students, or no quiz
            matches the requested scope.
    """
    class_obj = get_class(session, class_id)
    if class_obj is None:
        raise ValueError(f"Class with id {class_id} not found.")

    students = [student_to_dict(s) for s in list_students(session, class_id)]
    if not students:
        raise ValueError("No students are enrolled in this class.")

    quizzes = filter_quizzes(
        [quiz_to_dict(q) for q in list_quizzes(session, class_id)],
        start_date=start_date,
        end_date=end_date,
        quiz_id=quiz_id,
    )
    if not quizzes:
        raise ValueError("No quizzes match the selected export scope.")

    csv_text = export_gradebook(students, quizzes, _class_results(session, class_id), class_name=class_obj.name)
    filename = gradebook_filename(
        class_obj.name,
        start_date=start_date if quiz_id is None else None,
        end_date=end_date if quiz_id is None else None,
        quiz_title=quizzes[0]["title"] if quiz_id is not None else None,
        export_date=export_date,
    )
    logger.info("build_class_gradebook: class %s, %d quizzes, %d students", class_id, len(quizzes), len(students))
    return filename, csv_text
