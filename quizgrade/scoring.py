"""
Quiz scoring for QuizGrade.

The single scorer used by every path that grades a submission: the
server-side submission boundary, CLI submissions, and answer previews.
Keeping one implementation guarantees identical rounding and text
comparison wherever a score is computed.

Scoring is pure and tolerant of legacy question records: a missing
``points`` field counts as 1 and a missing correct answer never matches.
"""

import logging
import math
import numbers
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MULTIPLE_CHOICE = "multiple-choice"
FREE_TEXT = "free-text"

QUESTION_TYPES = (MULTIPLE_CHOICE, FREE_TEXT)

# Alternate spellings found in stored questions
_TYPE_ALIASES = {
    "multiple-choice": MULTIPLE_CHOICE,
    "multiple_choice": MULTIPLE_CHOICE,
    "mc": MULTIPLE_CHOICE,
    "free-text": FREE_TEXT,
    "free_text": FREE_TEXT,
    "enumeration": FREE_TEXT,
    "short_answer": FREE_TEXT,
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def question_points(question: Dict[str, Any]) -> numbers.Real:
    """Point weight of a question; absent, zero, or invalid weights count as 1."""
    points = question.get("points")
    if isinstance(points, bool) or not isinstance(points, numbers.Real) or points <= 0:
        return 1
    if isinstance(points, float) and points.is_integer():
        return int(points)
    return points


def normalize_question(question: Dict[str, Any]) -> Dict[str, Any]:
    """Map a stored question (current or legacy shape) to the scoring shape.

    Legacy records use ``correctAnswer`` for both the option index and the
    free-text answer, ``question`` for the prompt, and the type name
    ``enumeration`` for free-text.  Unknown types are scored as multiple
    choice.

    Returns:
        Dict with type, text, points, options, correct_index, correct_answer.
    """
    raw_type = str(question.get("type") or question.get("question_type") or MULTIPLE_CHOICE).lower()
    q_type = _TYPE_ALIASES.get(raw_type, MULTIPLE_CHOICE)

    normalized = {
        "type": q_type,
        "text": question.get("text") or question.get("question") or "",
        "points": question_points(question),
        "options": list(question.get("options") or []),
        "correct_index": None,
        "correct_answer": None,
    }

    if q_type == MULTIPLE_CHOICE:
        index = question.get("correct_index", question.get("correctAnswer"))
        normalized["correct_index"] = index if _is_int(index) else None
    else:
        answer = question.get("correct_answer", question.get("correctAnswer"))
        normalized["correct_answer"] = answer
    return normalized


def normalize_answers(answers: Any) -> Dict[int, Any]:
    """Key an answer set by integer question index.

    Accepts a mapping (keys may be ints or decimal strings, as JSON objects
    deliver them) or a list aligned with question order.  Unanswered
    questions (None entries) are left out.
    """
    if not answers:
        return {}
    if isinstance(answers, (list, tuple)):
        return {i: value for i, value in enumerate(answers) if value is not None}

    normalized = {}
    for key, value in dict(answers).items():
        if _is_int(key):
            index = key
        elif isinstance(key, str) and key.strip().isdigit():
            index = int(key.strip())
        else:
            continue
        if value is not None:
            normalized[index] = value
    return normalized


def _text_key(value: Any) -> str:
    return str(value if value is not None else "").strip().lower()


def is_answer_correct(question: Dict[str, Any], answer: Any) -> bool:
    """Check one answer against a normalized question.

    Multiple choice requires an exact integer match (no coercion, so "1" and
    True never match index 1).  Free text compares trimmed, lowercased text.
    """
    if question["type"] == MULTIPLE_CHOICE:
        index = question.get("correct_index")
        return _is_int(index) and _is_int(answer) and answer == index

    expected = _text_key(question.get("correct_answer"))
    if not expected:
        return False
    return _text_key(answer) == expected


def calculate_total_points(questions: Optional[List[Dict[str, Any]]]) -> numbers.Real:
    """Sum of question weights, always recomputed from the questions."""
    if not questions:
        return 0
    return sum(question_points(q) for q in questions)


def calculate_percentage(points_earned: numbers.Real, total_points: numbers.Real) -> int:
    """Whole-number percentage, 0 when there is nothing to score."""
    if not total_points or total_points <= 0:
        return 0
    return round_half_up(points_earned / total_points * 100)


def score_quiz(questions: List[Dict[str, Any]], answers: Any) -> Dict[str, Any]:
    """Score an answer set against a quiz's questions.

    Args:
        questions: Question dicts in quiz order (current or legacy shape).
        answers: Mapping of question index to submitted value, or a list.

    Returns:
        Dict with points_earned, total_points, correct_count,
        total_questions, percentage, per_question_correct and
        points_per_question.
    """
    answer_map = normalize_answers(answers)
    questions = questions or []

    per_question_correct = []
    points_per_question = []
    points_earned = 0
    for index, raw in enumerate(questions):
        question = normalize_question(raw)
        correct = is_answer_correct(question, answer_map.get(index))
        earned = question["points"] if correct else 0
        per_question_correct.append(correct)
        points_per_question.append(earned)
        points_earned += earned

    total_points = calculate_total_points(questions)
    return {
        "points_earned": points_earned,
        "total_points": total_points,
        "correct_count": sum(1 for c in per_question_correct if c),
        "total_questions": len(questions),
        "percentage": calculate_percentage(points_earned, total_points),
        "per_question_correct": per_question_correct,
        "points_per_question": points_per_question,
    }


def preview_score(questions: List[Dict[str, Any]], answers: Any) -> Dict[str, Any]:
    """Score without persisting, adding how many questions were left blank.

    Used by self-check views before a student submits.
    """
    result = score_quiz(questions, answers)
    answered = normalize_answers(answers)
    result["unanswered"] = [
        i for i in range(result["total_questions"]) if _text_key(answered.get(i)) == ""
    ]
    return result
