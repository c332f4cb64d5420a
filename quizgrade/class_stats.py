"""
Class and quiz statistics for QuizGrade.

Pure aggregation over result dicts (as produced by
``quizzes.result_to_dict``): averages, pass rate, grade distribution, and
the trend label shown on student progress views.  Nothing here reads the
database; callers fetch results and pass them in.
"""

import numbers
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from quizgrade.grading import DEFAULT_PASSING_GRADE, classify_grade, did_student_pass
from quizgrade.grading_scales import NEUTRAL_COLOR, normalize_grading_scale
from quizgrade.scoring import round_half_up

# Recent-vs-older average difference (percentage points) that counts as a trend
TREND_THRESHOLD = 5
TREND_WINDOW = 3


def result_percentage(result: Dict[str, Any]) -> numbers.Real:
    """Percentage of a result; older records only carry ``score``."""
    value = result.get("percentage")
    if value is None:
        value = result.get("score")
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return 0
    return value


def _timestamp_key(value: Any) -> float:
    """Sortable number for a submission time; unknown times sort first."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return float("-inf")
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return float(value)
    return float("-inf")


def latest_submissions(results: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep only the latest result per (student, quiz) pair.

    Ties on submission time keep the record that appears later in the input.
    Output preserves the input order of the surviving records.
    """
    results = list(results)
    winners: Dict[tuple, int] = {}
    for position, result in enumerate(results):
        pair = (result.get("student_id"), result.get("quiz_id"))
        current = winners.get(pair)
        if current is None or _timestamp_key(result.get("submitted_at")) >= _timestamp_key(
            results[current].get("submitted_at")
        ):
            winners[pair] = position
    keep = set(winners.values())
    return [r for i, r in enumerate(results) if i in keep]


def filter_enrolled(results: Iterable[Dict[str, Any]], student_ids: Iterable[Any]) -> List[Dict[str, Any]]:
    """Drop results belonging to students no longer in the class."""
    enrolled = set(student_ids)
    return [r for r in results if r.get("student_id") in enrolled]


def generate_grade_distribution(results: Iterable[Dict[str, Any]], scale: Any = None) -> List[Dict[str, Any]]:
    """Count results per band, listing every band of the scale in order.

    Results that land in the fallback band without the scale defining that
    label are appended after the scale's own bands.
    """
    scale = normalize_grading_scale(scale)
    counts: Dict[str, int] = {}
    colors: Dict[str, str] = {}
    for band in scale["bands"]:
        label = band.get("label")
        if label not in counts:
            counts[label] = 0
            colors[label] = band.get("color", NEUTRAL_COLOR)

    for result in results:
        grade = classify_grade(result_percentage(result), scale)
        if grade["label"] not in counts:
            counts[grade["label"]] = 0
            colors[grade["label"]] = grade["color"]
        counts[grade["label"]] += 1

    return [{"grade": label, "count": count, "color": colors[label]} for label, count in counts.items()]


def calculate_class_stats(
    results: Iterable[Dict[str, Any]],
    scale: Any = None,
    passing_grade: Optional[float] = DEFAULT_PASSING_GRADE,
    enrolled_student_ids: Optional[Iterable[Any]] = None,
) -> Dict[str, Any]:
    """Aggregate a set of results into class statistics.

    Args:
        results: Result dicts for one quiz or a whole class.
        scale: Grading scale used for the distribution.
        passing_grade: Minimum percentage that counts as a pass.
        enrolled_student_ids: When given, results from other students are
            excluded before anything is counted.

    Returns:
        Dict with total_students, total_quizzes, total_submissions,
        average_percentage, average_points, passed_students,
        failed_students, pass_rate and grade_distribution.
    """
    results = list(results)
    if enrolled_student_ids is not None:
        results = filter_enrolled(results, enrolled_student_ids)
    results = latest_submissions(results)

    if not results:
        return {
            "total_students": 0,
            "total_quizzes": 0,
            "total_submissions": 0,
            "average_percentage": 0,
            "average_points": 0,
            "passed_students": 0,
            "failed_students": 0,
            "pass_rate": 0,
            "grade_distribution": generate_grade_distribution([], scale),
        }

    count = len(results)
    total_percentage = sum(result_percentage(r) for r in results)
    total_points = sum(r.get("points_earned") or 0 for r in results)
    passed = sum(1 for r in results if did_student_pass(result_percentage(r), passing_grade))

    return {
        "total_students": len({r.get("student_id") for r in results}),
        "total_quizzes": len({r.get("quiz_id") for r in results}),
        "total_submissions": count,
        "average_percentage": round_half_up(total_percentage / count),
        "average_points": round_half_up(total_points / count),
        "passed_students": passed,
        "failed_students": count - passed,
        "pass_rate": round_half_up(passed / count * 100),
        "grade_distribution": generate_grade_distribution(results, scale),
    }


def detect_trend(scores: Iterable[Any]) -> str:
    """Classify a time-ordered score series as improving, declining or stable.

    The last three scores are compared with the average of everything
    before them; a difference beyond TREND_THRESHOLD points is a trend.
    Fewer than three scores is always stable.
    """
    values = [s for s in scores if isinstance(s, numbers.Real) and not isinstance(s, bool)]
    if len(values) < TREND_WINDOW:
        return "stable"

    recent = values[-TREND_WINDOW:]
    older = values[:-TREND_WINDOW]
    avg_recent = sum(recent) / len(recent)
    avg_older = sum(older) / len(older) if older else avg_recent

    if avg_recent > avg_older + TREND_THRESHOLD:
        return "improving"
    if avg_recent < avg_older - TREND_THRESHOLD:
        return "declining"
    return "stable"
