"""
Gradebook export for QuizGrade.

Builds spreadsheet-ready CSV from students, quizzes and results that the
caller has already fetched and filtered:

- ``export_gradebook``: consolidated multi-section gradebook (class
  summary, per-quiz averages, one row per student with a column per quiz).
- ``export_quiz_results``: single-quiz report with letter grade and
  pass/fail per student.

The exporters are filter-agnostic.  ``filter_quizzes`` and
``gradebook_filename`` implement the caller-side scope selection (all
quizzes, a date range, or a single quiz).

Missing submissions count as 0 points in the consolidated gradebook, so a
student who skipped a quiz is indistinguishable from one who scored zero
there.  The single-quiz report marks them "Not Submitted".
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from quizgrade.class_stats import latest_submissions, result_percentage
from quizgrade.export_utils import rows_to_quoted_csv, sanitize_filename
from quizgrade.grading import DEFAULT_PASSING_GRADE, classify_grade, did_student_pass
from quizgrade.scoring import calculate_percentage, calculate_total_points, round_half_up

STUDENT_HEADERS = ["Student Name", "Overall Percentage", "Points Earned", "Points Possible"]
QUIZ_HEADERS = ["Quiz", "Average Points", "Total Points", "Submissions"]
QUIZ_RESULT_HEADERS = [
    "Student Name",
    "Email",
    "Points Earned",
    "Total Points",
    "Percentage",
    "Letter Grade",
    "Pass/Fail",
    "Submitted At",
]


def _fmt_number(value: Any) -> Any:
    """Drop a meaningless .0 so whole numbers read as integers."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _fmt_timestamp(value: Any) -> str:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    return ""


def _student_name(student: Dict[str, Any]) -> str:
    return student.get("full_name") or student.get("name") or "Unknown"


def _results_index(results: List[Dict[str, Any]]) -> Dict[tuple, Dict[str, Any]]:
    """Latest result per (student_id, quiz_id)."""
    return {(r.get("student_id"), r.get("quiz_id")): r for r in latest_submissions(results)}


def build_gradebook_rows(
    students: List[Dict[str, Any]],
    quizzes: List[Dict[str, Any]],
    results: List[Dict[str, Any]],
    class_name: Optional[str] = None,
) -> List[List[Any]]:
    """Assemble the consolidated gradebook as a list of rows.

    Args:
        students: Student dicts with ``id`` and ``full_name``.
        quizzes: Quiz dicts with ``id``, ``title`` and ``questions``.
        results: Result dicts; only those matching a listed student and
            quiz are used, latest submission per pair.
        class_name: Shown in the summary section when given.

    Returns:
        Rows for the summary, quiz and student sections separated by an
        empty row.
    """
    index = _results_index(results)
    quiz_totals = [calculate_total_points(q.get("questions")) for q in quizzes]
    possible = sum(quiz_totals)

    student_rows = []
    overall_percentages = []
    for student in students:
        earned_per_quiz = []
        for quiz in quizzes:
            result = index.get((student.get("id"), quiz.get("id")))
            earned_per_quiz.append(_fmt_number(result.get("points_earned") or 0) if result else 0)
        earned = sum(earned_per_quiz)
        overall = calculate_percentage(earned, possible)
        overall_percentages.append(overall)
        student_rows.append([_student_name(student), f"{overall}%", _fmt_number(earned), possible] + earned_per_quiz)

    quiz_rows = []
    student_ids = {s.get("id") for s in students}
    for quiz, total in zip(quizzes, quiz_totals):
        submitted = [
            r.get("points_earned") or 0
            for (sid, qid), r in index.items()
            if qid == quiz.get("id") and sid in student_ids
        ]
        average = round_half_up(sum(submitted) / len(submitted) * 10) / 10 if submitted else 0
        quiz_rows.append([quiz.get("title") or "Untitled Quiz", _fmt_number(average), total, len(submitted)])

    class_average = round_half_up(sum(overall_percentages) / len(overall_percentages)) if overall_percentages else 0

    rows: List[List[Any]] = []
    if class_name is not None:
        rows.append(["Class", class_name])
    rows.append(["Total Students", len(students)])
    rows.append(["Class Average", f"{class_average}%"])
    rows.append(["Quizzes", len(quizzes)])
    rows.append([])
    rows.append(list(QUIZ_HEADERS))
    rows.extend(quiz_rows)
    rows.append([])
    rows.append(STUDENT_HEADERS + [q.get("title") or "Untitled Quiz" for q in quizzes])
    rows.extend(student_rows)
    return rows


def export_gradebook(
    students: List[Dict[str, Any]],
    quizzes: List[Dict[str, Any]],
    results: List[Dict[str, Any]],
    class_name: Optional[str] = None,
) -> str:
    """Export the consolidated gradebook as quoted CSV text."""
    return rows_to_quoted_csv(build_gradebook_rows(students, quizzes, results, class_name))


def export_quiz_results(
    students: List[Dict[str, Any]],
    quiz: Dict[str, Any],
    results: List[Dict[str, Any]],
) -> str:
    """Export one quiz's results with letter grades and pass/fail.

    Students without a submission are listed as "Not Submitted".
    """
    index = _results_index([r for r in results if r.get("quiz_id") == quiz.get("id")])
    total = calculate_total_points(quiz.get("questions"))
    scale = quiz.get("grading_scale")
    passing_grade = quiz.get("passing_grade")
    if passing_grade is None:
        passing_grade = DEFAULT_PASSING_GRADE

    rows = [list(QUIZ_RESULT_HEADERS)]
    for student in students:
        result = index.get((student.get("id"), quiz.get("id")))
        if result is None:
            rows.append([_student_name(student), student.get("email") or "", 0, total, "0%", "F", "Not Submitted", ""])
            continue
        percentage = result_percentage(result)
        rows.append(
            [
                _student_name(student),
                student.get("email") or "",
                _fmt_number(result.get("points_earned") or 0),
                total,
                f"{percentage}%",
                classify_grade(percentage, scale)["label"],
                "Pass" if did_student_pass(percentage, passing_grade) else "Fail",
                _fmt_timestamp(result.get("submitted_at")),
            ]
        )
    return rows_to_quoted_csv(rows)


# ---------------------------------------------------------------------------
# Scope selection
# ---------------------------------------------------------------------------


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value).date()
        except ValueError:
            return None
    return None


def filter_quizzes(
    quizzes: List[Dict[str, Any]],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    quiz_id: Optional[Any] = None,
) -> List[Dict[str, Any]]:
    """Select the quizzes a gradebook export should cover.

    A quiz id wins over a date range.  Date bounds are inclusive and
    compare calendar days of ``created_at``, so the end date covers that
    whole day.  Quizzes without a creation date are dropped when a range
    is active.
    """
    if quiz_id is not None:
        return [q for q in quizzes if q.get("id") == quiz_id]
    if start_date is None and end_date is None:
        return list(quizzes)

    selected = []
    for quiz in quizzes:
        created = _as_date(quiz.get("created_at"))
        if created is None:
            continue
        if start_date is not None and created < start_date:
            continue
        if end_date is not None and created > end_date:
            continue
        selected.append(quiz)
    return selected


def gradebook_filename(
    class_name: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    quiz_title: Optional[str] = None,
    export_date: Optional[date] = None,
) -> str:
    """Build ``<class>_gradebook_<scope>_<YYYY-MM-DD>.csv``.

    Scope is ``quiz_<title>`` for a single quiz, ``<start>_to_<end>`` (or
    ``from_<start>`` / ``until_<end>``) for a date range, else ``all``.
    """
    if quiz_title is not None:
        scope = "quiz_" + sanitize_filename(quiz_title, default="untitled")
    elif start_date and end_date:
        scope = f"{start_date.isoformat()}_to_{end_date.isoformat()}"
    elif start_date:
        scope = f"from_{start_date.isoformat()}"
    elif end_date:
        scope = f"until_{end_date.isoformat()}"
    else:
        scope = "all"
    export_date = export_date or date.today()
    return f"{sanitize_filename(class_name, default='class')}_gradebook_{scope}_{export_date.isoformat()}.csv"
