"""Grading routes: quiz delivery, submission, statistics, analytics, gradebook CSV."""

from datetime import date
from io import BytesIO

from flask import Blueprint, current_app, g, jsonify, request, send_file
from flask_wtf.csrf import generate_csrf
from sqlalchemy.exc import SQLAlchemyError

from quizgrade.classroom import get_class, list_students
from quizgrade.config import get_grading_defaults
from quizgrade.gradebook_export import export_quiz_results, gradebook_filename
from quizgrade.grading_scales import list_grading_scales
from quizgrade.performance_analytics import (
    build_class_gradebook,
    get_class_analytics,
    get_quiz_statistics,
    get_student_profile,
)
from quizgrade.quizzes import get_quiz, questions_for_student, quiz_to_dict, result_to_dict, student_to_dict
from quizgrade.scoring import preview_score
from quizgrade.submissions import (
    ALREADY_EXISTS,
    FAILED_PRECONDITION,
    INVALID_ARGUMENT,
    NOT_FOUND,
    PERMISSION_DENIED,
    SubmissionError,
    submission_summary,
    submit_quiz,
)
from quizgrade.web.blueprints.helpers import (
    TEACHER,
    _get_session,
    class_owner_error,
    json_server_error,
    login_required,
    teacher_required,
)

grading_bp = Blueprint("grading", __name__)

SUBMISSION_STATUS = {
    INVALID_ARGUMENT: 400,
    NOT_FOUND: 404,
    PERMISSION_DENIED: 403,
    FAILED_PRECONDITION: 400,
    ALREADY_EXISTS: 409,
}


def _parse_date_arg(name):
    raw = request.args.get(name, "").strip()
    if not raw:
        return None
    return date.fromisoformat(raw)


def _parse_id(value):
    """JSON ids may arrive as numbers or decimal strings; None passes through."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("not an id")
    return int(str(value).strip())


@grading_bp.route("/api/csrf-token")
def api_csrf_token():
    """Token for clients that POST JSON."""
    return jsonify({"csrf_token": generate_csrf()})


@grading_bp.route("/api/grading-scales")
@login_required
def api_grading_scales():
    """Built-in grading scales."""
    return jsonify({"scales": list_grading_scales()})


@grading_bp.route("/api/quizzes/<int:quiz_id>")
@login_required
def api_quiz(quiz_id):
    """Quiz for taking: questions without answer keys."""
    quiz = get_quiz(_get_session(), quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404
    return jsonify(questions_for_student(quiz))


@grading_bp.route("/api/quizzes/<int:quiz_id>/submit", methods=["POST"])
@login_required
def api_submit_quiz(quiz_id):
    """Score a submission server-side and store it."""
    payload = request.get_json(silent=True) or {}
    try:
        class_id = _parse_id(payload.get("class_id"))
    except ValueError:
        return jsonify({"error": "class_id must be an integer.", "code": INVALID_ARGUMENT}), 400
    try:
        result = submit_quiz(
            _get_session(),
            quiz_id,
            class_id,
            g.current_user["id"],
            payload.get("answers"),
        )
    except SubmissionError as e:
        return jsonify({"error": e.message, "code": e.code}), SUBMISSION_STATUS.get(e.code, 400)
    except SQLAlchemyError as e:
        _get_session().rollback()
        return json_server_error("Quiz submission", e)
    return jsonify(submission_summary(result)), 201


@grading_bp.route("/api/quizzes/<int:quiz_id>/preview", methods=["POST"])
@teacher_required
def api_preview_score(quiz_id):
    """Score answers against the key without storing anything."""
    quiz = get_quiz(_get_session(), quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404
    denied = class_owner_error(quiz.class_)
    if denied:
        return denied
    payload = request.get_json(silent=True) or {}
    return jsonify(preview_score(quiz_to_dict(quiz)["questions"], payload.get("answers")))


@grading_bp.route("/api/quizzes/<int:quiz_id>/statistics")
@teacher_required
def api_quiz_statistics(quiz_id):
    """Averages, pass rate and grade distribution for one quiz."""
    session = _get_session()
    quiz = get_quiz(session, quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404
    denied = class_owner_error(quiz.class_)
    if denied:
        return denied
    return jsonify(get_quiz_statistics(session, quiz_id))


@grading_bp.route("/api/classes/<int:class_id>/analytics")
@teacher_required
def api_class_analytics(class_id):
    """Class-wide analytics (Chart.js data)."""
    session = _get_session()
    class_obj = get_class(session, class_id)
    if not class_obj:
        return jsonify({"error": "Class not found"}), 404
    denied = class_owner_error(class_obj)
    if denied:
        return denied
    default_scale, passing_grade = get_grading_defaults(current_app.config["APP_CONFIG"])
    return jsonify(get_class_analytics(session, class_id, scale=default_scale, passing_grade=passing_grade))


@grading_bp.route("/api/classes/<int:class_id>/students/<int:student_id>/profile")
@login_required
def api_student_profile(class_id, student_id):
    """Student progress; students see their own, teachers those in classes they teach."""
    user = g.current_user
    session = _get_session()
    if user["role"] == TEACHER:
        class_obj = get_class(session, class_id)
        if class_obj:
            denied = class_owner_error(class_obj)
            if denied:
                return denied
    elif user["id"] != student_id:
        return jsonify({"error": "Not allowed"}), 403
    profile = get_student_profile(session, class_id, student_id)
    if profile is None:
        return jsonify({"error": "Student or class not found"}), 404
    return jsonify(profile)


@grading_bp.route("/classes/<int:class_id>/gradebook.csv")
@teacher_required
def gradebook_csv(class_id):
    """Download the class gradebook for all quizzes, a date range, or one quiz."""
    try:
        start_date = _parse_date_arg("start")
        end_date = _parse_date_arg("end")
    except ValueError:
        return jsonify({"error": "Dates must use YYYY-MM-DD"}), 400
    quiz_id = request.args.get("quiz_id", type=int)

    session = _get_session()
    class_obj = get_class(session, class_id)
    if not class_obj:
        return jsonify({"error": "Class not found"}), 404
    denied = class_owner_error(class_obj)
    if denied:
        return denied

    try:
        filename, csv_text = build_class_gradebook(
            session, class_id, start_date=start_date, end_date=end_date, quiz_id=quiz_id
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    except SQLAlchemyError as e:
        return json_server_error("Gradebook export", e)

    return send_file(
        BytesIO(csv_text.encode("utf-8")),
        mimetype="text/csv",
        as_attachment=True,
        download_name=filename,
    )


@grading_bp.route("/quizzes/<int:quiz_id>/results.csv")
@teacher_required
def quiz_results_csv(quiz_id):
    """Download one quiz's results with letter grades."""
    session = _get_session()
    quiz = get_quiz(session, quiz_id)
    if not quiz:
        return jsonify({"error": "Quiz not found"}), 404
    denied = class_owner_error(quiz.class_)
    if denied:
        return denied

    students = [student_to_dict(s) for s in list_students(session, quiz.class_id)]
    csv_text = export_quiz_results(students, quiz_to_dict(quiz), [result_to_dict(r) for r in quiz.results])
    filename = gradebook_filename(quiz.class_.name, quiz_title=quiz.title)
    return send_file(
        BytesIO(csv_text.encode("utf-8")),
        mimetype="text/csv",
        as_attachment=True,
        download_name=filename,
    )
