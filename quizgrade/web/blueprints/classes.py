"""Class and lesson routes."""

from flask import Blueprint, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from quizgrade.classroom import create_class, get_class, is_enrolled, list_classes
from quizgrade.lessons import create_lesson, delete_lesson, get_lesson, lesson_to_dict, list_lessons
from quizgrade.web.blueprints.helpers import (
    TEACHER,
    _get_session,
    class_owner_error,
    json_server_error,
    login_required,
    teacher_required,
)

classes_bp = Blueprint("classes", __name__)


@classes_bp.route("/api/classes")
@teacher_required
def api_my_classes():
    """Classes owned by the signed-in teacher."""
    classes = list_classes(_get_session(), teacher_id=g.current_user["id"])
    for c in classes:
        c["created_at"] = c["created_at"].isoformat() if c["created_at"] else None
    return jsonify({"classes": classes})


@classes_bp.route("/api/classes", methods=["POST"])
@teacher_required
def api_create_class():
    """Create a class owned by the signed-in teacher."""
    payload = request.get_json(silent=True) or {}
    try:
        new_class = create_class(
            _get_session(),
            payload.get("name", ""),
            subject=payload.get("subject"),
            teacher_id=g.current_user["id"],
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"id": new_class.id, "name": new_class.name, "join_code": new_class.join_code}), 201


# --- Lessons ---


@classes_bp.route("/api/classes/<int:class_id>/lessons")
@login_required
def api_lessons(class_id):
    """Lessons for a class; visible to its teacher and enrolled students."""
    session = _get_session()
    class_obj = get_class(session, class_id)
    if not class_obj:
        return jsonify({"error": "Class not found"}), 404

    user = g.current_user
    if user["role"] == TEACHER:
        denied = class_owner_error(class_obj)
        if denied:
            return denied
    elif not is_enrolled(session, class_id, user["id"]):
        return jsonify({"error": "Not enrolled in this class"}), 403

    lessons = [lesson_to_dict(lesson) for lesson in list_lessons(session, class_id)]
    return jsonify({"class_id": class_id, "lessons": lessons})


@classes_bp.route("/api/classes/<int:class_id>/lessons", methods=["POST"])
@teacher_required
def api_post_lesson(class_id):
    """Post a lesson to a class the teacher owns."""
    session = _get_session()
    class_obj = get_class(session, class_id)
    if not class_obj:
        return jsonify({"error": "Class not found"}), 404
    denied = class_owner_error(class_obj)
    if denied:
        return denied

    payload = request.get_json(silent=True) or {}
    try:
        lesson = create_lesson(
            session,
            class_id,
            payload.get("title", ""),
            content=payload.get("content", ""),
            links=payload.get("links"),
            created_by=g.current_user["id"],
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except SQLAlchemyError as e:
        session.rollback()
        return json_server_error("Posting the lesson", e)
    return jsonify(lesson_to_dict(lesson)), 201


@classes_bp.route("/api/classes/<int:class_id>/lessons/<int:lesson_id>", methods=["DELETE"])
@teacher_required
def api_delete_lesson(class_id, lesson_id):
    """Delete one lesson from a class the teacher owns."""
    session = _get_session()
    class_obj = get_class(session, class_id)
    if not class_obj:
        return jsonify({"error": "Class not found"}), 404
    denied = class_owner_error(class_obj)
    if denied:
        return denied

    lesson = get_lesson(session, lesson_id)
    if lesson is None or lesson.class_id != class_id:
        return jsonify({"error": "Lesson not found"}), 404
    delete_lesson(session, lesson_id)
    return jsonify({"deleted": lesson_id})
