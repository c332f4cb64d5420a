import argparse

from dotenv import load_dotenv

from quizgrade.cli import cli_session
from quizgrade.cli.analytics_commands import (
    handle_analytics,
    handle_export_gradebook,
    handle_quiz_stats,
    handle_scales,
    handle_student_profile,
    register_analytics_commands,
)
from quizgrade.cli.class_commands import (
    handle_add_student,
    handle_create_class,
    handle_delete_class,
    handle_delete_lesson,
    handle_join_class,
    handle_list_classes,
    handle_list_lessons,
    handle_list_students,
    handle_post_lesson,
    handle_remove_student,
    handle_use_class,
    register_class_commands,
)
from quizgrade.cli.quiz_commands import (
    handle_create_quiz,
    handle_list_quizzes,
    handle_submit,
    handle_view_quiz,
    register_quiz_commands,
)
from quizgrade.config import configure_logging, load_config

HANDLERS = {
    "create-class": handle_create_class,
    "list-classes": handle_list_classes,
    "delete-class": handle_delete_class,
    "add-student": handle_add_student,
    "join-class": handle_join_class,
    "remove-student": handle_remove_student,
    "list-students": handle_list_students,
    "use-class": handle_use_class,
    "post-lesson": handle_post_lesson,
    "list-lessons": handle_list_lessons,
    "delete-lesson": handle_delete_lesson,
    "create-quiz": handle_create_quiz,
    "list-quizzes": handle_list_quizzes,
    "view-quiz": handle_view_quiz,
    "submit": handle_submit,
    "quiz-stats": handle_quiz_stats,
    "analytics": handle_analytics,
    "student-profile": handle_student_profile,
    "export-gradebook": handle_export_gradebook,
    "scales": handle_scales,
}


def handle_init_db(config, args):
    """Handles the "init-db" command."""
    with cli_session(config):
        pass
    print(f"[OK] Database ready: {config['paths']['database_file']}")


def build_parser():
    parser = argparse.ArgumentParser(description="QuizGrade CLI.")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database tables.")
    register_class_commands(subparsers)
    register_quiz_commands(subparsers)
    register_analytics_commands(subparsers)
    return parser


def main(argv=None):
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except FileNotFoundError:
        print(f"Error: {args.config} not found.")
        return

    configure_logging(config)

    if args.command == "init-db":
        handle_init_db(config, args)
    else:
        HANDLERS[args.command](config, args)


if __name__ == "__main__":
    main()
