"""
Quiz authoring, listing, viewing and submission CLI commands.
"""

import json
from datetime import date, datetime, time

import yaml

from quizgrade.cli import cli_session, resolve_class_id
from quizgrade.config import get_grading_defaults
from quizgrade.quizzes import create_quiz, get_quiz, list_quizzes, quiz_to_dict
from quizgrade.submissions import SubmissionError, submission_summary, submit_quiz


def register_quiz_commands(subparsers):
    """Register quiz-related subcommands."""

    # create-quiz
    p = subparsers.add_parser("create-quiz", help="Create a quiz from a YAML or JSON definition file.")
    p.add_argument("quiz_file", type=str, help="Path to the quiz definition.")
    p.add_argument("--class", dest="class_id", type=int, help="Class ID.")

    # list-quizzes
    p = subparsers.add_parser("list-quizzes", help="List quizzes.")
    p.add_argument("--class", dest="class_id", type=int, help="Filter by class ID.")

    # view-quiz
    p = subparsers.add_parser("view-quiz", help="Display quiz content in terminal.")
    p.add_argument("quiz_id", type=int, help="Quiz ID to view.")
    p.add_argument("--show-answers", action="store_true", help="Show correct answers.")

    # submit
    p = subparsers.add_parser("submit", help="Submit and score a student's answers.")
    p.add_argument("quiz_id", type=int, help="Quiz ID.")
    p.add_argument("--student", dest="student_id", type=int, required=True, help="Student ID.")
    p.add_argument("--class", dest="class_id", type=int, help="Class ID (defaults to the quiz's class).")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--answers", type=str, help='Answers as JSON, e.g. \'{"0": 1, "1": "Paris"}\'.')
    group.add_argument("--answers-file", type=str, help="Path to a JSON/YAML answers file.")


def load_quiz_definition(path):
    """Read a quiz definition file (YAML is a superset of JSON)."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Quiz file must contain a mapping with 'title' and 'questions'.")

    deadline = data.get("deadline")
    if isinstance(deadline, str):
        deadline = datetime.fromisoformat(deadline)
    elif isinstance(deadline, date) and not isinstance(deadline, datetime):
        # A bare date closes at the end of that day
        deadline = datetime.combine(deadline, time.max)
    data["deadline"] = deadline
    return data


def handle_create_quiz(config, args):
    """Create a quiz from a definition file."""
    try:
        definition = load_quiz_definition(args.quiz_file)
    except FileNotFoundError:
        print(f"Error: File not found: {args.quiz_file}")
        return
    except (ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        return

    default_scale, default_passing = get_grading_defaults(config)
    with cli_session(config) as session:
        class_id = resolve_class_id(config, args)
        try:
            quiz = create_quiz(
                session,
                class_id,
                definition.get("title", ""),
                definition.get("questions", []),
                deadline=definition["deadline"],
                grading_scale=definition.get("grading_scale", default_scale),
                passing_grade=definition.get("passing_grade", default_passing),
            )
        except ValueError as e:
            print(f"Error: {e}")
            return
        total = quiz_to_dict(quiz)["total_points"]
        print(f"[OK] Created quiz: {quiz.title} (ID: {quiz.id}, {len(quiz.questions)} questions, {total} points)")


def handle_list_quizzes(config, args):
    """List quizzes with ID, title, class, question count and total points."""
    with cli_session(config) as session:
        quizzes = list_quizzes(session, getattr(args, "class_id", None))
        if not quizzes:
            print("No quizzes found.")
            return

        print(f"\n{'ID':>5}  {'Title':<40} {'Class':>5} {'Questions':>9} {'Points':>6}")
        print(f"{'---':>5}  {'---':<40} {'---':>5} {'---':>9} {'---':>6}")
        for q in quizzes:
            data = quiz_to_dict(q)
            print(f"{q.id:>5}  {q.title[:38]:<40} {q.class_id:>5} {len(data['questions']):>9} {data['total_points']:>6}")


def handle_view_quiz(config, args):
    """Print a quiz, optionally with its answer key."""
    with cli_session(config) as session:
        quiz = get_quiz(session, args.quiz_id)
        if not quiz:
            print(f"Error: Quiz with ID {args.quiz_id} not found.")
            return

        data = quiz_to_dict(quiz)
        print(f"\n{data['title']}  ({data['total_points']} points, pass at {data['passing_grade']}%)")
        if data["deadline"]:
            print(f"Due: {data['deadline'].isoformat(sep=' ', timespec='minutes')}")
        print("=" * 60)
        for i, q in enumerate(data["questions"], 1):
            print(f"\n{i}. {q['text']}  [{q['points']} pt]")
            for j, option in enumerate(q["options"]):
                marker = "*" if args.show_answers and j == q["correct_index"] else " "
                print(f"   {marker} {chr(65 + j)}. {option}")
            if args.show_answers and q["correct_answer"]:
                print(f"   Answer: {q['correct_answer']}")


def handle_submit(config, args):
    """Score and store a submission."""
    try:
        if args.answers is not None:
            answers = json.loads(args.answers)
        else:
            with open(args.answers_file, encoding="utf-8") as f:
                answers = yaml.safe_load(f)
    except FileNotFoundError:
        print(f"Error: File not found: {args.answers_file}")
        return
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        print(f"Error: Could not parse answers: {e}")
        return

    with cli_session(config) as session:
        class_id = args.class_id
        if class_id is None:
            quiz = get_quiz(session, args.quiz_id)
            if quiz is None:
                print(f"Error (not-found): Quiz with ID {args.quiz_id} not found.")
                return
            class_id = quiz.class_id
        try:
            result = submit_quiz(session, args.quiz_id, class_id, args.student_id, answers)
        except SubmissionError as e:
            print(f"Error ({e.code}): {e.message}")
            return

        summary = submission_summary(result)
        print(f"[OK] {summary['message']}")
        print(f"   Score: {summary['score']}% ({summary['points_earned']}/{summary['total_points']} points)")
        print(f"   Correct: {summary['correct_answers']} of {summary['total_questions']}")
