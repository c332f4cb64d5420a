"""
Statistics, analytics, student profile, gradebook export and grading scale
CLI commands.
"""

import json
from datetime import date

from quizgrade.cli import cli_session, resolve_class_id
from quizgrade.config import get_grading_defaults
from quizgrade.grading_scales import list_grading_scales
from quizgrade.performance_analytics import (
    build_class_gradebook,
    get_class_analytics,
    get_quiz_statistics,
    get_student_profile,
)


def register_analytics_commands(subparsers):
    """Register analytics-related subcommands."""

    # quiz-stats
    p = subparsers.add_parser("quiz-stats", help="Show statistics for one quiz.")
    p.add_argument("quiz_id", type=int, help="Quiz ID.")
    p.add_argument("--format", dest="fmt", default="text", choices=["text", "json"], help="Output format.")

    # analytics
    p = subparsers.add_parser("analytics", help="Show class analytics.")
    p.add_argument("--class", dest="class_id", type=int, help="Class ID.")
    p.add_argument("--format", dest="fmt", default="text", choices=["text", "json"], help="Output format.")

    # student-profile
    p = subparsers.add_parser("student-profile", help="Show one student's progress in a class.")
    p.add_argument("student_id", type=int, help="Student ID.")
    p.add_argument("--class", dest="class_id", type=int, help="Class ID.")
    p.add_argument("--format", dest="fmt", default="text", choices=["text", "json"], help="Output format.")

    # export-gradebook
    p = subparsers.add_parser("export-gradebook", help="Export the class gradebook as CSV.")
    p.add_argument("--class", dest="class_id", type=int, help="Class ID.")
    p.add_argument("--start", type=date.fromisoformat, help="First quiz date (YYYY-MM-DD).")
    p.add_argument("--end", type=date.fromisoformat, help="Last quiz date, inclusive (YYYY-MM-DD).")
    p.add_argument("--quiz", dest="quiz_id", type=int, help="Export a single quiz.")
    p.add_argument("--output", type=str, help="Output file path (defaults to the generated filename).")

    # scales
    subparsers.add_parser("scales", help="List built-in grading scales.")


def _print_distribution(distribution):
    for band in distribution:
        print(f"    {band['grade']:<20} {band['count']:>4}")


def handle_quiz_stats(config, args):
    """Print statistics for one quiz."""
    with cli_session(config) as session:
        stats = get_quiz_statistics(session, args.quiz_id)
        if stats is None:
            print(f"Error: Quiz with ID {args.quiz_id} not found.")
            return

        if args.fmt == "json":
            print(json.dumps(stats, indent=2, default=str))
            return

        print(f"\nStatistics for: {stats['title']}")
        print("-" * 50)
        print(f"  Submissions:      {stats['total_submissions']} of {stats['enrolled_students']}")
        print(f"  Average:          {stats['average_percentage']}% ({stats['average_points']}/{stats['total_points']} points)")
        print(f"  Passed / failed:  {stats['passed_students']} / {stats['failed_students']}")
        print(f"  Pass rate:        {stats['pass_rate']}% (passing grade {stats['passing_grade']}%)")
        print(f"  Grades ({stats['grading_scale']}):")
        _print_distribution(stats["grade_distribution"])


def handle_analytics(config, args):
    """Print class analytics."""
    default_scale, passing_grade = get_grading_defaults(config)
    with cli_session(config) as session:
        class_id = resolve_class_id(config, args)
        analytics = get_class_analytics(session, class_id, scale=default_scale, passing_grade=passing_grade)
        if analytics is None:
            print(f"Error: Class with ID {class_id} not found.")
            return

        if args.fmt == "json":
            print(json.dumps(analytics, indent=2, default=str))
            return

        stats = analytics["stats"]
        print(f"\nAnalytics for: {analytics['class_name']}")
        print("-" * 50)
        print(f"  Students:         {analytics['total_students']}")
        print(f"  Quizzes:          {analytics['total_quizzes']}")
        print(f"  Completion rate:  {analytics['completion_rate']}%")
        print(f"  Class average:    {stats['average_percentage']}%")
        print(f"  Pass rate:        {stats['pass_rate']}%")
        print("  Grades:")
        _print_distribution(stats["grade_distribution"])

        if analytics["quiz_averages"]:
            print("\nQuiz averages:")
            print(f"  {'Quiz':<30} {'Average':>7} {'Pass':>5} {'Subs':>5}")
            for q in analytics["quiz_averages"]:
                print(f"  {q['title'][:28]:<30} {q['average']:>6}% {q['pass_rate']:>4}% {q['submissions']:>5}")

        if analytics["needs_help"]:
            print("\nNeeds help:")
            for s in analytics["needs_help"]:
                print(f"  {s['name']:<30} {s['average']:>3}% ({s['trend']})")


def handle_student_profile(config, args):
    """Print one student's progress."""
    with cli_session(config) as session:
        class_id = resolve_class_id(config, args)
        profile = get_student_profile(session, class_id, args.student_id)
        if profile is None:
            print(f"Error: Student {args.student_id} or class {class_id} not found.")
            return

        if args.fmt == "json":
            print(json.dumps(profile, indent=2, default=str))
            return

        print(f"\nProfile: {profile['student']['full_name']}")
        print("-" * 50)
        print(f"  Average:          {profile['average']}%")
        print(f"  Quizzes taken:    {profile['quizzes_taken']} of {profile['quizzes_available']}")
        print(f"  Completion rate:  {profile['completion_rate']}%")
        print(f"  Highest / lowest: {profile['highest_score']}% / {profile['lowest_score']}%")
        print(f"  Trend:            {profile['trend']}")
        for q in profile["quiz_scores"]:
            score = f"{q['score']}%" if q["taken"] else "Not taken"
            print(f"    {q['title'][:38]:<40} {score:>10}")


def handle_export_gradebook(config, args):
    """Write the gradebook CSV to disk."""
    with cli_session(config) as session:
        class_id = resolve_class_id(config, args)
        try:
            filename, csv_text = build_class_gradebook(
                session,
                class_id,
                start_date=args.start,
                end_date=args.end,
                quiz_id=args.quiz_id,
            )
        except ValueError as e:
            print(f"Error: {e}")
            return

        output_path = args.output or filename
        with open(output_path, "w", encoding="utf-8", newline="") as f:
            f.write(csv_text)
        print(f"[OK] Gradebook exported to: {output_path}")


def handle_scales(config, args):
    """List built-in grading scales."""
    for scale in list_grading_scales():
        bands = ", ".join(f"{b['label']} {b['min']}-{b['max']}" for b in scale["bands"])
        print(f"  {scale['key']:<12} {scale['name']}: {bands}")
