"""
Class and roster CLI commands (create, list, delete, students, join codes, lessons).
"""

from quizgrade.classroom import (
    create_class,
    create_student,
    delete_class,
    get_class,
    join_class,
    list_classes,
    list_students,
    remove_student,
    set_active_class,
)
from quizgrade.cli import cli_session, resolve_class_id
from quizgrade.lessons import create_lesson, delete_lesson, get_lesson, list_lessons


def register_class_commands(subparsers):
    """Register class management subcommands."""

    # create-class
    p = subparsers.add_parser("create-class", help="Create a new class.")
    p.add_argument("name", type=str, help="Class name.")
    p.add_argument("--subject", type=str, help="Subject area.")
    p.add_argument("--teacher", dest="teacher_id", type=str, help="user_id of the owning teacher.")

    # list-classes
    p = subparsers.add_parser("list-classes", help="List all classes.")
    p.add_argument("--teacher", dest="teacher_id", type=str, help="Only classes owned by this teacher.")

    # delete-class
    p = subparsers.add_parser("delete-class", help="Delete a class and all of its quizzes and results.")
    p.add_argument("class_id", type=int, help="Class ID to delete.")
    p.add_argument("--confirm", action="store_true", help="Skip confirmation prompt.")

    # add-student
    p = subparsers.add_parser("add-student", help="Register a student.")
    p.add_argument("full_name", type=str, help="Student's full name.")
    p.add_argument("--email", type=str, help="Student email.")

    # join-class
    p = subparsers.add_parser("join-class", help="Enroll a student using a class join code.")
    p.add_argument("join_code", type=str, help="Class join code.")
    p.add_argument("--student", dest="student_id", type=int, required=True, help="Student ID.")

    # remove-student
    p = subparsers.add_parser("remove-student", help="Remove a student (and their results) from a class.")
    p.add_argument("student_id", type=int, help="Student ID.")
    p.add_argument("--class", dest="class_id", type=int, help="Class ID.")

    # list-students
    p = subparsers.add_parser("list-students", help="List students enrolled in a class.")
    p.add_argument("--class", dest="class_id", type=int, help="Class ID.")

    # use-class
    p = subparsers.add_parser("use-class", help="Make a class the default for commands run without --class.")
    p.add_argument("class_id", type=int, help="Class ID.")

    # post-lesson
    p = subparsers.add_parser("post-lesson", help="Post a lesson to a class.")
    p.add_argument("title", type=str, help="Lesson title.")
    p.add_argument("--class", dest="class_id", type=int, help="Class ID.")
    content = p.add_mutually_exclusive_group()
    content.add_argument("--content", type=str, default="", help="Lesson text.")
    content.add_argument("--content-file", type=str, help="Read the lesson text from a file.")
    p.add_argument("--link", dest="links", action="append", default=[], help="Reference URL (repeatable).")

    # list-lessons
    p = subparsers.add_parser("list-lessons", help="List lessons posted to a class.")
    p.add_argument("--class", dest="class_id", type=int, help="Class ID.")

    # delete-lesson
    p = subparsers.add_parser("delete-lesson", help="Delete a lesson.")
    p.add_argument("lesson_id", type=int, help="Lesson ID to delete.")
    p.add_argument("--confirm", action="store_true", help="Skip confirmation prompt.")


def handle_create_class(config, args):
    """Create a class and print its join code."""
    with cli_session(config) as session:
        try:
            new_class = create_class(
                session, args.name, subject=args.subject, teacher_id=getattr(args, "teacher_id", None)
            )
        except ValueError as e:
            print(f"Error: {e}")
            return
        print(f"[OK] Created class: {new_class.name} (ID: {new_class.id})")
        print(f"   Join code: {new_class.join_code}")


def handle_list_classes(config, args):
    """List classes with student, quiz and lesson counts."""
    with cli_session(config) as session:
        classes = list_classes(session, teacher_id=getattr(args, "teacher_id", None))
        if not classes:
            print("No classes found.")
            return

        print(f"\n{'ID':>5}  {'Name':<30} {'Code':<8} {'Students':>8} {'Quizzes':>7} {'Lessons':>7}")
        print(f"{'---':>5}  {'---':<30} {'---':<8} {'---':>8} {'---':>7} {'---':>7}")
        for c in classes:
            print(
                f"{c['id']:>5}  {c['name'][:28]:<30} {c['join_code']:<8} "
                f"{c['student_count']:>8} {c['quiz_count']:>7} {c['lesson_count']:>7}"
            )


def handle_delete_class(config, args):
    """Delete a class (with confirmation)."""
    with cli_session(config) as session:
        class_obj = get_class(session, args.class_id)
        if not class_obj:
            print(f"Error: Class with ID {args.class_id} not found.")
            return

        if not args.confirm:
            try:
                print(f"Delete class '{class_obj.name}' (ID: {class_obj.id})? This cannot be undone.")
                print("Type 'yes' to confirm: ", end="")
                response = input().strip().lower()
                if response != "yes":
                    print("Cancelled.")
                    return
            except (EOFError, KeyboardInterrupt):
                print("\nCancelled.")
                return

        name = class_obj.name
        if delete_class(session, args.class_id):
            print(f"[OK] Deleted class: {name} (ID: {args.class_id})")
        else:
            print("Error: Failed to delete class.")


def handle_add_student(config, args):
    """Register a student."""
    with cli_session(config) as session:
        try:
            student = create_student(session, args.full_name, email=args.email)
        except ValueError as e:
            print(f"Error: {e}")
            return
        print(f"[OK] Added student: {student.full_name} (ID: {student.id})")


def handle_join_class(config, args):
    """Enroll a student by join code."""
    with cli_session(config) as session:
        try:
            class_obj = join_class(session, args.join_code, args.student_id)
        except ValueError as e:
            print(f"Error: {e}")
            return
        print(f"[OK] Student {args.student_id} joined class: {class_obj.name} (ID: {class_obj.id})")


def handle_remove_student(config, args):
    """Remove a student from a class."""
    with cli_session(config) as session:
        class_id = resolve_class_id(config, args)
        if remove_student(session, class_id, args.student_id):
            print(f"[OK] Removed student {args.student_id} from class {class_id}")
        else:
            print(f"Error: Student {args.student_id} is not enrolled in class {class_id}.")


def handle_list_students(config, args):
    """List enrolled students."""
    with cli_session(config) as session:
        class_id = resolve_class_id(config, args)
        class_obj = get_class(session, class_id)
        if not class_obj:
            print(f"Error: Class with ID {class_id} not found.")
            return

        students = list_students(session, class_id)
        if not students:
            print(f"No students enrolled in {class_obj.name}.")
            return

        print(f"\nStudents in: {class_obj.name}")
        for s in students:
            email = f" <{s.email}>" if s.email else ""
            print(f"  {s.id:>5}  {s.full_name}{email}")


def handle_use_class(config, args):
    """Store the active class in the config file."""
    with cli_session(config) as session:
        class_obj = get_class(session, args.class_id)
        if not class_obj:
            print(f"Error: Class with ID {args.class_id} not found.")
            return
        name = class_obj.name

    config_path = getattr(args, "config", "config.yaml")
    if set_active_class(config_path, args.class_id):
        print(f"[OK] Active class: {name} (ID: {args.class_id})")
    else:
        print(f"Error: Could not update {config_path}.")


def handle_post_lesson(config, args):
    """Post a lesson to the selected class."""
    content = args.content
    if args.content_file:
        try:
            with open(args.content_file, encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            print(f"Error: File not found: {args.content_file}")
            return

    with cli_session(config) as session:
        class_id = resolve_class_id(config, args)
        try:
            lesson = create_lesson(session, class_id, args.title, content=content, links=args.links)
        except ValueError as e:
            print(f"Error: {e}")
            return
        print(f"[OK] Posted lesson: {lesson.title} (ID: {lesson.id}) to class {class_id}")
        dropped = len([link for link in args.links if link.strip()]) - len(lesson.links)
        if dropped:
            print(f"   Skipped {dropped} link(s) that are not http(s) URLs.")


def handle_list_lessons(config, args):
    """List a class's lessons, oldest first."""
    with cli_session(config) as session:
        class_id = resolve_class_id(config, args)
        class_obj = get_class(session, class_id)
        if not class_obj:
            print(f"Error: Class with ID {class_id} not found.")
            return

        lessons = list_lessons(session, class_id)
        if not lessons:
            print(f"No lessons posted to {class_obj.name}.")
            return

        print(f"\nLessons in: {class_obj.name}")
        for lesson in lessons:
            posted = lesson.created_at.strftime("%Y-%m-%d") if lesson.created_at else ""
            print(f"  {lesson.id:>5}  {posted:<10}  {lesson.title}")
            for link in lesson.links or []:
                print(f"         {link}")


def handle_delete_lesson(config, args):
    """Delete a lesson (with confirmation)."""
    with cli_session(config) as session:
        lesson = get_lesson(session, args.lesson_id)
        if lesson is None:
            print(f"Error: Lesson with ID {args.lesson_id} not found.")
            return

        if not args.confirm:
            print(f"Delete lesson '{lesson.title}' (ID: {lesson.id})? Type 'yes' to confirm: ", end="")
            try:
                response = input().strip().lower()
            except (EOFError, KeyboardInterrupt):
                response = ""
            if response != "yes":
                print("Cancelled.")
                return

        delete_lesson(session, args.lesson_id)
        print(f"[OK] Deleted lesson ID: {args.lesson_id}")
