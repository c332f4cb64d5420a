"""
Tests for quizgrade/gradebook_export.py and quizgrade/export_utils.py.
"""

import csv
import io
from datetime import date, datetime

from quizgrade.export_utils import rows_to_quoted_csv, sanitize_filename
from quizgrade.gradebook_export import (
    QUIZ_HEADERS,
    QUIZ_RESULT_HEADERS,
    STUDENT_HEADERS,
    build_gradebook_rows,
    export_gradebook,
    export_quiz_results,
    filter_quizzes,
    gradebook_filename,
)


def _quiz(quiz_id, title, points, created_at=None):
    return {
        "id": quiz_id,
        "title": title,
        "questions": [{"type": "free-text", "correct_answer": "x", "points": p} for p in points],
        "created_at": created_at,
        "grading_scale": "traditional",
        "passing_grade": 70,
    }


def _parse(text):
    return list(csv.reader(io.StringIO(text)))


STUDENTS = [
    {"id": 1, "full_name": "Ada Lovelace", "email": "ada@example.com"},
    {"id": 2, "full_name": "Grace Hopper", "email": "grace@example.com"},
]
QUIZZES = [_quiz(10, "Quiz A", [5, 5]), _quiz(11, "Quiz B", [10])]
RESULTS = [
    {"student_id": 1, "quiz_id": 10, "points_earned": 10, "percentage": 100},
    {"student_id": 1, "quiz_id": 11, "points_earned": 5, "percentage": 50},
    {"student_id": 2, "quiz_id": 10, "points_earned": 5, "percentage": 50},
]


class TestQuotedCsv:
    def test_every_cell_quoted(self):
        assert rows_to_quoted_csv([["a", 1], ["b", None]]) == '"a","1"\n"b",""'

    def test_embedded_quotes_doubled(self):
        assert rows_to_quoted_csv([['say "hi"']]) == '"say ""hi"""'

    def test_empty_row_is_blank_line(self):
        assert rows_to_quoted_csv([["a"], [], ["b"]]) == '"a"\n\n"b"'

    def test_no_formula_escaping(self):
        assert rows_to_quoted_csv([["=SUM(A1)"]]) == '"=SUM(A1)"'


class TestSanitizeFilename:
    def test_spaces_become_underscores(self):
        assert sanitize_filename("Period 1 Science") == "Period_1_Science"

    def test_special_chars_removed(self):
        assert sanitize_filename("Quiz: <Cells>/Atoms?") == "Quiz_CellsAtoms"

    def test_empty_uses_default(self):
        assert sanitize_filename("???", default="class") == "class"
        assert sanitize_filename(None) == "export"

    def test_truncated(self):
        assert len(sanitize_filename("x" * 200)) == 80


class TestGradebook:
    def test_sections_and_values(self):
        rows = build_gradebook_rows(STUDENTS, QUIZZES, RESULTS, class_name="Bio")
        assert rows[0] == ["Class", "Bio"]
        assert rows[1] == ["Total Students", 2]
        # Ada 15/20 = 75%, Grace 5/20 = 25%
        assert rows[2] == ["Class Average", "50%"]
        assert rows[3] == ["Quizzes", 2]
        assert rows[4] == []
        assert rows[5] == QUIZ_HEADERS
        assert rows[6] == ["Quiz A", 7.5, 10, 2]
        assert rows[7] == ["Quiz B", 5, 10, 1]
        assert rows[8] == []
        assert rows[9] == STUDENT_HEADERS + ["Quiz A", "Quiz B"]
        assert rows[10] == ["Ada Lovelace", "75%", 15, 20, 10, 5]
        assert rows[11] == ["Grace Hopper", "25%", 5, 20, 5, 0]

    def test_summary_without_class_name(self):
        rows = build_gradebook_rows(STUDENTS, QUIZZES, RESULTS)
        assert rows[0] == ["Total Students", 2]

    def test_results_for_unknown_students_ignored(self):
        results = RESULTS + [{"student_id": 99, "quiz_id": 10, "points_earned": 10}]
        rows = build_gradebook_rows(STUDENTS, QUIZZES, results)
        quiz_a = [r for r in rows if r and r[0] == "Quiz A"][0]
        assert quiz_a[3] == 2

    def test_csv_parses_back_with_awkward_names(self):
        students = [{"id": 1, "full_name": 'O\'Brien, "Pat"'}]
        quizzes = [_quiz(10, "Cells, Part 1", [1])]
        text = export_gradebook(students, quizzes, [], class_name="Bio")
        parsed = _parse(text)
        assert parsed[-2][-1] == "Cells, Part 1"
        assert parsed[-1][0] == 'O\'Brien, "Pat"'
        assert not text.endswith("\n")

    def test_latest_submission_used(self):
        results = [
            {"student_id": 1, "quiz_id": 10, "points_earned": 2, "submitted_at": datetime(2024, 1, 1)},
            {"student_id": 1, "quiz_id": 10, "points_earned": 8, "submitted_at": datetime(2024, 1, 2)},
        ]
        rows = build_gradebook_rows(STUDENTS[:1], QUIZZES[:1], results)
        assert rows[-1] == ["Ada Lovelace", "80%", 8, 10, 8]

    def test_no_quizzes(self):
        rows = build_gradebook_rows(STUDENTS, [], [])
        assert rows[-1] == ["Grace Hopper", "0%", 0, 0]


class TestQuizResults:
    def test_submitted_and_missing(self):
        results = [
            {
                "student_id": 1,
                "quiz_id": 10,
                "points_earned": 8,
                "percentage": 80,
                "submitted_at": datetime(2024, 3, 5, 14, 30),
            }
        ]
        parsed = _parse(export_quiz_results(STUDENTS, QUIZZES[0], results))
        assert parsed[0] == QUIZ_RESULT_HEADERS
        assert parsed[1] == ["Ada Lovelace", "ada@example.com", "8", "10", "80%", "B", "Pass", "2024-03-05 14:30"]
        assert parsed[2] == ["Grace Hopper", "grace@example.com", "0", "10", "0%", "F", "Not Submitted", ""]

    def test_quiz_scale_and_passing_grade(self):
        quiz = dict(QUIZZES[0], grading_scale="pass_fail", passing_grade=50)
        results = [{"student_id": 1, "quiz_id": 10, "points_earned": 6, "percentage": 60}]
        parsed = _parse(export_quiz_results(STUDENTS[:1], quiz, results))
        assert parsed[1][5:7] == ["Fail", "Pass"]


class TestScope:
    QUIZZES = [
        _quiz(1, "Early", [1], created_at=datetime(2024, 1, 10, 9, 0)),
        _quiz(2, "Late", [1], created_at=datetime(2024, 2, 20, 23, 59)),
        _quiz(3, "Undated", [1]),
    ]

    def test_no_filter_returns_all(self):
        assert len(filter_quizzes(self.QUIZZES)) == 3

    def test_end_date_covers_whole_day(self):
        selected = filter_quizzes(self.QUIZZES, start_date=date(2024, 2, 1), end_date=date(2024, 2, 20))
        assert [q["title"] for q in selected] == ["Late"]

    def test_open_ended_range(self):
        assert [q["title"] for q in filter_quizzes(self.QUIZZES, end_date=date(2024, 1, 31))] == ["Early"]
        assert [q["title"] for q in filter_quizzes(self.QUIZZES, start_date=date(2024, 1, 10))] == ["Early", "Late"]

    def test_quiz_id_wins(self):
        selected = filter_quizzes(self.QUIZZES, start_date=date(2030, 1, 1), quiz_id=3)
        assert [q["title"] for q in selected] == ["Undated"]

    def test_iso_string_dates(self):
        quizzes = [_quiz(1, "Str", [1], created_at="2024-05-01T10:00:00")]
        assert filter_quizzes(quizzes, start_date=date(2024, 5, 1), end_date=date(2024, 5, 1)) == quizzes


class TestFilename:
    EXPORTED = date(2024, 6, 1)

    def test_all(self):
        assert gradebook_filename("Period 1", export_date=self.EXPORTED) == "Period_1_gradebook_all_2024-06-01.csv"

    def test_range(self):
        name = gradebook_filename("Bio", date(2024, 1, 1), date(2024, 3, 31), export_date=self.EXPORTED)
        assert name == "Bio_gradebook_2024-01-01_to_2024-03-31_2024-06-01.csv"

    def test_open_ranges(self):
        assert gradebook_filename("Bio", start_date=date(2024, 1, 1), export_date=self.EXPORTED) == (
            "Bio_gradebook_from_2024-01-01_2024-06-01.csv"
        )
        assert gradebook_filename("Bio", end_date=date(2024, 1, 1), export_date=self.EXPORTED) == (
            "Bio_gradebook_until_2024-01-01_2024-06-01.csv"
        )

    def test_single_quiz(self):
        name = gradebook_filename("Bio", quiz_title="Cells: Part 1", export_date=self.EXPORTED)
        assert name == "Bio_gradebook_quiz_Cells_Part_1_2024-06-01.csv"
