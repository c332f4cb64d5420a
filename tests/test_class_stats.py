"""
Tests for quizgrade/class_stats.py -- aggregation, dedup and trends.
"""

from datetime import datetime

from quizgrade.class_stats import (
    calculate_class_stats,
    detect_trend,
    filter_enrolled,
    generate_grade_distribution,
    latest_submissions,
    result_percentage,
)


def _result(student_id, quiz_id, percentage, points=None, submitted_at=None):
    return {
        "student_id": student_id,
        "quiz_id": quiz_id,
        "percentage": percentage,
        "points_earned": percentage if points is None else points,
        "submitted_at": submitted_at,
    }


class TestLatestSubmissions:
    def test_keeps_latest_per_pair(self):
        older = _result(1, 1, 40, submitted_at=datetime(2024, 1, 1))
        newer = _result(1, 1, 90, submitted_at=datetime(2024, 1, 2))
        assert latest_submissions([newer, older]) == [newer]

    def test_tie_keeps_later_record(self):
        stamp = datetime(2024, 1, 1)
        first = _result(1, 1, 40, submitted_at=stamp)
        second = _result(1, 1, 60, submitted_at=stamp)
        assert latest_submissions([first, second]) == [second]

    def test_iso_strings_are_compared_as_times(self):
        older = _result(1, 1, 40, submitted_at="2024-01-01T09:00:00")
        newer = _result(1, 1, 90, submitted_at="2024-01-01T10:00:00")
        assert latest_submissions([newer, older]) == [newer]

    def test_distinct_pairs_untouched(self):
        results = [_result(1, 1, 50), _result(1, 2, 60), _result(2, 1, 70)]
        assert latest_submissions(results) == results


class TestClassStats:
    def test_empty_results(self):
        stats = calculate_class_stats([])
        assert stats["total_students"] == 0
        assert stats["total_submissions"] == 0
        assert stats["average_percentage"] == 0
        assert stats["pass_rate"] == 0
        assert [d["grade"] for d in stats["grade_distribution"]] == ["A", "B", "C", "D", "F"]
        assert all(d["count"] == 0 for d in stats["grade_distribution"])

    def test_basic_aggregation(self):
        results = [_result(1, 1, 95), _result(2, 1, 75), _result(3, 1, 50)]
        stats = calculate_class_stats(results)
        assert stats["total_students"] == 3
        assert stats["total_quizzes"] == 1
        assert stats["average_percentage"] == 73
        assert stats["passed_students"] == 2
        assert stats["failed_students"] == 1
        assert stats["pass_rate"] == 67
        counts = {d["grade"]: d["count"] for d in stats["grade_distribution"]}
        assert counts == {"A": 1, "B": 0, "C": 1, "D": 0, "F": 1}

    def test_duplicate_submission_counted_once(self):
        results = [
            _result(1, 1, 40, submitted_at=datetime(2024, 1, 1)),
            _result(1, 1, 90, submitted_at=datetime(2024, 1, 2)),
        ]
        stats = calculate_class_stats(results)
        assert stats["total_submissions"] == 1
        assert stats["average_percentage"] == 90

    def test_removed_students_excluded(self):
        results = [_result(1, 1, 100), _result(99, 1, 0)]
        stats = calculate_class_stats(results, enrolled_student_ids=[1])
        assert stats["total_students"] == 1
        assert stats["average_percentage"] == 100

    def test_custom_passing_grade(self):
        stats = calculate_class_stats([_result(1, 1, 65)], passing_grade=60)
        assert stats["passed_students"] == 1
        assert stats["pass_rate"] == 100

    def test_legacy_score_field(self):
        assert result_percentage({"score": 80}) == 80
        assert result_percentage({}) == 0


class TestDistribution:
    def test_lists_every_band_of_scale(self):
        dist = generate_grade_distribution([_result(1, 1, 80)], "pass_fail")
        assert dist == [
            {"grade": "Pass", "count": 1, "color": "#10b981"},
            {"grade": "Fail", "count": 0, "color": "#ef4444"},
        ]

    def test_fallback_label_appended(self):
        scale = {"bands": [{"label": "Top", "min": 90, "max": 100, "color": "#000"}]}
        dist = generate_grade_distribution([_result(1, 1, 40)], scale)
        assert dist[-1] == {"grade": "F", "count": 1, "color": "#6b7280"}

    def test_filter_enrolled(self):
        results = [_result(1, 1, 10), _result(2, 1, 20)]
        assert filter_enrolled(results, {2}) == [results[1]]


class TestTrend:
    def test_short_series_is_stable(self):
        assert detect_trend([80]) == "stable"
        assert detect_trend([80, 90]) == "stable"
        assert detect_trend([]) == "stable"

    def test_improving(self):
        assert detect_trend([50, 55, 52, 90, 92, 95]) == "improving"

    def test_declining(self):
        assert detect_trend([95, 92, 90, 60, 55, 50]) == "declining"

    def test_within_threshold_is_stable(self):
        assert detect_trend([80, 80, 82, 84, 83]) == "stable"

    def test_three_scores_compare_with_themselves(self):
        assert detect_trend([10, 50, 100]) == "stable"
