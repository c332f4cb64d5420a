"""
Tests for the quiz scorer (quizgrade/scoring.py).

Covers strict multiple-choice matching, case-insensitive free-text
matching, point weighting, legacy records and rounding.
"""

import pytest

from quizgrade.scoring import (
    calculate_percentage,
    calculate_total_points,
    normalize_answers,
    normalize_question,
    preview_score,
    round_half_up,
    score_quiz,
)


def _mc(correct_index=1, points=1):
    return {
        "type": "multiple-choice",
        "text": "Pick one",
        "options": ["a", "b", "c"],
        "correct_index": correct_index,
        "points": points,
    }


def _ft(answer="Paris", points=1):
    return {"type": "free-text", "text": "Capital of France?", "correct_answer": answer, "points": points}


class TestMultipleChoice:
    def test_correct_index_scores(self):
        result = score_quiz([_mc()], {0: 1})
        assert result["per_question_correct"] == [True]
        assert result["points_earned"] == 1
        assert result["percentage"] == 100

    def test_wrong_index(self):
        result = score_quiz([_mc()], {0: 2})
        assert result["per_question_correct"] == [False]
        assert result["percentage"] == 0

    def test_string_index_is_not_coerced(self):
        assert score_quiz([_mc()], {0: "1"})["points_earned"] == 0

    def test_bool_is_not_an_index(self):
        assert score_quiz([_mc()], {0: True})["points_earned"] == 0

    def test_missing_answer_never_matches(self):
        assert score_quiz([_mc(correct_index=0)], {})["points_earned"] == 0


class TestFreeText:
    @pytest.mark.parametrize("answer", ["Paris", "  paris ", "PARIS"])
    def test_case_and_whitespace_insensitive(self, answer):
        result = score_quiz([_ft()], {0: answer})
        assert result["per_question_correct"] == [True]

    def test_all_spellings_score_identically(self):
        scores = [score_quiz([_ft()], {0: a}) for a in ("Paris", "  paris ", "PARIS")]
        assert scores[0] == scores[1] == scores[2]

    def test_wrong_text(self):
        assert score_quiz([_ft()], {0: "Lyon"})["points_earned"] == 0

    def test_missing_correct_answer_never_matches(self):
        question = {"type": "free-text", "text": "?"}
        assert score_quiz([question], {0: ""})["points_earned"] == 0

    def test_number_answer_compared_as_text(self):
        assert score_quiz([_ft(answer="42")], {0: 42})["points_earned"] == 1


class TestPointsWeighting:
    def test_weighted_percentage(self):
        questions = [_mc(points=1), _ft(points=3)]
        result = score_quiz(questions, {0: 0, 1: "paris"})
        assert result["points_earned"] == 3
        assert result["total_points"] == 4
        assert result["percentage"] == 75
        assert result["correct_count"] == 1
        assert result["points_per_question"] == [0, 3]

    def test_missing_points_default_to_one(self):
        question = _mc()
        del question["points"]
        assert calculate_total_points([question, _ft(points=2)]) == 3

    def test_zero_points_treated_as_one(self):
        assert calculate_total_points([_mc(points=0)]) == 1


class TestPercentage:
    def test_empty_answers_score_zero(self):
        result = score_quiz([_mc(), _ft()], {})
        assert result["percentage"] == 0
        assert result["total_questions"] == 2

    def test_no_questions(self):
        result = score_quiz([], {0: 1})
        assert result["total_points"] == 0
        assert result["percentage"] == 0

    def test_zero_total_short_circuits(self):
        assert calculate_percentage(5, 0) == 0

    def test_half_rounds_up(self):
        # 1 of 8 points is 12.5%
        questions = [_mc(points=1), _mc(points=7)]
        assert score_quiz(questions, {0: 1})["percentage"] == 13
        assert round_half_up(2.5) == 3
        assert round_half_up(0.49) == 0

    def test_third_rounds_down(self):
        questions = [_mc(), _mc(), _mc()]
        assert score_quiz(questions, {0: 1})["percentage"] == 33

    def test_bounds(self):
        questions = [_mc(), _ft(points=2)]
        for answers in ({}, {0: 1}, {1: "paris"}, {0: 1, 1: "paris"}):
            assert 0 <= score_quiz(questions, answers)["percentage"] <= 100

    def test_deterministic(self):
        questions = [_mc(), _ft(points=2)]
        answers = {0: 1, 1: "nope"}
        assert score_quiz(questions, answers) == score_quiz(questions, answers)


class TestNormalization:
    def test_string_keys_from_json(self):
        assert normalize_answers({"0": 1, "1": "x", "bad": 2}) == {0: 1, 1: "x"}

    def test_list_answers(self):
        assert normalize_answers([1, None, "paris"]) == {0: 1, 2: "paris"}

    def test_legacy_enumeration_question(self):
        legacy = {"type": "enumeration", "question": "Capital?", "correctAnswer": "Paris"}
        normalized = normalize_question(legacy)
        assert normalized["type"] == "free-text"
        assert normalized["correct_answer"] == "Paris"
        assert normalized["text"] == "Capital?"
        assert normalized["points"] == 1

    def test_legacy_multiple_choice_question(self):
        legacy = {"type": "multiple-choice", "options": ["x", "y"], "correctAnswer": 1}
        assert score_quiz([legacy], {"0": 1})["points_earned"] == 1


class TestPreview:
    def test_lists_unanswered(self):
        result = preview_score([_mc(), _ft(), _ft()], {0: 0, 1: "  "})
        assert result["unanswered"] == [1, 2]
        assert result["percentage"] == 0
