from types import SimpleNamespace

import pytest

from tutorhub.services.scoring import grade_answers, letter_to_index, resolve_option, round_half_up, score


KEY = [{"question_id": 1, "options": ["Paris", "Lyon", "Nice"], "correct_answer": "Paris"}]


def test_correct_letter_scores_100():
    assert score({1: "A"}, KEY) == 100


def test_wrong_letter_scores_0():
    assert score({1: "B"}, KEY) == 0


def test_string_keys_from_json_are_accepted():
    assert score({"1": "a"}, KEY) == 100


def test_letters_resolve_against_each_questions_own_options():
    key = [
        SimpleNamespace(id=1, options=["Paris", "Lyon"], correct_answer="Lyon"),
        SimpleNamespace(id=2, options=["3", "4", "5", "6"], correct_answer="6"),
    ]
    result = grade_answers({"1": "B", "2": "D"}, key)
    assert (result.correct, result.total, result.percent) == (2, 2, 100)


def test_malformed_letter_is_wrong_and_reported():
    key = KEY + [{"question_id": 2, "options": ["x", "y"], "correct_answer": "y"}]
    result = grade_answers({1: "A", 2: "Z"}, key)
    assert result.percent == 50
    assert len(result.warnings) == 1
    assert "question 2" in result.warnings[0]
    assert result.breakdown[1]["is_correct"] is False


def test_missing_and_blank_answers_are_wrong_without_warning():
    key = KEY + [{"question_id": 2, "options": ["x", "y"], "correct_answer": "y"}]
    result = grade_answers({1: "  "}, key)
    assert result.percent == 0
    assert result.warnings == []


def test_empty_key_scores_zero_with_warning():
    result = grade_answers({1: "A"}, [])
    assert result.percent == 0
    assert result.total == 0
    assert result.warnings


def test_score_is_idempotent():
    answers = {1: "A", 2: "C", 3: "B"}
    key = [
        {"question_id": 1, "options": ["a", "b"], "correct_answer": "a"},
        {"question_id": 2, "options": ["a", "b", "c"], "correct_answer": "b"},
        {"question_id": 3, "options": ["a", "b"], "correct_answer": "b"},
    ]
    assert score(answers, key) == score(answers, key) == 67


@pytest.mark.parametrize(
    "num,den,expected",
    [(1, 2, 1), (1, 3, 0), (2, 3, 1), (50, 100, 1), (250, 3, 83), (0, 5, 0), (5, 0, 0)],
)
def test_round_half_up(num, den, expected):
    assert round_half_up(num, den) == expected


def test_one_of_eight_rounds_half_up():
    key = [{"question_id": i, "options": ["a", "b"], "correct_answer": "a"} for i in range(8)]
    # 12.5% -> 13
    assert score({0: "A"}, key) == 13


def test_letter_helpers():
    assert letter_to_index(" c ") == 2
    assert letter_to_index("AB") is None
    assert letter_to_index(1) is None
    assert resolve_option("D", ["a", "b", "c"]) is None


def test_string_question_ids_score_without_error():
    key = [{"question_id": "q1", "options": ["Paris", "Lyon", "Nice"], "correct_answer": "Paris"}]
    assert score({"q1": "A"}, key) == 100
    assert score({"q1": "B"}, key) == 0


def test_mixed_id_types_match_after_normalizing():
    key = [{"question_id": "7", "options": ["x", "y"], "correct_answer": "y"}]
    assert score({7: "B"}, key) == 100


def test_key_without_any_id_does_not_raise():
    result = grade_answers({}, [{"options": ["a"], "correct_answer": "a"}])
    assert (result.correct, result.total, result.percent) == (0, 1, 0)
