import pytest

from certifyme.models.test_model import Question
from certifyme.services import scoring_service


def _question(correct_ids, option_ids=(1, 2, 3, 4)) -> Question:
    return Question.model_validate({
        "id": 1,
        "question_ua": "?",
        "answers": [{"id": i, "answer_ua": str(i), "is_correct": i in correct_ids} for i in option_ids],
    })


@pytest.mark.parametrize("selected, expected", [
    ({1, 2}, True),
    ({1}, False),           # partial overlap
    ({1, 2, 3}, False),     # superset
    ({3}, False),
    (set(), False),
])
def test_exact_set_equality(selected, expected) -> None:
    assert scoring_service.is_question_correct(_question({1, 2}), selected) is expected


def test_both_correct_answers_score_two_of_two(sample_test) -> None:
    selections = {10: {100}, 20: {201}}
    assert scoring_service.calculate_score(sample_test.questions, selections) == 2


def test_extra_wrong_option_makes_question_wrong(sample_test) -> None:
    selections = {10: {100, 101}, 20: {201}}
    assert scoring_service.calculate_score(sample_test.questions, selections) == 1
    incorrect = scoring_service.get_incorrect_questions(sample_test.questions, selections)
    assert [q.id for q in incorrect] == [10]


def test_unanswered_questions_are_wrong(sample_test) -> None:
    assert scoring_service.calculate_score(sample_test.questions, {}) == 0


def test_summarize_uses_fixed_score(sample_test) -> None:
    selections = {10: {100}}
    summary = scoring_service.summarize(sample_test.questions, selections, score=1)
    assert summary == {
        "score": 1,
        "total": 2,
        "percent": 50,
        "passed": False,
        "incorrect_question_ids": [20],
        "unanswered_count": 1,
    }


def test_percent_and_pass_threshold() -> None:
    assert scoring_service.score_percent(0, 0) == 0
    assert scoring_service.score_percent(3, 5) == 60
    assert scoring_service.is_passed(60)
    assert not scoring_service.is_passed(59.9)
