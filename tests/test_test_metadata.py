from certifyme.models import test_model
from certifyme.services import test_metadata


def _build(questions, **extra):
    return test_model.Test.model_validate({"id": 1, "title_ua": "Тест", "questions": questions, **extra})


def test_describe_uses_inferred_values(sample_test) -> None:
    info = test_metadata.describe(sample_test, "en")

    assert info["title"] == "Python Basics"
    assert info["question_count"] == 2
    assert info["minutes_per_question"] == 2
    assert info["total_minutes"] == 4
    assert info["difficulty"] == "Easy"
    assert "python" in info["tags"]


def test_backend_values_win(test_payload) -> None:
    test = test_model.Test.model_validate({**test_payload, "difficulty": "Expert", "tags": ["exam"]})
    info = test_metadata.describe(test, "ua")
    assert info["difficulty"] == "Expert"
    assert info["tags"] == ["exam"]


def test_difficulty_grows_with_options_and_correct_answers() -> None:
    many = [
        {
            "id": i,
            "question_ua": "x" * 400,
            "answers": [{"id": j, "answer_ua": str(j), "is_correct": j < 3} for j in range(6)],
        }
        for i in range(3)
    ]
    assert test_metadata.infer_difficulty(_build(many)) == "hard"
    assert test_metadata.infer_difficulty(_build([])) == "unknown"


def test_tags_fall_back_to_frequent_words() -> None:
    questions = [{
        "id": 1,
        "question_ua": "морська навігація навігація навігація компас компас",
        "answers": [{"id": 1, "answer_ua": "широта", "is_correct": True}],
    }]
    tags = test_metadata.infer_tags(_build(questions))
    assert tags[:2] == ["навігація", "компас"]
