"""
services/scoring_service.py

Attempt grading and result summary.
Pure Python functions; no I/O, no global state.
"""

from typing import AbstractSet, Dict, List, Mapping

from certifyme.models.test_model import Question


def is_question_correct(question: Question, selected: AbstractSet[int]) -> bool:
    """
    A question counts as correct only when the selected ids are exactly the
    correct ids: same size, every correct id present, nothing extra.
    """
    return set(selected) == set(question.correct_ids)


def calculate_score(
    questions: List[Question],
    selections: Mapping[int, AbstractSet[int]],
) -> int:
    """
    Number of fully correct questions.

    Questions without any selection are wrong unless the backend declared no
    correct option for them.
    """
    return sum(
        1
        for q in questions
        if is_question_correct(q, selections.get(q.id, frozenset()))
    )


def get_incorrect_questions(
    questions: List[Question],
    selections: Mapping[int, AbstractSet[int]],
) -> List[Question]:
    """Questions answered wrongly or not at all, in test order."""
    return [
        q for q in questions
        if not is_question_correct(q, selections.get(q.id, frozenset()))
    ]


def score_percent(score: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(score / total * 100)


def is_passed(percent: float, pass_percent: float = 60.0) -> bool:
    return percent >= pass_percent


def summarize(
    questions: List[Question],
    selections: Mapping[int, AbstractSet[int]],
    score: int,
    pass_percent: float = 60.0,
) -> Dict[str, object]:
    """
    Result breakdown for display.

    `score` is the value fixed at submission; it is not recomputed here.
    """
    total = len(questions)
    percent = score_percent(score, total)
    incorrect = get_incorrect_questions(questions, selections)
    unanswered = sum(1 for q in questions if not selections.get(q.id))
    return {
        "score": score,
        "total": total,
        "percent": percent,
        "passed": is_passed(percent, pass_percent),
        "incorrect_question_ids": [q.id for q in incorrect],
        "unanswered_count": unanswered,
    }
