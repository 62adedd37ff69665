"""
models/attempt_state.py

State of one test attempt (the answer sheet).
Pydantic BaseModel based; no I/O, no UI code.

Phases:
    loading -> in_progress -> submitted

`submit()` is the only way into `submitted` and succeeds exactly once,
whether it is triggered by the user or by the timer.
"""

import time
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field

from certifyme.models.test_model import Test


class AttemptPhase(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class SubmitReason(str, Enum):
    MANUAL = "manual"
    TIMEOUT = "timeout"


class AttemptState(BaseModel):
    """
    Attributes:
        test_id:       id of the test being taken.
        phase:         current phase of the attempt.
        test:          loaded test definition (None while loading).
        selections:    {question.id: set of selected answer ids}.
        submit_reason: how the attempt ended (None until submitted).
        score:         number of fully correct questions, fixed at submission.
        start_time:    Unix timestamp of the moment questions became available.
    """

    test_id: int = Field(..., description="Id of the test being taken")
    phase: AttemptPhase = Field(default=AttemptPhase.LOADING)
    test: Optional[Test] = Field(default=None)
    selections: Dict[int, Set[int]] = Field(default_factory=dict)
    submit_reason: Optional[SubmitReason] = Field(default=None)
    score: Optional[int] = Field(default=None)
    start_time: Optional[float] = Field(default=None)

    @property
    def is_submitted(self) -> bool:
        return self.phase is AttemptPhase.SUBMITTED

    @property
    def total(self) -> int:
        return len(self.test.questions) if self.test else 0

    def begin(self, test: Test) -> None:
        """loading -> in_progress. Selections start empty."""
        if self.phase is not AttemptPhase.LOADING:
            raise ValueError(f"Cannot start attempt in phase '{self.phase.value}'")
        if test.id != self.test_id:
            raise ValueError(f"Loaded test {test.id} does not match attempt test {self.test_id}")
        self.test = test
        self.selections = {}
        self.start_time = time.time()
        self.phase = AttemptPhase.IN_PROGRESS

    def toggle(self, question_id: int, answer_id: int) -> Set[int]:
        """
        Flip membership of `answer_id` in the selection of `question_id`.

        Returns the resulting selection for that question.
        """
        if self.phase is not AttemptPhase.IN_PROGRESS:
            raise ValueError("Answers can only change while the attempt is in progress")
        question = self.test.question(question_id)
        if answer_id not in question.answer_ids:
            raise ValueError(f"Answer {answer_id} is not an option of question {question_id}")

        selected = self.selections.setdefault(question_id, set())
        if answer_id in selected:
            selected.discard(answer_id)
        else:
            selected.add(answer_id)
        return set(selected)

    def submit(self, reason: SubmitReason, score: int) -> bool:
        """
        in_progress -> submitted.

        Returns False (and changes nothing) when the attempt is not in
        progress, so a late timer tick after a manual submit is a no-op.
        """
        if self.phase is not AttemptPhase.IN_PROGRESS:
            return False
        self.phase = AttemptPhase.SUBMITTED
        self.submit_reason = SubmitReason(reason)
        self.score = score
        return True

    def selected_for(self, question_id: int) -> Set[int]:
        return set(self.selections.get(question_id, set()))

    def answered_ids(self) -> List[int]:
        return [qid for qid, sel in self.selections.items() if sel]
