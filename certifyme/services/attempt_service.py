"""
services/attempt_service.py

One timed attempt of one test, end to end:

    load test -> in_progress (countdown running, answers toggled)
              -> submit (manual or timeout, exactly once)
              -> score fixed, achievements unlocked
              -> explanations / certificate on demand

Manual submission and timer expiry share the same `submit()`; the attempt
state machine lets only the first one through and the countdown is cancelled
as soon as the attempt is submitted.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from certifyme.models.api_schemas import Achievement
from certifyme.models.attempt_state import AttemptPhase, AttemptState, SubmitReason
from certifyme.models.result import ApiError, Err, ErrorKind, Ok, Result
from certifyme.models.test_model import Test
from certifyme.services.achievement_notifier import AchievementNotifier
from certifyme.services.api_client import CertifyMeClient
from certifyme.services.certificate_service import CertificateFile, CertificateRequester
from certifyme.services.client_store import ExplanationEntry
from certifyme.services.explanation_cache import ExplanationCache
from certifyme.services.notices import NoticeBoard
from certifyme.services.scoring_service import calculate_score, summarize
from certifyme.services.timer import SECONDS_PER_QUESTION, WARNING_SECONDS, CountdownTimer, Sleep

logger = logging.getLogger(__name__)


class AttemptSession:
    def __init__(
        self,
        test_id: int,
        client: CertifyMeClient,
        notices: NoticeBoard,
        notifier: AchievementNotifier,
        explanations: ExplanationCache,
        certificates: CertificateRequester,
        seconds_per_question: int = SECONDS_PER_QUESTION,
        warning_seconds: int = WARNING_SECONDS,
        pass_percent: float = 60.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.client = client
        self.notices = notices
        self.notifier = notifier
        self.explanations = explanations
        self.certificates = certificates
        self.seconds_per_question = seconds_per_question
        self.warning_seconds = warning_seconds
        self.pass_percent = pass_percent
        self._sleep = sleep

        self.state = AttemptState(test_id=test_id)
        self.timer: Optional[CountdownTimer] = None
        self.unlocked: List[Achievement] = []

    @property
    def test(self) -> Optional[Test]:
        return self.state.test

    # ── loading ────────────────────────────────────────────────────────────

    async def load(self, start_timer: bool = True) -> Result[Test]:
        """
        Fetch the test and move to in_progress.

        On failure the attempt stays in `loading` and an error notice is posted.
        """
        result = await self.client.get_test(self.state.test_id)
        if isinstance(result, Err):
            logger.warning(f"Loading test {self.state.test_id} failed: {result.error}")
            self.notices.error("Не вдалося завантажити тест", "Failed to load test")
            return result

        test = result.value
        self.state.begin(test)
        self.timer = CountdownTimer.for_questions(
            len(test.questions),
            on_expire=self._on_timeout,
            seconds_per_question=self.seconds_per_question,
            warning_seconds=self.warning_seconds,
        )
        logger.info(f"Attempt started: test {test.id}, {len(test.questions)} questions, {self.timer.total}s")
        if start_timer:
            self.timer.start(self._sleep)
        return Ok(test)

    # ── answering ──────────────────────────────────────────────────────────

    def toggle(self, question_id: int, answer_id: int) -> Set[int]:
        return self.state.toggle(question_id, answer_id)

    # ── submission ─────────────────────────────────────────────────────────

    async def submit(self, reason: SubmitReason = SubmitReason.MANUAL) -> bool:
        """
        The single submission path. Returns True only for the call that
        actually submitted the attempt.
        """
        if self.state.phase is not AttemptPhase.IN_PROGRESS:
            return False

        score = calculate_score(self.state.test.questions, self.state.selections)
        if not self.state.submit(reason, score):
            return False
        if self.timer is not None:
            self.timer.cancel()

        logger.info(
            f"Attempt submitted ({SubmitReason(reason).value}): "
            f"test {self.state.test_id}, score {score}/{self.state.total}"
        )
        if reason == SubmitReason.TIMEOUT:
            self.notices.info("⏰ Час вичерпано. Тест завершено.", "⏰ Time is up. The test was submitted.")

        self.unlocked = await self.notifier.after_submission(score, self.state.total)
        return True

    async def _on_timeout(self) -> None:
        await self.submit(SubmitReason.TIMEOUT)

    def close(self) -> None:
        """Teardown: stop the countdown so nothing fires after the attempt is gone."""
        if self.timer is not None:
            self.timer.cancel()

    # ── after submission ───────────────────────────────────────────────────

    def results(self) -> Dict[str, object]:
        if not self.state.is_submitted:
            raise ValueError("The attempt has not been submitted yet")
        summary = summarize(
            self.state.test.questions,
            self.state.selections,
            self.state.score,
            self.pass_percent,
        )
        summary["reason"] = self.state.submit_reason.value
        summary["unlocked"] = [a.model_dump() for a in self.unlocked]
        return summary

    async def explain(self, index: int, lang: str = "ua") -> Result[ExplanationEntry]:
        if not self.state.is_submitted:
            raise ValueError("Explanations are available after submission")
        if not 0 <= index < len(self.test.questions):
            raise IndexError(f"Question index {index} out of range")
        question = self.test.questions[index]
        return await self.explanations.toggle(
            self.test.id,
            index,
            question,
            self.state.selected_for(question.id),
            lang,
        )

    async def certificate(self, lang: str = "ua") -> Result[CertificateFile]:
        if not self.state.is_submitted:
            return Err(ApiError(ErrorKind.UNSUCCESSFUL, "The attempt has not been submitted yet"))
        return await self.certificates.request(
            self.test.text("title", lang),
            self.state.score,
            self.state.total,
        )

    # ── view ───────────────────────────────────────────────────────────────

    def snapshot(self, lang: str = "ua") -> Dict[str, object]:
        data: Dict[str, object] = {
            "test_id": self.state.test_id,
            "phase": self.state.phase.value,
        }
        if self.test is None:
            return data

        cached = self.explanations.store.explanations(self.test.id)
        questions = []
        for index, q in enumerate(self.test.questions):
            item = {
                "id": q.id,
                "index": index,
                "question": q.text("question", lang),
                "answers": [
                    {"id": a.id, "answer": a.text("answer", lang) or "—"}
                    for a in q.answers
                ],
                "selected": sorted(self.state.selected_for(q.id)),
            }
            entry = cached.get(index)
            if self.state.is_submitted and entry is not None and entry.visible:
                item["explanation"] = entry.text(lang)
            questions.append(item)

        data.update({
            "title": self.test.text("title", lang),
            "description": self.test.text("description", lang),
            "total": self.state.total,
            "answered_count": len(self.state.answered_ids()),
            "questions": questions,
        })
        if self.timer is not None:
            data["remaining_seconds"] = self.timer.remaining
            data["remaining"] = self.timer.format_remaining()
            data["timer_warning"] = self.timer.is_warning
        if self.state.is_submitted:
            data["results"] = self.results()
        return data
