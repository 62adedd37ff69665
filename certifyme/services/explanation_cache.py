"""
services/explanation_cache.py

Per-question explanations, fetched lazily and kept in the client store.

The first request for a question goes to the backend; every later request
for the same (test, question index) only flips visibility.
"""

import logging
from typing import AbstractSet

from certifyme.models.result import Err, Ok, Result
from certifyme.models.test_model import Question
from certifyme.services.api_client import CertifyMeClient
from certifyme.services.client_store import ClientStore, ExplanationEntry
from certifyme.services.notices import NoticeBoard

logger = logging.getLogger(__name__)


class ExplanationCache:
    def __init__(self, client: CertifyMeClient, store: ClientStore, notices: NoticeBoard):
        self.client = client
        self.store = store
        self.notices = notices

    async def toggle(
        self,
        test_id: int,
        index: int,
        question: Question,
        selected: AbstractSet[int],
        lang: str = "ua",
    ) -> Result[ExplanationEntry]:
        """
        Show/hide the explanation of question `index`, fetching it on first use.

        On backend failure an error notice is posted and nothing is cached.
        """
        entry = self.store.get_explanation(test_id, index)
        if entry is not None:
            entry.visible = not entry.visible
            self.store.put_explanation(test_id, index, entry)
            return Ok(entry)

        options = [a.text("answer", lang) for a in question.answers]
        correct = ", ".join(question.answer_texts(question.correct_ids, lang))
        user_answer = ", ".join(question.answer_texts(selected, lang))

        result = await self.client.request_explanation(
            question=question.text("question", lang),
            options=options,
            correct=correct,
            user_answer=user_answer,
        )
        if isinstance(result, Err):
            logger.warning(f"Explanation for test {test_id} question #{index} failed: {result.error}")
            self.notices.error(
                "Не вдалося отримати пояснення",
                "Failed to get explanation",
            )
            return result

        entry = ExplanationEntry(
            explanation_ua=result.value.explanation_ua,
            explanation_en=result.value.explanation_en,
            visible=True,
        )
        self.store.put_explanation(test_id, index, entry)
        return Ok(entry)
