"""
services/payment_service.py

Buying access to a test. Payment itself is handled by the backend and its
payment provider; the client only starts a checkout and, in local setups,
asks the backend to confirm it.
"""

import logging
from typing import List, Optional

from certifyme.models.api_schemas import Achievement
from certifyme.models.result import ApiError, Err, ErrorKind, Ok, Result
from certifyme.services.achievement_notifier import AudioGate
from certifyme.services.api_client import CertifyMeClient
from certifyme.services.client_store import ClientStore
from certifyme.services.notices import NoticeBoard

logger = logging.getLogger(__name__)


class PaymentRequester:
    def __init__(
        self,
        client: CertifyMeClient,
        store: ClientStore,
        notices: NoticeBoard,
        audio: AudioGate,
    ):
        self.client = client
        self.store = store
        self.notices = notices
        self.audio = audio

    def _require_login(self) -> Optional[Err]:
        if self.store.get_token():
            return None
        self.notices.error("Спочатку увійдіть у профіль", "Please sign in first")
        return Err(ApiError(ErrorKind.UNSUCCESSFUL, "Not logged in", 401))

    async def start(self, test_id: int) -> Result[str]:
        """
        Open a checkout session for `test_id`.

        Returns:
            Ok(url of the payment page) or Err; the test id is remembered so
            the purchase can be confirmed after the redirect back.
        """
        denied = self._require_login()
        if denied is not None:
            return denied

        result = await self.client.checkout(test_id)
        if isinstance(result, Err):
            logger.warning(f"Checkout for test {test_id} failed: {result.error}")
            if result.error.kind is ErrorKind.NETWORK:
                self.notices.error("Помилка мережі", "Network error")
            else:
                self.notices.error(
                    result.error.message or "Помилка ініціалізації оплати",
                    result.error.message or "Payment initialization error",
                )
            return result

        self.store.set_last_paid_test(test_id)
        logger.info(f"Checkout started for test {test_id}")
        return result

    async def confirm(self, test_id: Optional[int] = None) -> Result[List[Achievement]]:
        """Grant access after payment; falls back to the last checkout's test."""
        denied = self._require_login()
        if denied is not None:
            return denied

        test_id = test_id if test_id is not None else self.store.get_last_paid_test()
        if test_id is None:
            return Err(ApiError(ErrorKind.UNSUCCESSFUL, "No pending payment"))

        result = await self.client.confirm_payment(test_id)
        if isinstance(result, Err):
            logger.warning(f"Payment confirmation for test {test_id} failed: {result.error}")
            self.notices.error("⚠️ Не вдалося видати доступ", "⚠️ Failed to grant access")
            return result

        self.store.set_last_paid_test(None)
        unlocked = result.value.unlocked
        self.notices.success(
            "✅ Оплата успішна! Доступ до тесту відкрито.",
            "✅ Payment successful! Access granted.",
            play_sound=bool(unlocked) and self.audio.unlocked,
        )
        for achievement in unlocked:
            self.notices.success(
                f"🏆 {achievement.title_ua or 'Нове досягнення'}",
                f"🏆 {achievement.title_en or 'New achievement'}",
            )
        return Ok(unlocked)
