"""
services/achievement_notifier.py

Achievement unlocks after an attempt.

- Unlock calls go to the backend; the backend decides what is unlocked.
- A notice is shown at most once per user per achievement (client store flag).
- The unlock sound is requested only after audio was unlocked by a user
  gesture (browser autoplay policy).
- Every failure is swallowed: achievements never break the attempt flow.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from jose import JWTError, jwt

from certifyme.models.api_schemas import Achievement
from certifyme.models.result import Err
from certifyme.services.api_client import CertifyMeClient
from certifyme.services.client_store import ClientStore
from certifyme.services.notices import NoticeBoard

logger = logging.getLogger(__name__)

FIRST_TEST = "first_test"
PERFECT_SCORE = "perfect_score"

GUEST_KEY = "guest"


class AudioGate:
    """Audio may play only after the first user gesture unlocked it."""

    def __init__(self):
        self._lock = threading.Lock()
        self._unlocked = False

    @property
    def unlocked(self) -> bool:
        return self._unlocked

    def unlock(self) -> bool:
        """Returns True on the call that actually unlocked audio."""
        with self._lock:
            if self._unlocked:
                return False
            self._unlocked = True
            return True


def user_key_from_token(token: Optional[str]) -> str:
    """
    Stable per-user key taken from the token claims (not verified here).
    Order: id, user_id, email; "guest" when nothing usable is present.
    """
    if not token:
        return GUEST_KEY
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return GUEST_KEY
    for claim in ("id", "user_id", "email"):
        value = claims.get(claim)
        if value:
            return str(value)
    return GUEST_KEY


def codes_for_attempt(score: int, total: int) -> List[str]:
    """Achievement codes earned by a finished attempt."""
    codes = [FIRST_TEST]
    if total > 0 and score == total:
        codes.append(PERFECT_SCORE)
    return codes


class AchievementNotifier:
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

    async def unlock(self, code: str) -> Optional[Achievement]:
        """
        Ask the backend to unlock `code`.

        Returns the achievement the backend reported, or None when there is no
        token or the call failed. The notice is posted only the first time.
        """
        token = self.store.get_token()
        if not token:
            return None

        try:
            result = await self.client.unlock_achievement(code)
        except Exception as e:
            logger.debug(f"Achievement '{code}' unlock raised: {e}")
            return None
        if isinstance(result, Err) or result.value.achievement is None:
            logger.debug(f"Achievement '{code}' not unlocked: {getattr(result, 'error', 'no achievement')}")
            return None

        achievement = result.value.achievement
        if self.store.mark_shown(user_key_from_token(token), code):
            self.notices.success(
                f"🏆 Досягнення розблоковано: {achievement.title_ua or ''}".rstrip(),
                f"🏆 Achievement unlocked: {achievement.title_en or achievement.title_ua or ''}".rstrip(),
                play_sound=self.audio.unlocked,
            )
        return achievement

    async def after_submission(self, score: int, total: int) -> List[Achievement]:
        unlocked = []
        for code in codes_for_attempt(score, total):
            achievement = await self.unlock(code)
            if achievement is not None:
                unlocked.append(achievement)
        return unlocked

    async def update_batch(self, updates: List[Dict[str, Any]]) -> bool:
        if not self.store.get_token() or not updates:
            return False
        result = await self.client.update_achievements_batch(updates)
        if isinstance(result, Err):
            logger.debug(f"Achievement batch update failed: {result.error}")
            return False
        return True

    async def list_achievements(self) -> List[Dict[str, Any]]:
        if not self.store.get_token():
            return []
        result = await self.client.list_achievements()
        if isinstance(result, Err):
            logger.debug(f"Achievement list failed: {result.error}")
            return []
        return result.value
