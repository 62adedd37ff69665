"""
services/notices.py

Transient user-visible notices (the web client's toasts).
Services post bilingual notices; the UI drains them in its language.
"""

import threading
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field

from certifyme.models.test_model import normalize_lang


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notice(BaseModel):
    level: NoticeLevel
    text_ua: str
    text_en: str
    play_sound: bool = Field(default=False, description="Play the unlock sound with this notice")

    def render(self, lang: str) -> Dict[str, object]:
        text = self.text_en if normalize_lang(lang) == "en" else self.text_ua
        return {"level": self.level.value, "text": text, "play_sound": self.play_sound}


class NoticeBoard:
    def __init__(self):
        self._lock = threading.Lock()
        self._notices: List[Notice] = []

    def post(self, level: NoticeLevel, text_ua: str, text_en: str, play_sound: bool = False) -> Notice:
        notice = Notice(level=level, text_ua=text_ua, text_en=text_en, play_sound=play_sound)
        with self._lock:
            self._notices.append(notice)
        return notice

    def success(self, text_ua: str, text_en: str, play_sound: bool = False) -> Notice:
        return self.post(NoticeLevel.SUCCESS, text_ua, text_en, play_sound)

    def error(self, text_ua: str, text_en: str) -> Notice:
        return self.post(NoticeLevel.ERROR, text_ua, text_en)

    def info(self, text_ua: str, text_en: str) -> Notice:
        return self.post(NoticeLevel.INFO, text_ua, text_en)

    def pending(self) -> List[Notice]:
        with self._lock:
            return list(self._notices)

    def drain(self, lang: str) -> List[Dict[str, object]]:
        """Return and clear pending notices, rendered in `lang`."""
        with self._lock:
            notices, self._notices = self._notices, []
        return [n.render(lang) for n in notices]
