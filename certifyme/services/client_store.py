"""
services/client_store.py

Persistent client-side storage (what the browser version kept in
localStorage), behind typed accessors instead of free-form string keys.

Contents:
  - bearer token
  - explanation cache, one mapping per test: {question_index: entry}
  - "already shown" flags, one per (user, achievement code)
  - id of the test a checkout was last started for

The file is rewritten on every change. `path=None` keeps everything in memory.
`scoped(namespace)` returns a view over the same file whose keys live under
`namespace`; the local app gives every browser its own view.
"""

import copy
import json
import logging
import os
import threading
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_TOKEN_KEY = "token"
_LAST_PAID_KEY = "last-paid-test"
_EXPLANATIONS_PREFIX = "explanations"
_SHOWN_PREFIX = "shown-achievement"


class ExplanationEntry(BaseModel):
    explanation_ua: str = Field(default="")
    explanation_en: str = Field(default="")
    visible: bool = Field(default=True)

    def text(self, lang: str) -> str:
        if lang == "en" and self.explanation_en:
            return self.explanation_en
        return self.explanation_ua or self.explanation_en


class ClientStore:
    def __init__(self, path: Optional[str] = None):
        self.path = path
        self.namespace = ""
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def scoped(self, namespace: str) -> "ClientStore":
        """View sharing this store's file and lock, with keys under `namespace`."""
        view = copy.copy(self)
        view.namespace = f"{self.namespace}{namespace}:"
        return view

    def _key(self, name: str) -> str:
        return f"{self.namespace}{name}"

    # ── file I/O ───────────────────────────────────────────────────────────

    def _load(self) -> Dict[str, Any]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Client storage unreadable, starting empty: {self.path} ({e})")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        if not self.path:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    # ── token ──────────────────────────────────────────────────────────────

    def get_token(self) -> Optional[str]:
        with self._lock:
            return self._data.get(self._key(_TOKEN_KEY)) or None

    def set_token(self, token: Optional[str]) -> None:
        with self._lock:
            if token:
                self._data[self._key(_TOKEN_KEY)] = token
            else:
                self._data.pop(self._key(_TOKEN_KEY), None)
            self._save()

    # ── checkout ───────────────────────────────────────────────────────────

    def get_last_paid_test(self) -> Optional[int]:
        with self._lock:
            return self._data.get(self._key(_LAST_PAID_KEY))

    def set_last_paid_test(self, test_id: Optional[int]) -> None:
        with self._lock:
            if test_id is None:
                self._data.pop(self._key(_LAST_PAID_KEY), None)
            else:
                self._data[self._key(_LAST_PAID_KEY)] = test_id
            self._save()

    # ── explanation cache ──────────────────────────────────────────────────

    def _explanations_key(self, test_id: int) -> str:
        return self._key(f"{_EXPLANATIONS_PREFIX}:{test_id}")

    def get_explanation(self, test_id: int, index: int) -> Optional[ExplanationEntry]:
        with self._lock:
            raw = self._data.get(self._explanations_key(test_id), {}).get(str(index))
        return ExplanationEntry.model_validate(raw) if raw else None

    def put_explanation(self, test_id: int, index: int, entry: ExplanationEntry) -> None:
        with self._lock:
            bucket = self._data.setdefault(self._explanations_key(test_id), {})
            bucket[str(index)] = entry.model_dump()
            self._save()

    def explanations(self, test_id: int) -> Dict[int, ExplanationEntry]:
        with self._lock:
            bucket = dict(self._data.get(self._explanations_key(test_id), {}))
        return {int(k): ExplanationEntry.model_validate(v) for k, v in bucket.items()}

    # ── achievement notification flags ─────────────────────────────────────

    def _shown_key(self, user_key: str, code: str) -> str:
        return self._key(f"{_SHOWN_PREFIX}:{user_key}:{code}")

    def was_shown(self, user_key: str, code: str) -> bool:
        with self._lock:
            return bool(self._data.get(self._shown_key(user_key, code)))

    def mark_shown(self, user_key: str, code: str) -> bool:
        """Set the flag. Returns False if it was already set."""
        key = self._shown_key(user_key, code)
        with self._lock:
            if self._data.get(key):
                return False
            self._data[key] = True
            self._save()
            return True
