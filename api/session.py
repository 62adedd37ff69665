"""
api/session.py — multi-user in-memory sessions (cookie based)

Each browser gets a UUID session id with its own state:
current language, pending notices, audio gate and the running attempt.
Sessions expire after SESSION_TTL of inactivity; the attempt timer of an
expired or reset session is cancelled.
"""

import threading
import time
import uuid
from typing import Any

from config import DEFAULT_LANG, SESSION_TTL
from certifyme.services.achievement_notifier import AudioGate
from certifyme.services.notices import NoticeBoard

_lock = threading.Lock()
_sessions: dict[str, dict[str, Any]] = {}
_timestamps: dict[str, float] = {}


def _new_state(lang: str = DEFAULT_LANG, audio: AudioGate | None = None) -> dict[str, Any]:
    return {
        "lang": lang,
        "notices": NoticeBoard(),
        "audio": audio or AudioGate(),
        "attempt": None,
    }


def _close_attempt(state: dict[str, Any]) -> None:
    attempt = state.get("attempt")
    if attempt is not None:
        attempt.close()


def create_session() -> str:
    """Create a session and return its id."""
    sid = uuid.uuid4().hex
    with _lock:
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """Session data by id; None when missing or expired."""
    with _lock:
        if sid not in _sessions:
            return None
        if time.time() - _timestamps[sid] > SESSION_TTL:
            _close_attempt(_sessions.pop(sid))
            del _timestamps[sid]
            return None
        _timestamps[sid] = time.time()  # refresh on access
        return _sessions[sid]


def get(sid: str, key: str, default=None):
    session = get_session(sid)
    if session is None:
        return default
    return session.get(key, default)


def put(sid: str, key: str, value) -> None:
    with _lock:
        if sid in _sessions:
            _sessions[sid][key] = value
            _timestamps[sid] = time.time()


def replace_attempt(sid: str, attempt) -> None:
    """Install a new attempt, tearing down the previous one."""
    with _lock:
        if sid in _sessions:
            _close_attempt(_sessions[sid])
            _sessions[sid]["attempt"] = attempt
            _timestamps[sid] = time.time()


def reset(sid: str) -> None:
    """Reset the session (language and audio gate are kept)."""
    with _lock:
        if sid in _sessions:
            _close_attempt(_sessions[sid])
            old = _sessions[sid]
            _sessions[sid] = _new_state(old.get("lang", DEFAULT_LANG), old.get("audio"))
            _timestamps[sid] = time.time()


def cleanup_expired() -> int:
    """Drop expired sessions. Returns how many were removed."""
    now = time.time()
    removed = 0
    with _lock:
        expired = [sid for sid, ts in _timestamps.items() if now - ts > SESSION_TTL]
        for sid in expired:
            _close_attempt(_sessions.pop(sid))
            del _timestamps[sid]
            removed += 1
    return removed
