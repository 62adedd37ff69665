"""
services/context.py

Client context: one store, one backend client, one audio gate.
Everything that used to live in browser globals is reached through here
and passed explicitly to the services that need it.

The local app keeps one root context and derives a per-browser context
from it with `for_browser()`, so each browser has its own token, its own
explanation cache and achievement flags, and its own audio gate.
"""

import asyncio
import dataclasses
from dataclasses import dataclass, field
from typing import Optional

import httpx

from certifyme.services.achievement_notifier import AchievementNotifier, AudioGate
from certifyme.services.api_client import CertifyMeClient
from certifyme.services.attempt_service import AttemptSession
from certifyme.services.certificate_service import CertificateRequester
from certifyme.services.client_store import ClientStore
from certifyme.services.explanation_cache import ExplanationCache
from certifyme.services.notices import NoticeBoard
from certifyme.services.payment_service import PaymentRequester
from certifyme.services.timer import SECONDS_PER_QUESTION, WARNING_SECONDS, Sleep


@dataclass
class ClientContext:
    api_url: str
    store: ClientStore
    audio: AudioGate = field(default_factory=AudioGate)
    timeout: float = 15.0
    seconds_per_question: int = SECONDS_PER_QUESTION
    warning_seconds: int = WARNING_SECONDS
    pass_percent: float = 60.0
    download_dir: Optional[str] = None
    transport: Optional[httpx.AsyncBaseTransport] = None
    sleep: Sleep = asyncio.sleep

    def __post_init__(self):
        self.client = CertifyMeClient(
            self.api_url,
            token_provider=self.store.get_token,
            timeout=self.timeout,
            transport=self.transport,
        )

    def for_browser(self, browser_id: str, audio: AudioGate) -> "ClientContext":
        """Context whose storage and audio gate belong to one browser."""
        return dataclasses.replace(
            self,
            store=self.store.scoped(f"browser:{browser_id}"),
            audio=audio,
        )

    def notifier(self, notices: NoticeBoard) -> AchievementNotifier:
        return AchievementNotifier(self.client, self.store, notices, self.audio)

    def explanations(self, notices: NoticeBoard) -> ExplanationCache:
        return ExplanationCache(self.client, self.store, notices)

    def certificates(self, notices: NoticeBoard) -> CertificateRequester:
        return CertificateRequester(self.client, notices)

    def payments(self, notices: NoticeBoard) -> PaymentRequester:
        return PaymentRequester(self.client, self.store, notices, self.audio)

    def new_attempt(self, test_id: int, notices: NoticeBoard) -> AttemptSession:
        return AttemptSession(
            test_id,
            client=self.client,
            notices=notices,
            notifier=self.notifier(notices),
            explanations=self.explanations(notices),
            certificates=self.certificates(notices),
            seconds_per_question=self.seconds_per_question,
            warning_seconds=self.warning_seconds,
            pass_percent=self.pass_percent,
            sleep=self.sleep,
        )
