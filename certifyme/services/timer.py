"""
services/timer.py

Attempt countdown.
Budget: question count x SECONDS_PER_QUESTION (2 minutes per question).
Ticks once per second; expiry is reported exactly once.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

SECONDS_PER_QUESTION = 120
WARNING_SECONDS = 60

Sleep = Callable[[float], Awaitable[None]]


def time_budget(question_count: int, seconds_per_question: int = SECONDS_PER_QUESTION) -> int:
    if question_count < 0:
        raise ValueError("question_count must not be negative")
    return question_count * seconds_per_question


def format_seconds(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


class CountdownTimer:
    """
    Attributes:
        total:     initial budget in seconds.
        remaining: seconds left.
        expired:   True once remaining reached zero through ticking.
        cancelled: True once cancel() was called; a cancelled timer never ticks.
    """

    def __init__(
        self,
        total_seconds: int,
        on_expire: Optional[Callable[[], Awaitable[None]]] = None,
        warning_seconds: int = WARNING_SECONDS,
    ):
        self.total = total_seconds
        self.remaining = total_seconds
        self.warning_seconds = warning_seconds
        self.on_expire = on_expire
        self.expired = False
        self.cancelled = False
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @classmethod
    def for_questions(
        cls,
        question_count: int,
        on_expire: Optional[Callable[[], Awaitable[None]]] = None,
        seconds_per_question: int = SECONDS_PER_QUESTION,
        warning_seconds: int = WARNING_SECONDS,
    ) -> "CountdownTimer":
        return cls(time_budget(question_count, seconds_per_question), on_expire, warning_seconds)

    @property
    def active(self) -> bool:
        return not (self.expired or self.cancelled)

    @property
    def is_warning(self) -> bool:
        return self.active and self.remaining < self.warning_seconds

    def format_remaining(self) -> str:
        return format_seconds(self.remaining)

    def tick(self) -> bool:
        """
        Advance one second.

        Returns True only on the tick that reaches zero.
        """
        if not self.active:
            return False
        self.remaining = max(0, self.remaining - 1)
        if self.remaining == 0:
            self.expired = True
            return True
        return False

    def cancel(self) -> None:
        """Stop ticking. Safe to call from the timer's own task or another thread."""
        self.cancelled = True
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            if task is not asyncio.current_task():
                task.cancel()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(task.cancel)

    async def run(self, sleep: Sleep = asyncio.sleep) -> None:
        """Tick every second until expiry or cancellation, then fire on_expire once."""
        if self.total == 0 and self.active:
            self.expired = True
            await self._fire()
            return
        while self.active:
            await sleep(1)
            if self.cancelled:
                return
            if self.tick():
                await self._fire()

    def start(self, sleep: Sleep = asyncio.sleep) -> asyncio.Task:
        """Schedule run() on the running event loop."""
        if self._task is None or self._task.done():
            self._loop = asyncio.get_running_loop()
            self._task = self._loop.create_task(self.run(sleep))
        return self._task

    async def _fire(self) -> None:
        logger.info("Countdown expired")
        if self.on_expire is not None:
            await self.on_expire()
