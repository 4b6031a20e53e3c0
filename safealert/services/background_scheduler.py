"""
Background wake-up scheduling.

Platform background refresh is one-shot: every wake-up must schedule the
next one. The polling engine registers a handler once, then calls
schedule_next() each time it wants to be woken again.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Set
import asyncio
import logging

logger = logging.getLogger(__name__)

WakeHandler = Callable[[], Awaitable[None]]


class BackgroundScheduler(ABC):
    """One-shot background wake-up registration."""

    @abstractmethod
    def register(self, handler: WakeHandler) -> None:
        pass

    @abstractmethod
    def schedule_next(self, delay_seconds: float) -> None:
        """Request a wake-up no earlier than `delay_seconds` from now, replacing any pending one."""
        pass

    @abstractmethod
    def cancel(self) -> None:
        pass


class AsyncioBackgroundScheduler(BackgroundScheduler):
    """
    Wake-ups delivered on the running asyncio loop.

    Stands in for the OS scheduler when the host process itself stays
    alive, e.g. the HTTP shell.
    """

    def __init__(self):
        self._handler: Optional[WakeHandler] = None
        self._pending: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_scheduled(self) -> bool:
        return self._pending is not None

    def register(self, handler: WakeHandler) -> None:
        self._handler = handler

    def schedule_next(self, delay_seconds: float) -> None:
        if self._handler is None:
            logger.warning("Background wake-up requested before a handler was registered")
            return
        self.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(delay_seconds, self._fire)

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _fire(self) -> None:
        self._pending = None
        task = asyncio.get_running_loop().create_task(self._handler())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
